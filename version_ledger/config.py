# version_ledger/config.py
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_STORE_URI = f"sqlite://{Path.home() / '.ledger' / 'ledger.db'}"


@dataclass(frozen=True)
class LedgerConfig:
    store_uri: str
    path: str = "ledger.json"
    token: Optional[str] = None
    max_attempts: int = 3


def load_config(
    store_uri: Optional[str] = None,
    path: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> LedgerConfig:
    """Resolve settings in this order:
    1. explicit arguments (CLI flags)
    2. LEDGER_STORE_URI / LEDGER_PATH / LEDGER_MAX_ATTEMPTS / GITHUB_TOKEN environment variables
    3. defaults (~/.ledger/ledger.db, ledger.json, 3 attempts)
    """
    uri = store_uri or os.environ.get("LEDGER_STORE_URI") or DEFAULT_STORE_URI
    doc_path = path or os.environ.get("LEDGER_PATH") or "ledger.json"

    if max_attempts is None:
        raw = os.environ.get("LEDGER_MAX_ATTEMPTS", "3")
        try:
            max_attempts = int(raw)
        except ValueError:
            raise ValueError(f"LEDGER_MAX_ATTEMPTS must be an integer, got: {raw!r}")
    if max_attempts < 1:
        raise ValueError("max attempts must be at least 1")

    return LedgerConfig(
        store_uri=uri,
        path=doc_path,
        token=os.environ.get("GITHUB_TOKEN") or None,
        max_attempts=max_attempts,
    )
