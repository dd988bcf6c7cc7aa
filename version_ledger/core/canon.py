# version_ledger/core/canon.py
import json
from typing import Any, Iterable

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from version_ledger.core.errors import CorruptDocument
from version_ledger.core.types import LedgerDocument


def canonical_json(obj: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785 (JSON Canonicalization Scheme).
    """
    return jcs.canonicalize(obj)


def canonical_json_str(obj: Any) -> str:
    return canonical_json(obj).decode("utf-8")


def component_set_key(component_ids: Iterable[str]) -> str:
    """Order-independent key for a set of component ids."""
    return canonical_json_str(sorted(set(component_ids)))


def serialize_document(document: LedgerDocument) -> str:
    return canonical_json_str(document.to_dict())


def deserialize_document(text: str) -> LedgerDocument:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise CorruptDocument(f"Ledger document is not valid JSON: {e}") from e
    return LedgerDocument.from_dict(data)
