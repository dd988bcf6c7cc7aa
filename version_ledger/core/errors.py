# version_ledger/core/errors.py
from dataclasses import dataclass
from typing import Literal, Optional


class LedgerError(Exception):
    """Base class for every failure surfaced by the ledger."""


class ValidationError(LedgerError):
    """Malformed or conflicting input; the mutation was not attempted."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFound(LedgerError):
    pass


class LedgerNotLoaded(LedgerError):
    pass


class StoreError(LedgerError):
    """Base for failures reported by a document store."""


class StoreUnreachable(StoreError):
    pass


class DocumentMissing(StoreUnreachable):
    pass


class ConflictError(StoreError):
    """The revision held by the writer is stale."""


class StoreRejected(StoreError):
    """Write refused for a reason other than a stale revision."""


class CorruptDocument(StoreError):
    pass


class WriteVerificationError(StoreError):
    """The store reported a different revision right after a successful write."""


AdvisoryKind = Literal[
    "unknown_component",
    "duplicate_version",
    "unknown_setup",
    "unknown_version",
    "empty_setup",
]


@dataclass(frozen=True)
class Advisory:
    """A tolerated inconsistency; reported alongside a result, never raised."""
    kind: AdvisoryKind
    message: str

    def __str__(self):
        return f"{self.kind}: {self.message}"
