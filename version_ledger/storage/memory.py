# version_ledger/storage/memory.py
from typing import Dict, Optional, Tuple

from version_ledger.core.errors import ConflictError, DocumentMissing
from . import DocumentStore, StoredDocument


class MemoryStore(DocumentStore):
    """Process-local store with integer revisions. Used by tests and dry runs."""

    def __init__(self):
        self._blobs: Dict[str, Tuple[str, int]] = {}
        self.messages: list[str] = []

    def read(self, path: str) -> StoredDocument:
        if path not in self._blobs:
            raise DocumentMissing(f"No document stored at '{path}'")
        content, rev = self._blobs[path]
        return StoredDocument(content, str(rev))

    def write(self, path: str, content: str, expected_revision: Optional[str], message: str = "update ledger") -> str:
        current = self._blobs.get(path)
        if expected_revision is None:
            if current is not None:
                raise ConflictError(f"Document '{path}' already exists")
            rev = 1
        else:
            if current is None:
                raise DocumentMissing(f"No document stored at '{path}'")
            if str(current[1]) != expected_revision:
                raise ConflictError(
                    f"Stale revision for '{path}': expected {expected_revision}, store has {current[1]}"
                )
            rev = current[1] + 1

        self._blobs[path] = (content, rev)
        self.messages.append(message)
        return str(rev)
