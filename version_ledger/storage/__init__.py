# version_ledger/storage/__init__.py
"""
Document stores: a single opaque blob per path, replaced by compare-and-swap.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class StoredDocument:
    content: str
    revision: str


class DocumentStore(ABC):
    """Abstract base for all remote document store implementations."""

    @abstractmethod
    def read(self, path: str) -> StoredDocument:
        """Raise DocumentMissing if nothing is stored at path, StoreUnreachable on transport failure."""

    @abstractmethod
    def write(
        self,
        path: str,
        content: str,
        expected_revision: Optional[str],
        message: str = "update ledger",
    ) -> str:
        """
        Replace the blob at path only if its current revision equals expected_revision
        (None means "create, must not exist yet"). Returns the new revision.
        Raises ConflictError on a stale revision, StoreRejected / StoreUnreachable otherwise.
        """

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_store(uri: str, token: Optional[str] = None) -> DocumentStore:
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteStore
        raw_path = uri[len("sqlite://"):]
        if not raw_path:
            raise ValueError("sqlite:// URI needs a database path")
        return SQLiteStore(Path(raw_path).expanduser().resolve())

    elif uri.startswith("github://"):
        from .github import GitHubContentStore
        repo = uri[len("github://"):].strip("/")
        branch = None
        if "@" in repo:
            repo, branch = repo.split("@", 1)
        owner, _, name = repo.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(f"Expected github://<owner>/<repo>[@<branch>], got: {uri}")
        return GitHubContentStore(owner, name, token=token, branch=branch)

    elif uri == "memory://":
        from .memory import MemoryStore
        return MemoryStore()
    else:
        raise ValueError(f"Unsupported store URI: {uri}")


from .memory import MemoryStore
from .sqlite import SQLiteStore

__all__ = ["DocumentStore", "StoredDocument", "create_store", "MemoryStore", "SQLiteStore"]
