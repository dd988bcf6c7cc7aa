# version_ledger/storage/github.py
import logging
from typing import Optional

import requests

from version_ledger.core.encoding import b64_to_utf8, utf8_to_b64
from version_ledger.core.errors import (
    ConflictError,
    CorruptDocument,
    DocumentMissing,
    StoreRejected,
    StoreUnreachable,
)
from . import DocumentStore, StoredDocument

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubContentStore(DocumentStore):
    """
    Stores the document as a file in a GitHub repository via the contents API.
    The blob sha is the revision; PUT with a stale sha answers 409.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        branch: Optional[str] = None,
        api_url: str = GITHUB_API_URL,
        timeout_s: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{path.lstrip('/')}"

    def read(self, path: str) -> StoredDocument:
        params = {"ref": self.branch} if self.branch else {}
        try:
            r = self.session.get(self._url(path), params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise StoreUnreachable(f"GitHub is unreachable: {e}") from e

        if r.status_code == 404:
            raise DocumentMissing(f"{path} not found in {self.owner}/{self.repo}")
        if r.status_code != 200:
            raise StoreUnreachable(f"Failed to load {path}: HTTP {r.status_code} {_error_text(r)}")

        try:
            data = r.json()
            content, sha = data["content"], data["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptDocument(f"Unexpected contents API response for {path}: {e!r}") from e
        if not isinstance(content, str) or not isinstance(sha, str):
            raise CorruptDocument(f"Unexpected contents API response for {path}: content and sha must be strings")
        return StoredDocument(content=b64_to_utf8(content), revision=sha)

    def write(self, path: str, content: str, expected_revision: Optional[str], message: str = "update ledger") -> str:
        body = {"message": message, "content": utf8_to_b64(content)}
        if expected_revision is not None:
            body["sha"] = expected_revision
        if self.branch:
            body["branch"] = self.branch

        try:
            r = self.session.put(self._url(path), json=body, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise StoreUnreachable(f"GitHub is unreachable: {e}") from e

        if r.status_code in (200, 201):
            try:
                return r.json()["content"]["sha"]
            except (ValueError, KeyError, TypeError) as e:
                raise StoreRejected(f"Unexpected contents API response for {path}: {e!r}") from e
        if r.status_code == 409:
            raise ConflictError(f"Stale revision {expected_revision} for {path}: {_error_text(r)}")
        # creating over an existing file without a sha
        if r.status_code == 422 and expected_revision is None:
            raise ConflictError(f"{path} already exists: {_error_text(r)}")

        logger.debug("GitHub rejected write to %s: %s", path, r.text)
        raise StoreRejected(f"Failed to update {path}: HTTP {r.status_code} {_error_text(r)}")

    def close(self) -> None:
        self.session.close()


def _error_text(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text[:200]
    return str(body.get("message", "")) if isinstance(body, dict) else ""
