# version_ledger/engine/engine.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Tuple

from version_ledger.core.canon import deserialize_document, serialize_document
from version_ledger.core.errors import Advisory, ConflictError, DocumentMissing, WriteVerificationError
from version_ledger.core.types import LedgerDocument, Timestamp
from version_ledger.storage import DocumentStore
from version_ledger.validate import rules
from version_ledger.validate.rules import Mutation

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_PATH = "ledger.json"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LedgerState:
    """A loaded document together with the store revision it was read at."""
    document: LedgerDocument
    revision: str


@dataclass(frozen=True)
class MutationResult:
    state: LedgerState
    entries: Tuple = ()
    advisories: List[Advisory] = field(default_factory=list)
    attempts: int = 1


class LedgerEngine:
    """
    Fetch / validate / compare-and-swap write protocol against a DocumentStore.

    The engine holds no document: every call takes and returns an explicit
    LedgerState, so several engines (or callers) can work against one store.
    """

    def __init__(
        self,
        store: DocumentStore,
        path: str = DEFAULT_LEDGER_PATH,
        max_attempts: int = 3,
        clock: Callable[[], Timestamp] = utc_now,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.path = path
        self.max_attempts = max_attempts
        self.clock = clock

    def fetch(self, create_if_missing: bool = False) -> LedgerState:
        try:
            stored = self.store.read(self.path)
        except DocumentMissing:
            if not create_if_missing:
                raise
            logger.info("No ledger at %s, creating an empty one", self.path)
            return self.initialize()

        document = deserialize_document(stored.content)
        logger.debug(
            "Fetched %s at revision %s (%d components, %d versions, %d setups, %d tests)",
            self.path, stored.revision, len(document.components), len(document.versions),
            len(document.setups), len(document.tests),
        )
        return LedgerState(document, stored.revision)

    def initialize(self) -> LedgerState:
        """Create the document as empty collections. ConflictError if it already exists."""
        document = LedgerDocument()
        revision = self.store.write(self.path, serialize_document(document), None, message="create ledger")
        return LedgerState(document, revision)

    def apply(self, state: LedgerState, mutation: Mutation) -> MutationResult:
        """
        Validate mutation against state and write the extended document with the
        state's revision as the CAS token. On a conflict the document is re-fetched
        and the mutation re-validated, up to max_attempts writes in total.
        """
        current = state
        attempt = 1
        while True:
            plan = rules.plan(current.document, mutation, self.clock())
            new_document = plan.apply_to(current.document)
            try:
                revision = self.store.write(
                    self.path,
                    serialize_document(new_document),
                    current.revision,
                    message=f"new {plan.collection}",
                )
            except ConflictError:
                if attempt >= self.max_attempts:
                    logger.warning("Write to %s conflicted %d time(s), giving up", self.path, attempt)
                    raise
                logger.warning(
                    "Revision %s of %s is stale, re-fetching (attempt %d/%d)",
                    current.revision, self.path, attempt, self.max_attempts,
                )
                attempt += 1
                current = self.fetch()
                continue
            break

        self._verify_write(revision)

        for advisory in plan.advisories:
            logger.warning("%s", advisory)
        logger.debug("Wrote %s: %s -> %s", plan.collection, current.revision, revision)
        return MutationResult(
            state=LedgerState(new_document, revision),
            entries=plan.entries,
            advisories=list(plan.advisories),
            attempts=attempt,
        )

    def _verify_write(self, revision: str) -> None:
        stored = self.store.read(self.path)
        if stored.revision != revision:
            logger.error(
                "Post-update revision check failed for %s: write returned %s, store reports %s",
                self.path, revision, stored.revision,
            )
            raise WriteVerificationError(
                f"Post-update revision check failed: write returned {revision}, "
                f"store reports {stored.revision}"
            )
