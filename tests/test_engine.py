# tests/test_engine.py
import logging

import pytest

from version_ledger.core.errors import (
    ConflictError,
    CorruptDocument,
    DocumentMissing,
    LedgerNotLoaded,
    StoreUnreachable,
    ValidationError,
    WriteVerificationError,
)
from version_ledger.core.types import Component, LedgerDocument
from version_ledger.engine.engine import LedgerEngine
from version_ledger.engine.session import LedgerSession
from version_ledger.storage import MemoryStore, StoredDocument
from version_ledger.validate.rules import AddComponent, AddVersion


def fixed_clock():
    return "2026-02-13T12:00:00.000Z"


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store):
    return LedgerEngine(store, clock=fixed_clock)


@pytest.fixture
def session(store):
    s = LedgerSession(store)
    s.engine.clock = fixed_clock
    return s.fetch(create_if_missing=True)


class AlwaysConflictingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.attempted_writes = 0

    def write(self, path, content, expected_revision, message="update ledger"):
        if expected_revision is None:
            return super().write(path, content, expected_revision, message)
        self.attempted_writes += 1
        raise ConflictError("someone else always wins")


class LyingStore(MemoryStore):
    """Acknowledges writes but reports another revision on the next read."""

    def read(self, path):
        stored = super().read(path)
        if self.messages[-1] == "create ledger":
            return stored
        return StoredDocument(stored.content, "tampered")


def test_fetch_missing_document(engine):
    with pytest.raises(DocumentMissing):
        engine.fetch()


def test_fetch_creates_empty_document(engine, store):
    state = engine.fetch(create_if_missing=True)
    assert state.document == LedgerDocument()
    assert store.read("ledger.json").revision == state.revision


def test_initialize_twice_conflicts(engine):
    engine.initialize()
    with pytest.raises(ConflictError):
        engine.initialize()


def test_fetch_corrupt_document(engine, store):
    store.write("ledger.json", '{"components": []}', None)
    with pytest.raises(CorruptDocument):
        engine.fetch()


def test_apply_returns_new_state_and_leaves_old_one(engine):
    state = engine.initialize()
    result = engine.apply(state, AddComponent("api", "API"))
    assert result.state.document.components == (Component("api", "API"),)
    assert result.state.revision != state.revision
    assert state.document.components == ()
    assert result.entries == (Component("api", "API"),)


def test_validation_error_does_not_write(engine, store):
    state = engine.apply(engine.initialize(), AddComponent("api", "API")).state
    writes = len(store.messages)
    with pytest.raises(ValidationError):
        engine.apply(state, AddComponent("api", "Other"))
    assert len(store.messages) == writes


def test_write_message_names_collection(engine, store):
    engine.apply(engine.initialize(), AddVersion("api", "1.0.0"))
    assert store.messages == ["create ledger", "new versions"]


def test_auto_created_component_written_with_version_in_one_write(engine, store):
    result = engine.apply(engine.initialize(), AddVersion("unseen", "1.0.0"))
    assert len(store.messages) == 2
    assert result.state.document.components == (Component("unseen", "Unseen"),)
    assert engine.fetch().document == result.state.document


def test_stale_state_without_retry_conflicts_and_keeps_document(store):
    engine_a = LedgerEngine(store, max_attempts=1, clock=fixed_clock)
    engine_b = LedgerEngine(store, max_attempts=1, clock=fixed_clock)
    base = engine_a.initialize()
    b_state = engine_b.fetch()

    engine_a.apply(base, AddComponent("api", "API"))

    with pytest.raises(ConflictError):
        engine_b.apply(b_state, AddComponent("web", "Web"))
    assert b_state.document == LedgerDocument()
    assert engine_b.fetch().document.components == (Component("api", "API"),)


def test_conflict_retried_against_fresh_snapshot(store):
    engine_a = LedgerEngine(store, clock=fixed_clock)
    engine_b = LedgerEngine(store, max_attempts=3, clock=fixed_clock)
    base = engine_a.initialize()
    engine_a.apply(base, AddComponent("api", "API"))

    result = engine_b.apply(base, AddComponent("web", "Web"))
    assert result.attempts == 2
    assert [c.id for c in result.state.document.components] == ["api", "web"]


def test_retry_revalidates_against_fresh_snapshot(store):
    engine_a = LedgerEngine(store, clock=fixed_clock)
    engine_b = LedgerEngine(store, max_attempts=3, clock=fixed_clock)
    base = engine_a.initialize()
    engine_a.apply(base, AddComponent("api", "API"))

    with pytest.raises(ValidationError):
        engine_b.apply(base, AddComponent("api", "API"))


def test_retry_advisories_reflect_fresh_snapshot(store):
    engine_a = LedgerEngine(store, clock=fixed_clock)
    engine_b = LedgerEngine(store, clock=fixed_clock)
    base = engine_a.initialize()
    engine_a.apply(base, AddVersion("api", "1.0.0"))

    result = engine_b.apply(base, AddVersion("api", "1.0.0"))
    assert [a.kind for a in result.advisories] == ["duplicate_version"]
    assert len(result.state.document.versions) == 2
    assert len(result.state.document.components) == 1


def test_conflict_surfaces_after_retries_exhausted():
    store = AlwaysConflictingStore()
    engine = LedgerEngine(store, max_attempts=3, clock=fixed_clock)
    state = engine.initialize()
    with pytest.raises(ConflictError):
        engine.apply(state, AddComponent("api", "API"))
    assert store.attempted_writes == 3


def test_max_attempts_must_be_positive(store):
    with pytest.raises(ValueError):
        LedgerEngine(store, max_attempts=0)


def test_post_write_revision_mismatch_is_fatal():
    store = LyingStore()
    engine = LedgerEngine(store, clock=fixed_clock)
    state = engine.initialize()
    with pytest.raises(WriteVerificationError):
        engine.apply(state, AddComponent("api", "API"))
    assert store.messages == ["create ledger", "new components"]


def test_advisories_are_logged(engine, caplog):
    with caplog.at_level(logging.WARNING, logger="version_ledger"):
        result = engine.apply(engine.initialize(), AddVersion("unseen", "1.0.0"))
    assert result.advisories
    assert "unknown_component" in caplog.text


# session / end-to-end

def test_session_requires_fetch(store):
    s = LedgerSession(store)
    with pytest.raises(LedgerNotLoaded):
        s.add_component("api", "API")
    with pytest.raises(LedgerNotLoaded):
        s.latest_version("api")


def test_session_accepts_store_uri():
    s = LedgerSession("memory://").fetch(create_if_missing=True)
    assert isinstance(s.store, MemoryStore)
    assert s.document == LedgerDocument()


def test_end_to_end_latest_version(session):
    session.add_component("api", "API")
    session.add_version("api", "1.0.0")
    session.add_version("api", "2.0.0")
    latest = session.latest_version("api")
    assert latest.tag == "2.0.0"
    assert latest.date == fixed_clock()


def test_end_to_end_auto_created_component(session):
    result = session.add_version("unseen", "1.0.0")
    assert [a.kind for a in result.advisories] == ["unknown_component"]
    assert session.document.component("unseen") == Component("unseen", "Unseen")
    assert session.latest_version("unseen").tag == "1.0.0"


def test_end_to_end_setup_and_tests(session):
    session.add_component("api", "API")
    session.add_component("web", "Web")
    session.add_version("api", "1.0.0")
    session.add_version("web", "3.1.0")
    session.add_setup("full", "Full stack", ["web", "api"])

    result = session.add_test("full", "passed", {"api": "1.0.0", "web": "3.1.0"}, description="smoke")
    assert result.advisories == []

    with pytest.raises(ValidationError):
        session.add_test("full", "passed", {"api": "1.0.0"})

    assert [c.id for c in session.setup_components("full")] == ["api", "web"]
    assert [t.description for t in session.setup_tests("full")] == ["smoke"]
    assert {cid: v.tag for cid, v in session.latest_versions("full").items()} == {"api": "1.0.0", "web": "3.1.0"}
    assert session.components_versions(["api"]) == {"api": ["1.0.0"]}


def test_session_state_survives_failed_write(store, session):
    session.add_component("api", "API")
    before = session.state

    other = LedgerSession(store, max_attempts=1).fetch()
    other.add_component("web", "Web")

    session.engine.max_attempts = 1
    with pytest.raises(ConflictError):
        session.add_component("db", "DB")
    assert session.state is before


class FlakyReadStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.fail_with = None

    def read(self, path):
        if self.fail_with is not None:
            raise self.fail_with
        return super().read(path)


@pytest.mark.parametrize("error", [StoreUnreachable("network down"), None])
def test_session_state_survives_failed_fetch(error):
    store = FlakyReadStore()
    s = LedgerSession(store).fetch(create_if_missing=True)
    s.add_component("api", "API")
    before = s.state

    if error is None:
        # another writer leaves something that is not a ledger behind
        store.write("ledger.json", '{"components": "oops"}', before.revision)
        expected = CorruptDocument
    else:
        store.fail_with = error
        expected = StoreUnreachable

    with pytest.raises(expected):
        s.fetch()
    assert s.state is before
    assert s.latest_versions() == {"api": None}
