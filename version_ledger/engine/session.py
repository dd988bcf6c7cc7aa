# version_ledger/engine/session.py
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Union

from version_ledger.core.errors import LedgerNotLoaded
from version_ledger.core.types import Component, LedgerDocument, TestResult, Version
from version_ledger.engine.engine import DEFAULT_LEDGER_PATH, LedgerEngine, LedgerState, MutationResult
from version_ledger.resolve import resolver
from version_ledger.storage import DocumentStore, create_store
from version_ledger.validate.rules import AddComponent, AddSetup, AddTest, AddVersion, Mutation


@dataclass
class LedgerSession:
    """
    Convenience wrapper holding the latest LedgerState for one caller.
    Mutations replace the held state only after a verified write.
    """
    store: Union[DocumentStore, str]
    path: str = DEFAULT_LEDGER_PATH
    max_attempts: int = 3
    token: Optional[str] = None
    state: Optional[LedgerState] = None
    engine: LedgerEngine = field(init=False)

    def __post_init__(self):
        if isinstance(self.store, str):
            self.store = create_store(self.store.strip(), token=self.token)
        self.engine = LedgerEngine(self.store, path=self.path, max_attempts=self.max_attempts)

    @property
    def document(self) -> LedgerDocument:
        if self.state is None:
            raise LedgerNotLoaded("No local data; call fetch() first and make sure the ledger store is reachable")
        return self.state.document

    def fetch(self, create_if_missing: bool = False) -> "LedgerSession":
        self.state = self.engine.fetch(create_if_missing=create_if_missing)
        return self

    def _mutate(self, mutation: Mutation) -> MutationResult:
        if self.state is None:
            raise LedgerNotLoaded("No local data; call fetch() first and make sure the ledger store is reachable")
        result = self.engine.apply(self.state, mutation)
        self.state = result.state
        return result

    # CREATE
    def add_component(self, id: str, name: str) -> MutationResult:
        return self._mutate(AddComponent(id=id, name=name))

    def add_setup(self, id: str, name: str, component_ids: Iterable[str]) -> MutationResult:
        return self._mutate(AddSetup(id=id, name=name, component_ids=tuple(component_ids)))

    def add_version(self, component_id: str, tag: str) -> MutationResult:
        return self._mutate(AddVersion(component_id=component_id, tag=tag))

    def add_test(
        self,
        setup_id: str,
        status: str,
        component_version_map: Mapping[str, str],
        description: Optional[str] = None,
    ) -> MutationResult:
        return self._mutate(AddTest(setup_id, status, dict(component_version_map), description))

    # GET
    def latest_version(self, component_id: str) -> Optional[Version]:
        return resolver.latest_version(self.document, component_id)

    def latest_versions(self, setup_id: Optional[str] = None) -> Dict[str, Optional[Version]]:
        return resolver.latest_versions(self.document, setup_id)

    def components_versions(self, component_ids: Iterable[str]) -> Dict[str, List[str]]:
        return resolver.components_versions(self.document, component_ids)

    def setup_components(self, setup_id: str) -> List[Component]:
        return resolver.setup_components(self.document, setup_id)

    def setup_tests(self, setup_id: str) -> List[TestResult]:
        return resolver.setup_tests(self.document, setup_id)

    def close(self) -> None:
        self.store.close()
