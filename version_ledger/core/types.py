# version_ledger/core/types.py
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple, Union

from version_ledger.core.errors import CorruptDocument

# ISO 8601 UTC string; legacy documents carry epoch milliseconds
Timestamp = Union[str, int]

COLLECTIONS = ("components", "versions", "setups", "tests")


@dataclass(frozen=True)
class Component:
    """Independently versioned unit of software."""
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Setup:
    """Named, fixed set of components forming a testable configuration."""
    id: str
    name: str
    component_ids: Tuple[str, ...] = ()     # always sorted

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "componentIds": list(self.component_ids)}


@dataclass(frozen=True)
class Version:
    component_id: str
    tag: str
    date: Timestamp = ""

    def to_dict(self) -> dict:
        return {"componentId": self.component_id, "tag": self.tag, "date": self.date}


@dataclass(frozen=True)
class TestResult:
    """Outcome of a setup run against a concrete component -> tag mapping."""
    __test__ = False  # keep pytest from collecting this as a test class

    setup_id: str
    status: str
    component_version_map: Dict[str, str] = field(default_factory=dict)
    description: Optional[str] = None
    date: Timestamp = ""

    def to_dict(self) -> dict:
        d = {
            "setupId": self.setup_id,
            "status": self.status,
            "componentVersionMap": dict(self.component_version_map),
            "date": self.date,
        }
        if self.description is not None:
            d["description"] = self.description
        return d


@dataclass(frozen=True)
class LedgerDocument:
    """The aggregate persisted as a single blob."""
    components: Tuple[Component, ...] = ()
    versions: Tuple[Version, ...] = ()
    setups: Tuple[Setup, ...] = ()
    tests: Tuple[TestResult, ...] = ()

    def to_dict(self) -> dict:
        return {
            "components": [c.to_dict() for c in self.components],
            "versions": [v.to_dict() for v in self.versions],
            "setups": [s.to_dict() for s in self.setups],
            "tests": [t.to_dict() for t in self.tests],
        }

    def extended(self, **entries: Tuple[Any, ...]) -> "LedgerDocument":
        """Return a copy with the given entries appended to their collections."""
        changes = {}
        for collection, new in entries.items():
            if collection not in COLLECTIONS:
                raise KeyError(f"Unknown collection: {collection}")
            if new:
                changes[collection] = getattr(self, collection) + tuple(new)
        return replace(self, **changes)

    def component(self, component_id: str) -> Optional[Component]:
        return next((c for c in self.components if c.id == component_id), None)

    def setup(self, setup_id: str) -> Optional[Setup]:
        return next((s for s in self.setups if s.id == setup_id), None)

    @classmethod
    def from_dict(cls, data: Any) -> "LedgerDocument":
        if not isinstance(data, dict):
            raise CorruptDocument(f"Ledger document must be a JSON object, got {type(data).__name__}")
        for key in COLLECTIONS:
            if not isinstance(data.get(key), list):
                raise CorruptDocument(f"Ledger document is missing the '{key}' array")

        try:
            return cls(
                components=tuple(Component(id=c["id"], name=c["name"]) for c in data["components"]),
                versions=tuple(
                    Version(component_id=v["componentId"], tag=v["tag"], date=v.get("date", ""))
                    for v in data["versions"]
                ),
                setups=tuple(
                    Setup(id=s["id"], name=s["name"], component_ids=tuple(sorted(s["componentIds"])))
                    for s in data["setups"]
                ),
                tests=tuple(
                    TestResult(
                        setup_id=t["setupId"],
                        status=t["status"],
                        component_version_map=dict(t["componentVersionMap"]),
                        description=t.get("description"),
                        date=t.get("date", ""),
                    )
                    for t in data["tests"]
                ),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise CorruptDocument(f"Malformed ledger entry: {e!r}") from e
