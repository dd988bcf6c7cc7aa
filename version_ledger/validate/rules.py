# version_ledger/validate/rules.py
"""
Validation rules for ledger mutations.

Each rule checks one mutation against a document snapshot and produces a Plan:
the entries to append plus any advisories. Rejections raise ValidationError;
nothing here touches a store.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from version_ledger.core.canon import component_set_key
from version_ledger.core.errors import Advisory, ValidationError
from version_ledger.core.types import Component, LedgerDocument, Setup, TestResult, Timestamp, Version
from version_ledger.resolve.resolver import find_version, parse_tag


@dataclass(frozen=True)
class AddComponent:
    id: str
    name: str


@dataclass(frozen=True)
class AddSetup:
    id: str
    name: str
    component_ids: Sequence[str] = ()


@dataclass(frozen=True)
class AddVersion:
    component_id: str
    tag: str


@dataclass(frozen=True)
class AddTest:
    setup_id: str
    status: str
    component_version_map: Mapping[str, str] = field(default_factory=dict)
    description: Optional[str] = None


Mutation = Union[AddComponent, AddSetup, AddVersion, AddTest]


@dataclass
class Plan:
    """Entries a mutation appends, grouped by collection, plus its advisories."""
    collection: str                     # primary collection, used in write messages
    components: List[Component] = field(default_factory=list)
    versions: List[Version] = field(default_factory=list)
    setups: List[Setup] = field(default_factory=list)
    tests: List[TestResult] = field(default_factory=list)
    advisories: List[Advisory] = field(default_factory=list)

    def apply_to(self, document: LedgerDocument) -> LedgerDocument:
        return document.extended(
            components=tuple(self.components),
            versions=tuple(self.versions),
            setups=tuple(self.setups),
            tests=tuple(self.tests),
        )

    @property
    def entries(self) -> Tuple[Any, ...]:
        return (*self.components, *self.versions, *self.setups, *self.tests)


def require_text(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'Expected {key} to be a non-empty string, but got: "{value}"', field=key)
    return value.strip()


def derive_component_name(component_id: str) -> str:
    """'user-api' -> 'User Api'"""
    return " ".join(part[:1].upper() + part[1:] for part in component_id.split("-"))


def plan_add_component(document: LedgerDocument, m: AddComponent) -> Plan:
    cid = require_text("id", m.id)
    name = require_text("name", m.name)

    if any(c.id == cid or c.name == name for c in document.components):
        raise ValidationError("Component with the same id or name already exists")

    return Plan("components", components=[Component(id=cid, name=name)])


def plan_add_setup(document: LedgerDocument, m: AddSetup) -> Plan:
    sid = require_text("id", m.id)
    name = require_text("name", m.name)

    if isinstance(m.component_ids, str) or not m.component_ids:
        raise ValidationError("Setup must include at least one component", field="componentIds")
    component_ids = sorted({require_text("componentIds", x) for x in m.component_ids})

    if any(s.id == sid or s.name == name for s in document.setups):
        raise ValidationError("Setup with the same id or name already exists")

    key = component_set_key(component_ids)
    if any(component_set_key(s.component_ids) == key for s in document.setups):
        raise ValidationError("Setup with the same list of components already exists")

    missing = [x for x in component_ids if document.component(x) is None]
    if missing:
        raise ValidationError(
            "Components with the following ids do not exist:\n" + "\n".join(missing),
            field="componentIds",
        )

    return Plan("setups", setups=[Setup(id=sid, name=name, component_ids=tuple(component_ids))])


def plan_add_version(document: LedgerDocument, m: AddVersion, now: Timestamp) -> Plan:
    cid = require_text("componentId", m.component_id)
    tag = require_text("tag", m.tag)
    if parse_tag(tag) is None:
        raise ValidationError(f'Tag "{tag}" is not a valid semantic version', field="tag")

    plan = Plan("versions")

    if document.component(cid) is None:
        name = derive_component_name(cid)
        taken = {c.name for c in document.components}
        if name in taken:
            name = cid
        if name in taken:
            raise ValidationError(
                f'Cannot auto-create component "{cid}": name "{name}" is already taken',
                field="componentId",
            )
        plan.components.append(Component(id=cid, name=name))
        plan.advisories.append(Advisory(
            "unknown_component",
            f'Component with id {cid} does not exist, it was added automatically as "{name}". '
            "Its parameters can be edited manually later.",
        ))

    existing = find_version(document, cid, tag)
    if existing is not None:
        plan.advisories.append(Advisory(
            "duplicate_version",
            f"Version {cid}:{tag} already exists (created at {existing.date}). "
            "The duplicate is recorded as well.",
        ))

    plan.versions.append(Version(component_id=cid, tag=tag, date=now))
    return plan


def _clean_version_map(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, Mapping) or not raw:
        raise ValidationError("Please specify a version for each of the components", field="componentVersionMap")
    return {
        require_text("componentVersionMap key", cid): require_text(f"version of {cid}", tag)
        for cid, tag in raw.items()
    }


def plan_add_test(document: LedgerDocument, m: AddTest, now: Timestamp) -> Plan:
    setup_id = require_text("setupId", m.setup_id)
    status = require_text("status", m.status)
    version_map = _clean_version_map(m.component_version_map)

    plan = Plan("tests")

    setup = document.setup(setup_id)
    if setup is None:
        plan.advisories.append(Advisory(
            "unknown_setup",
            f"Setup with id {setup_id} doesn't exist. The test result is saved, "
            f"but will only be visible in the raw tests data. Make sure to add {setup_id} to setups.",
        ))
    else:
        expected = set(setup.component_ids)
        missing = sorted(expected - version_map.keys())
        extra = sorted(version_map.keys() - expected)
        if missing:
            raise ValidationError(
                f"Please specify a version for each of the components; missing: {', '.join(missing)}",
                field="componentVersionMap",
            )
        if extra:
            raise ValidationError(
                f"Components {', '.join(extra)} are not part of setup {setup_id}",
                field="componentVersionMap",
            )

    for cid, tag in version_map.items():
        if find_version(document, cid, tag) is None:
            plan.advisories.append(Advisory(
                "unknown_version",
                f"{cid}:{tag} does not exist. The test result is saved, but make sure to add this version.",
            ))

    description = m.description.strip() if m.description is not None else None
    plan.tests.append(TestResult(
        setup_id=setup_id,
        status=status,
        component_version_map=version_map,
        description=description,
        date=now,
    ))
    return plan


def plan(document: LedgerDocument, mutation: Mutation, now: Timestamp) -> Plan:
    """Validate mutation against document and return what it appends."""
    if isinstance(mutation, AddComponent):
        return plan_add_component(document, mutation)
    if isinstance(mutation, AddSetup):
        return plan_add_setup(document, mutation)
    if isinstance(mutation, AddVersion):
        return plan_add_version(document, mutation, now)
    if isinstance(mutation, AddTest):
        return plan_add_test(document, mutation, now)
    raise TypeError(f"Unsupported mutation: {type(mutation).__name__}")
