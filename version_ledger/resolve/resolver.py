# version_ledger/resolve/resolver.py
"""
Read-side resolution over a ledger document: latest versions and version listings.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import semver

from version_ledger.core.errors import Advisory, NotFound
from version_ledger.core.types import Component, LedgerDocument, TestResult, Version

logger = logging.getLogger(__name__)


def parse_tag(tag: str) -> Optional[semver.Version]:
    """Parse a semantic-version tag, tolerating one leading 'v' or '='. None if invalid."""
    text = tag.strip()
    if text[:1] in ("v", "="):
        text = text[1:]
    try:
        return semver.Version.parse(text)
    except (ValueError, TypeError):
        return None


def precedence_key(tag: str) -> Tuple:
    # unparseable legacy tags rank below every valid one
    parsed = parse_tag(tag)
    if parsed is None:
        return (0, None, tag)
    return (1, parsed, "")


def same_tag(a: str, b: str) -> bool:
    """Tags naming the same version: "v1.0.0" matches "1.0.0", build metadata must agree."""
    pa, pb = parse_tag(a), parse_tag(b)
    if pa is None or pb is None:
        return a.strip() == b.strip()
    return pa == pb and pa.build == pb.build


def find_version(document: LedgerDocument, component_id: str, tag: str) -> Optional[Version]:
    return next(
        (v for v in document.versions if v.component_id == component_id and same_tag(v.tag, tag)),
        None,
    )


def sort_tags_desc(versions: Iterable[Version]) -> List[Version]:
    return sorted(versions, key=lambda v: precedence_key(v.tag), reverse=True)


def latest_version(document: LedgerDocument, component_id: str) -> Optional[Version]:
    candidates = [v for v in document.versions if v.component_id == component_id]
    if not candidates:
        return None
    return max(candidates, key=lambda v: precedence_key(v.tag))


def latest_versions(
    document: LedgerDocument, setup_id: Optional[str] = None
) -> Dict[str, Optional[Version]]:
    """
    Latest version per component of a setup, or of every known component when
    setup_id is omitted. Components without any recorded version map to None.
    """
    if setup_id is not None:
        setup = document.setup(setup_id)
        if setup is None:
            raise NotFound(f'Setup with id "{setup_id}" not found')
        component_ids = list(setup.component_ids)
    else:
        component_ids = [c.id for c in document.components]

    return {cid: latest_version(document, cid) for cid in component_ids}


def components_versions(document: LedgerDocument, component_ids: Iterable[str]) -> Dict[str, List[str]]:
    """All recorded tags per requested component, highest precedence first, duplicates kept."""
    result: Dict[str, List[str]] = {cid: [] for cid in component_ids}
    for v in sort_tags_desc(v for v in document.versions if v.component_id in result):
        result[v.component_id].append(v.tag)
    return result


def setup_components(document: LedgerDocument, setup_id: str) -> List[Component]:
    setup = document.setup(setup_id)
    if setup is None:
        raise NotFound(f'Setup with id "{setup_id}" not found')
    components = [c for c in document.components if c.id in setup.component_ids]
    if not components:
        logger.warning("%s", Advisory("empty_setup", f"Setup {setup_id} appears to have no components"))
    return components


def setup_tests(document: LedgerDocument, setup_id: str) -> List[TestResult]:
    return [t for t in document.tests if t.setup_id == setup_id]
