# tests/test_core.py
import json
import pytest

from version_ledger.core.types import Component, LedgerDocument, Setup, TestResult, Version
from version_ledger.core.encoding import utf8_to_b64, b64_to_utf8
from version_ledger.core.canon import (
    canonical_json,
    component_set_key,
    deserialize_document,
    serialize_document,
)
from version_ledger.core.errors import CorruptDocument


@pytest.fixture
def sample_document():
    return LedgerDocument(
        components=(Component("api", "API"), Component("web-ui", "Web Ui")),
        versions=(Version("api", "1.0.0", "2026-01-31T10:00:00.000Z"),),
        setups=(Setup("full", "Full stack", ("api", "web-ui")),),
        tests=(TestResult("full", "passed", {"api": "1.0.0", "web-ui": "0.3.0"}, date="2026-01-31T11:00:00.000Z"),),
    )


def test_entities_immutable():
    c = Component("api", "API")
    with pytest.raises(AttributeError):
        c.name = "Other"


def test_document_to_dict_uses_wire_keys(sample_document):
    d = sample_document.to_dict()
    assert set(d) == {"components", "versions", "setups", "tests"}
    assert d["versions"][0] == {"componentId": "api", "tag": "1.0.0", "date": "2026-01-31T10:00:00.000Z"}
    assert d["setups"][0]["componentIds"] == ["api", "web-ui"]
    assert d["tests"][0]["componentVersionMap"] == {"api": "1.0.0", "web-ui": "0.3.0"}
    assert "description" not in d["tests"][0]


def test_document_survives_serialization(sample_document):
    assert deserialize_document(serialize_document(sample_document)) == sample_document


def test_extended_appends_without_touching_original(sample_document):
    extended = sample_document.extended(versions=(Version("api", "1.1.0", "x"),))
    assert len(extended.versions) == 2
    assert len(sample_document.versions) == 1
    assert extended.components is sample_document.components


def test_extended_rejects_unknown_collection(sample_document):
    with pytest.raises(KeyError):
        sample_document.extended(builds=(1,))


def test_from_dict_reads_legacy_epoch_dates():
    doc = LedgerDocument.from_dict({
        "components": [],
        "versions": [{"componentId": "api", "tag": "1.0.0", "date": 1596200000000}],
        "setups": [{"id": "s", "name": "S", "componentIds": ["b", "a"]}],
        "tests": [],
    })
    assert doc.versions[0].date == 1596200000000
    assert doc.setups[0].component_ids == ("a", "b")


@pytest.mark.parametrize("payload", [
    "[]",
    '{"components": [], "versions": [], "setups": []}',
    '{"components": {}, "versions": [], "setups": [], "tests": []}',
    '{"components": [{"id": "api"}], "versions": [], "setups": [], "tests": []}',
    "not json at all",
])
def test_corrupt_documents_rejected(payload):
    with pytest.raises(CorruptDocument):
        deserialize_document(payload)


def test_base64_text_roundtrip():
    original = json.dumps({"name": "Überwachung ✓"})
    encoded = utf8_to_b64(original)
    assert b64_to_utf8(encoded) == original
    # GitHub wraps content at 60 columns
    wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
    assert b64_to_utf8(wrapped) == original


def test_invalid_base64_is_corrupt():
    with pytest.raises(CorruptDocument):
        b64_to_utf8("!!!not-base64!!!")


def test_canonical_json_sorting():
    canon = canonical_json({"z": 1, "a": "hello", "nested": {"b": 2, "a": 1}}).decode("utf-8")
    assert canon == '{"a":"hello","nested":{"a":1,"b":2},"z":1}'


def test_component_set_key_is_order_independent():
    assert component_set_key(["web", "api", "db"]) == component_set_key(["db", "web", "api"])
    assert component_set_key(["api", "api"]) == component_set_key(["api"])
    assert component_set_key(["api", "web"]) != component_set_key(["api", "webx"])
