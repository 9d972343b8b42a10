import pytest

from herald.protocol.errors import MalformedEventError, UnsupportedSpecVersionError
from herald.protocol.schema import (
    MANDATORY,
    RESERVED_NAMES,
    SCHEMAS,
    SpecVersion,
    get_schema,
)


def test_every_dialect_has_a_schema():
    assert set(SCHEMAS) == set(SpecVersion)
    for version, schema in SCHEMAS.items():
        assert schema.version is version
        assert schema.mandatory == MANDATORY


def test_get_schema_accepts_strings_and_enum():
    assert get_schema("1.0") is get_schema(SpecVersion.V1_0)
    assert get_schema("0.3").version is SpecVersion.V0_3


def test_get_schema_unsupported_version():
    with pytest.raises(UnsupportedSpecVersionError) as exc:
        get_schema("9.9")
    assert exc.value.spec_version == "9.9"
    assert "9.9" in str(exc.value)
    # Unsupported versions are a kind of malformed event
    assert isinstance(exc.value, MalformedEventError)


def test_get_schema_rejects_non_string():
    with pytest.raises(UnsupportedSpecVersionError):
        get_schema(1.0)


def test_subject_only_in_later_dialects():
    assert "subject" not in get_schema("0.1").attributes
    assert "subject" not in get_schema("0.2").attributes
    assert "subject" in get_schema("0.3").attributes
    assert "subject" in get_schema("1.0").attributes


@pytest.mark.parametrize("version,key,wire", [
    ("0.1", "specversion", "cloudEventsVersion"),
    ("0.1", "id", "eventID"),
    ("0.1", "type", "eventType"),
    ("0.1", "time", "eventTime"),
    ("0.1", "dataschema", "schemaURL"),
    ("0.1", "datacontenttype", "contentType"),
    ("0.2", "dataschema", "schemaurl"),
    ("0.2", "datacontenttype", "contenttype"),
    ("0.3", "dataschema", "schemaurl"),
    ("0.3", "datacontenttype", "datacontenttype"),
    ("1.0", "dataschema", "dataschema"),
])
def test_wire_names(version, key, wire):
    schema = get_schema(version)
    assert schema.wire_name(key) == wire
    assert schema.canonical_name(wire) == key


def test_canonical_name_of_extension_is_none():
    assert get_schema("1.0").canonical_name("myext") is None


def test_v01_extensions_container():
    schema = get_schema("0.1")
    assert schema.extensions_container == "extensions"
    assert schema.is_reserved("extensions")
    assert schema.wire_name("eventtypeversion") == "eventTypeVersion"
    assert not get_schema("1.0").is_reserved("extensions")


def test_v03_reserves_datacontentencoding():
    assert get_schema("0.3").is_reserved("datacontentencoding")
    assert not get_schema("1.0").is_reserved("datacontentencoding")


def test_reserved_names():
    for name in ("specversion", "id", "source", "type", "data", "data_base64",
                 "schemaurl", "eventid", "cloudeventsversion", "contenttype"):
        assert name in RESERVED_NAMES
    assert "eventtypeversion" not in RESERVED_NAMES
    assert "traceparent" not in RESERVED_NAMES
