"""
Attribute Schema

One descriptor per supported CloudEvents dialect. Each descriptor lists the
mandatory and optional core attributes of the dialect and the wire name used
for each of them, so the codec never branches on version strings.

Canonical attribute keys are the CloudEvents 1.0 names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from herald.protocol.errors import UnsupportedSpecVersionError


class SpecVersion(str, Enum):
    """Supported CloudEvents dialects."""
    V0_1 = "0.1"
    V0_2 = "0.2"
    V0_3 = "0.3"
    V1_0 = "1.0"


# Canonical attribute key -> CloudEvent field name
CORE_FIELDS: Mapping[str, str] = MappingProxyType({
    "specversion": "spec_version",
    "id": "id",
    "source": "source",
    "type": "type",
    "time": "time",
    "datacontenttype": "data_content_type",
    "dataschema": "data_schema",
    "subject": "subject",
})

MANDATORY = frozenset({"specversion", "id", "source", "type"})


@dataclass(frozen=True)
class AttributeSchema:
    """
    Attribute table for a single dialect.

    Attributes:
        version: The dialect this schema describes.
        optional: Canonical keys of optional core attributes.
        aliases: Canonical key -> wire key, only where they differ.
        extension_aliases: Extension name -> wire key, for dialect-specific
            attributes that have no 1.0 counterpart and are carried as
            extensions.
        extensions_container: Wire key under which extensions are nested,
            or None when they sit at the top level.
        reserved: Wire keys consumed by the codec itself.
    """
    version: SpecVersion
    optional: frozenset[str]
    aliases: Mapping[str, str] = field(default_factory=dict)
    extension_aliases: Mapping[str, str] = field(default_factory=dict)
    extensions_container: str | None = None
    reserved: frozenset[str] = frozenset({"data", "data_base64"})

    @property
    def mandatory(self) -> frozenset[str]:
        return MANDATORY

    @property
    def attributes(self) -> frozenset[str]:
        """All core attributes defined by this dialect."""
        return self.mandatory | self.optional

    def wire_name(self, key: str) -> str:
        """Wire name for a canonical core key or extension name."""
        return self.aliases.get(key) or self.extension_aliases.get(key) or key

    def wire_names(self) -> dict[str, str]:
        """Canonical key -> wire key for every core attribute of the dialect."""
        return {key: self.wire_name(key) for key in CORE_FIELDS if key in self.attributes}

    def canonical_name(self, wire_key: str) -> str | None:
        """Canonical core key for a wire key, or None if it is not a core attribute."""
        for key, wire in self.wire_names().items():
            if wire == wire_key:
                return key
        return None

    def is_reserved(self, wire_key: str) -> bool:
        if wire_key in self.reserved:
            return True
        return self.extensions_container is not None and wire_key == self.extensions_container


_V0_1 = AttributeSchema(
    version=SpecVersion.V0_1,
    optional=frozenset({"time", "dataschema", "datacontenttype"}),
    aliases=MappingProxyType({
        "specversion": "cloudEventsVersion",
        "id": "eventID",
        "type": "eventType",
        "time": "eventTime",
        "dataschema": "schemaURL",
        "datacontenttype": "contentType",
    }),
    extension_aliases=MappingProxyType({"eventtypeversion": "eventTypeVersion"}),
    extensions_container="extensions",
)

_V0_2 = AttributeSchema(
    version=SpecVersion.V0_2,
    optional=frozenset({"time", "dataschema", "datacontenttype"}),
    aliases=MappingProxyType({
        "dataschema": "schemaurl",
        "datacontenttype": "contenttype",
    }),
)

_V0_3 = AttributeSchema(
    version=SpecVersion.V0_3,
    optional=frozenset({"time", "dataschema", "datacontenttype", "subject"}),
    aliases=MappingProxyType({"dataschema": "schemaurl"}),
    reserved=frozenset({"data", "data_base64", "datacontentencoding"}),
)

_V1_0 = AttributeSchema(
    version=SpecVersion.V1_0,
    optional=frozenset({"time", "dataschema", "datacontenttype", "subject"}),
)

SCHEMAS: Mapping[SpecVersion, AttributeSchema] = MappingProxyType({
    schema.version: schema for schema in (_V0_1, _V0_2, _V0_3, _V1_0)
})

# Every wire key that may carry the spec version, in lookup order.
SPEC_VERSION_KEYS: tuple[str, ...] = ("specversion", "cloudEventsVersion")


def get_schema(version: object) -> AttributeSchema:
    """Return the schema for a dialect, raising for unsupported versions."""
    if isinstance(version, SpecVersion):
        return SCHEMAS[version]
    if not isinstance(version, str):
        raise UnsupportedSpecVersionError(version)
    try:
        return SCHEMAS[SpecVersion(version)]
    except ValueError:
        raise UnsupportedSpecVersionError(version) from None


def reserved_names() -> frozenset[str]:
    """
    Lower-cased names an extension may never take: every core key and wire
    alias of every dialect plus the codec's own keys.
    """
    names: set[str] = set(CORE_FIELDS)
    for schema in SCHEMAS.values():
        names.update(alias.lower() for alias in schema.aliases.values())
        names.update(schema.reserved)
        if schema.extensions_container:
            names.add(schema.extensions_container.lower())
    return frozenset(names)


RESERVED_NAMES: frozenset[str] = reserved_names()
