"""
CloudEvents Implementation for Herald

A single immutable event type covers every supported dialect. The dialect
(``spec_version``) decides which core attributes are allowed; anything that
is not a core attribute lives in the read-only ``extensions`` mapping.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any
from urllib.parse import urlsplit
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from herald.protocol.content_type import ContentType
from herald.protocol.errors import MalformedEventError
from herald.protocol.frozen import freeze, json_equal
from herald.protocol.schema import CORE_FIELDS, RESERVED_NAMES, SpecVersion, get_schema

EXTENSION_NAME = re.compile(r"^[a-z0-9]+$")
_URI_FORBIDDEN = re.compile(r"[\s\x00-\x1f\x7f]")

# CloudEvent field name -> canonical attribute key
_FIELD_KEYS = {field_name: key for key, field_name in CORE_FIELDS.items()}


def format_time(value: datetime) -> str:
    """RFC 3339 representation, using 'Z' for UTC."""
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _check_uri_reference(name: str, value: str) -> str:
    if _URI_FORBIDDEN.search(value):
        raise ValueError(f"{name} is not a valid URI reference: {value!r}")
    try:
        urlsplit(value)
    except ValueError as e:
        raise ValueError(f"{name} is not a valid URI reference: {e}") from e
    return value


class CloudEvent(BaseModel):
    """
    CloudEvents Specification Implementation (0.1, 0.2, 0.3 and 1.0).

    Attributes:
        spec_version: The CloudEvents dialect of the event.
        id: Identifies the event.
        source: Identifies the context in which an event happened (URI reference).
        type: Describes the type of event related to the originating occurrence.
        data_content_type: Content type of the data value.
        data_schema: Identifies the schema that data adheres to.
        subject: Describes the subject of the event in the context of the source.
        time: Timestamp of when the occurrence happened, always timezone-aware.
        data: The event payload: bytes, text, or a JSON-compatible value.
        extensions: Extension attributes by lower-case alphanumeric name.

    Instances are immutable. Use with_changes() to derive a modified copy.
    Construction failures raise MalformedEventError.
    """

    # Required Attributes
    spec_version: SpecVersion = Field(
        SpecVersion.V1_0, validation_alias=AliasChoices("spec_version", "specversion")
    )
    id: str = Field(min_length=1)
    source: str = Field(min_length=1)
    type: str = Field(min_length=1)

    # Optional Attributes
    data_content_type: str | None = Field(
        None, min_length=1, validation_alias=AliasChoices("data_content_type", "datacontenttype")
    )
    data_schema: str | None = Field(
        None, min_length=1, validation_alias=AliasChoices("data_schema", "dataschema")
    )
    subject: str | None = Field(None, min_length=1)
    time: datetime | None = None
    data: Any | None = None

    # Extensions
    extensions: Mapping[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **attributes: Any) -> None:
        # Reject unknown dialects up front so the error names the version.
        get_schema(attributes.get("spec_version", attributes.get("specversion", SpecVersion.V1_0)))
        try:
            super().__init__(**attributes)
        except ValidationError as e:
            raise MalformedEventError(_describe(e)) from e

    @field_validator("source")
    @classmethod
    def _validate_source(cls, value: str) -> str:
        return _check_uri_reference("source", value)

    @field_validator("data_schema")
    @classmethod
    def _validate_data_schema(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _check_uri_reference("dataschema", value)

    @field_validator("time")
    @classmethod
    def _normalize_time(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("data")
    @classmethod
    def _freeze_data(cls, value: Any) -> Any:
        return freeze(value)

    @field_validator("extensions")
    @classmethod
    def _validate_extensions(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        checked: dict[str, Any] = {}
        for name, ext_value in value.items():
            if not isinstance(name, str) or not EXTENSION_NAME.match(name):
                raise ValueError(f"invalid extension attribute name {name!r}")
            if name in RESERVED_NAMES:
                raise ValueError(f"extension attribute {name!r} collides with a core attribute")
            checked[name] = freeze(ext_value)
        return MappingProxyType(checked)

    @model_validator(mode="after")
    def _check_dialect(self) -> CloudEvent:
        schema = get_schema(self.spec_version)
        for field_name, key in _FIELD_KEYS.items():
            if key in schema.attributes:
                continue
            if getattr(self, field_name) is not None:
                raise ValueError(f"{key} is not defined for specversion {schema.version.value}")
        return self

    # ----------------------------------------------------------------------
    # Accessors
    # ----------------------------------------------------------------------

    @property
    def specversion(self) -> str:
        return self.spec_version.value

    @property
    def content_type(self) -> ContentType | None:
        """The parsed data_content_type, or None."""
        return ContentType.parse(self.data_content_type)

    @property
    def time_string(self) -> str | None:
        if self.time is None:
            return None
        return format_time(self.time)

    def get_extension(self, name: str) -> Any | None:
        """Value of an extension attribute, or None when it is not set."""
        return self.extensions.get(name)

    def get_attribute(self, key: str) -> Any | None:
        """
        Value of a core attribute (by canonical 1.0 name) or an extension.
        Returns None when the attribute is absent.
        """
        field_name = CORE_FIELDS.get(key)
        if field_name is not None:
            value = getattr(self, field_name)
            return value.value if isinstance(value, SpecVersion) else value
        return self.extensions.get(key)

    def attributes(self) -> dict[str, Any]:
        """Canonical attribute key -> value for every attribute that is set."""
        result: dict[str, Any] = {}
        for key, field_name in CORE_FIELDS.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            if isinstance(value, SpecVersion):
                value = value.value
            elif isinstance(value, datetime):
                value = format_time(value)
            result[key] = value
        result.update(self.extensions)
        return result

    def to_dict(self) -> dict[str, Any]:
        """Attributes plus data, keyed by canonical 1.0 names."""
        result = self.attributes()
        if self.data is not None:
            result["data"] = self.data
        return result

    # ----------------------------------------------------------------------
    # Derivation
    # ----------------------------------------------------------------------

    def with_changes(self, **changes: Any) -> CloudEvent:
        """
        Return a new event with the given fields replaced. Fields may be named
        by attribute (``data_content_type``) or canonical key
        (``datacontenttype``). Passing None for an optional attribute removes it.
        """
        values: dict[str, Any] = {
            name: getattr(self, name) for name in type(self).model_fields
        }
        values["extensions"] = dict(self.extensions)
        values.update({CORE_FIELDS.get(key, key): value for key, value in changes.items()})
        return type(self)(**values)

    @classmethod
    def create(
        cls,
        source: str,
        type: str,
        data: Any | None = None,
        subject: str | None = None,
        data_content_type: str | None = None,
        extensions: Mapping[str, Any] | None = None,
    ) -> CloudEvent:
        """Factory method creating a 1.0 event with a fresh id and the current time."""
        return cls(
            id=str(uuid4()),
            source=source,
            type=type,
            data=data,
            subject=subject,
            data_content_type=data_content_type,
            time=datetime.now(UTC),
            extensions=extensions or {},
        )

    # ----------------------------------------------------------------------
    # Equality
    # ----------------------------------------------------------------------

    def _identity(self) -> tuple:
        return (
            self.spec_version,
            self.id,
            self.source,
            self.type,
            self.data_content_type,
            self.data_schema,
            self.subject,
            self.time,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CloudEvent):
            return NotImplemented
        return (
            self._identity() == other._identity()
            and json_equal(dict(self.extensions), dict(other.extensions))
            and json_equal(self.data, other.data)
        )

    def __hash__(self) -> int:
        return hash((self.spec_version, self.id, self.source, self.type))

    def __repr__(self) -> str:
        return (
            f"CloudEvent(specversion={self.specversion!r}, id={self.id!r}, "
            f"source={self.source!r}, type={self.type!r})"
        )


def _describe(error: ValidationError) -> str:
    """Single-line description naming the offending attribute."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"]) or "event"
        key = _FIELD_KEYS.get(loc, loc)
        message = item["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        parts.append(f"{key}: {message}")
    return "; ".join(parts)
