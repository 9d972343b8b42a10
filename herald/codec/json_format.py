"""
JSON Event Format (structured and batch content modes)
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping, Sequence
from typing import Any

from herald.infra.logging import get_logger
from herald.protocol.cloudevents import CloudEvent, format_time
from herald.protocol.errors import InvalidJsonError, MalformedEventError
from herald.protocol.schema import CORE_FIELDS, SPEC_VERSION_KEYS, AttributeSchema, get_schema

logger = get_logger(__name__)


def parse_json(content: str | bytes, charset: str | None = None) -> Any:
    """
    Parse a JSON document, decoding bytes with the given charset (UTF-8 by
    default). Raises InvalidJsonError on any decoding or syntax failure.
    """
    if isinstance(content, bytes | bytearray):
        try:
            content = bytes(content).decode(charset or "utf-8")
        except (UnicodeDecodeError, LookupError) as e:
            raise InvalidJsonError(f"Body is not valid {charset or 'utf-8'} text: {e}") from e
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidJsonError(f"Body is not valid JSON: {e.msg} at line {e.lineno} column {e.colno}") from e


class JsonFormat:
    """
    Encoder/decoder between CloudEvent and the CloudEvents JSON format.

    Attribute names on the wire follow the event's dialect. Binary data is
    carried base64-encoded under ``data_base64``; any other data value is
    embedded under ``data``.
    """

    def __init__(self, sort_keys: bool = False):
        self.sort_keys = sort_keys

    # ----------------------------------------------------------------------
    # Single events
    # ----------------------------------------------------------------------

    def encode(self, event: CloudEvent) -> str:
        return self._dump(self.to_structure(event))

    def decode(self, content: str | bytes, charset: str | None = None) -> CloudEvent:
        event = self.from_structure(parse_json(content, charset))
        logger.debug("decoded structured event", event_id=event.id, specversion=event.specversion)
        return event

    # ----------------------------------------------------------------------
    # Batches
    # ----------------------------------------------------------------------

    def encode_batch(self, events: Sequence[CloudEvent]) -> str:
        return self._dump([self.to_structure(event) for event in events])

    def decode_batch(
        self, content: str | bytes, charset: str | None = None, max_events: int | None = None
    ) -> list[CloudEvent]:
        """Decode a JSON array of events. The array length is checked against
        max_events before any event is decoded."""
        structures = parse_json(content, charset)
        if not isinstance(structures, list):
            raise MalformedEventError(
                f"Batch body must be a JSON array, got {type(structures).__name__}"
            )
        if max_events is not None and len(structures) > max_events:
            raise MalformedEventError(f"Batch of {len(structures)} events exceeds the limit of {max_events}")
        events = [self.from_structure(structure) for structure in structures]
        logger.debug("decoded event batch", count=len(events))
        return events

    # ----------------------------------------------------------------------
    # Structure conversion
    # ----------------------------------------------------------------------

    def to_structure(self, event: CloudEvent) -> dict[str, Any]:
        """Convert an event into a JSON-ready dict using its dialect's names."""
        schema = get_schema(event.spec_version)
        structure: dict[str, Any] = {}

        for key, wire in schema.wire_names().items():
            value = event.get_attribute(key)
            if value is None:
                continue
            if key == "time":
                value = format_time(value)
            structure[wire] = value

        for name, value in event.extensions.items():
            if name in schema.extension_aliases:
                structure[schema.extension_aliases[name]] = value
            elif schema.extensions_container:
                structure.setdefault(schema.extensions_container, {})[name] = value
            else:
                structure[name] = value

        if isinstance(event.data, bytes | bytearray):
            structure["data_base64"] = base64.b64encode(bytes(event.data)).decode("ascii")
        elif event.data is not None:
            structure["data"] = event.data

        return structure

    def from_structure(self, structure: Any) -> CloudEvent:
        """Build an event from a parsed JSON object."""
        if not isinstance(structure, Mapping):
            raise MalformedEventError(
                f"Structured event must be a JSON object, got {type(structure).__name__}"
            )

        version = next((structure[k] for k in SPEC_VERSION_KEYS if k in structure), None)
        if version is None:
            raise MalformedEventError("The specversion field is required")
        schema = get_schema(version)

        attributes: dict[str, Any] = {}
        consumed: set[str] = set()
        for key, wire in schema.wire_names().items():
            consumed.add(wire)
            if wire in structure:
                attributes[CORE_FIELDS[key]] = structure[wire]

        attributes["extensions"] = self._read_extensions(structure, schema, consumed)
        attributes["data"] = self._read_data(structure, schema)
        return CloudEvent(**attributes)

    # ----------------------------------------------------------------------
    # Helpers
    # ----------------------------------------------------------------------

    def _read_extensions(
        self, structure: Mapping[str, Any], schema: AttributeSchema, consumed: set[str]
    ) -> dict[str, Any]:
        extensions: dict[str, Any] = {}
        aliased = {wire: name for name, wire in schema.extension_aliases.items()}

        for wire_key, value in structure.items():
            if wire_key in consumed or schema.is_reserved(wire_key):
                continue
            extensions[aliased.get(wire_key, wire_key)] = value

        if schema.extensions_container and schema.extensions_container in structure:
            nested = structure[schema.extensions_container]
            if nested is not None:
                if not isinstance(nested, Mapping):
                    raise MalformedEventError(
                        f"The {schema.extensions_container} field must be a JSON object"
                    )
                extensions.update(nested)

        return extensions

    def _read_data(self, structure: Mapping[str, Any], schema: AttributeSchema) -> Any:
        if "data_base64" in structure:
            return _b64decode("data_base64", structure["data_base64"])
        data = structure.get("data")
        if "datacontentencoding" in schema.reserved and isinstance(data, str):
            encoding = structure.get("datacontentencoding")
            if isinstance(encoding, str) and encoding.lower() == "base64":
                return _b64decode("data", data)
        return data

    def _dump(self, value: Any) -> str:
        try:
            return json.dumps(value, sort_keys=self.sort_keys, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise MalformedEventError(f"Event is not JSON serializable: {e}") from e


def _b64decode(name: str, value: Any) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise MalformedEventError(f"The {name} field must be a base64 string")
    # Line-wrapped base64 (RFC 2045 style) is accepted.
    try:
        return base64.b64decode("".join(value.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEventError(f"The {name} field is not valid base64: {e}") from e
