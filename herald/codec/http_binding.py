"""
HTTP Binding

Selects the CloudEvents content mode of an HTTP request from its headers and
decodes (or encodes) events accordingly:

    Content-Type: application/cloudevents+json        -> structured
    Content-Type: application/cloudevents-batch+json  -> batch
    ce-specversion / ce-id / ce-source / ce-type      -> binary

Mode selection is a pure function of the headers. The body must already be
buffered by the caller.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from types import MappingProxyType
from typing import Any, Union
from urllib.parse import unquote

from herald.codec.json_format import JsonFormat, parse_json
from herald.config.resolver import ResolverConfig
from herald.infra.logging import get_logger
from herald.protocol.cloudevents import CloudEvent
from herald.protocol.content_type import ContentType
from herald.protocol.errors import AmbiguousEncodingError, MalformedEventError, UnsupportedSpecVersionError
from herald.protocol.interfaces import EventFormat
from herald.protocol.schema import CORE_FIELDS, SPEC_VERSION_KEYS, AttributeSchema, get_schema

logger = get_logger(__name__)

HeadersLike = Union[Mapping[str, Any], Iterable[tuple[Any, Any]]]

STRUCTURED_SUBTYPE = "cloudevents"
BATCH_SUBTYPE = "cloudevents-batch"
BINARY_REQUIRED = ("id", "source", "type")


class ContentMode(str, Enum):
    """CloudEvents HTTP content modes."""
    BINARY = "binary"
    STRUCTURED = "structured"
    BATCH = "batch"


def normalize_headers(headers: HeadersLike | None) -> dict[str, str]:
    """
    Lower-case header names and coerce values to str. Accepts a mapping or
    an iterable of (name, value) pairs; raw ASGI bytes are decoded as latin-1.
    Repeated headers are joined with ', '.
    """
    if headers is None:
        return {}
    items = headers.items() if isinstance(headers, Mapping) else headers
    result: dict[str, str] = {}
    for name, value in items:
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        key = str(name).strip().lower()
        value = str(value)
        result[key] = f"{result[key]}, {value}" if key in result else value
    return result


def percent_decode(value: str) -> str:
    """Decode %XX escapes of a binary-mode header value as UTF-8."""
    try:
        return unquote(value, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise MalformedEventError(f"Header value is not valid percent-encoded UTF-8: {value!r}") from e


def percent_encode(value: str) -> str:
    """
    Percent-encode a binary-mode header value: every byte outside printable
    ASCII, plus space, double quote and percent.
    """
    out = []
    for byte in value.encode("utf-8"):
        if 0x21 <= byte <= 0x7E and byte not in (0x22, 0x25):
            out.append(chr(byte))
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)


class HttpBinding:
    """
    Decoder/encoder for the CloudEvents HTTP protocol binding.

    Structured formats are looked up by the structured syntax suffix of the
    content type; JSON is registered by default.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        formats: Mapping[str, EventFormat] | None = None,
    ):
        self.config = config or ResolverConfig()
        self.prefix = self.config.binary_header_prefix
        registered = {"json": JsonFormat()}
        registered.update({name.strip().lower(): fmt for name, fmt in (formats or {}).items()})
        self._formats: Mapping[str, EventFormat] = MappingProxyType(registered)

    @property
    def formats(self) -> Mapping[str, EventFormat]:
        return self._formats

    # ----------------------------------------------------------------------
    # Mode detection
    # ----------------------------------------------------------------------

    def detect_mode(self, headers: HeadersLike | None) -> ContentMode | None:
        """Content mode implied by the headers, or None if there is none."""
        normalized = normalize_headers(headers)
        content_type = ContentType.parse(normalized.get("content-type"))
        if content_type is not None and content_type.media_type == "application":
            if content_type.subtype_base == STRUCTURED_SUBTYPE:
                return ContentMode.STRUCTURED
            if content_type.subtype_base == BATCH_SUBTYPE:
                return ContentMode.BATCH
        if self._has_binary_headers(normalized):
            return ContentMode.BINARY
        return None

    def _spec_version_header(self, headers: Mapping[str, str]) -> str | None:
        for key in SPEC_VERSION_KEYS:
            value = headers.get(f"{self.prefix}{key.lower()}")
            if value is not None:
                return percent_decode(value)
        return None

    def _has_binary_headers(self, headers: Mapping[str, str]) -> bool:
        version = self._spec_version_header(headers)
        if version is None:
            return False
        try:
            schema = get_schema(version)
        except UnsupportedSpecVersionError:
            # Still binary mode; decoding reports the version.
            names = BINARY_REQUIRED
        else:
            names = tuple(schema.wire_name(key) for key in BINARY_REQUIRED)
        return all(f"{self.prefix}{name.lower()}" in headers for name in names)

    # ----------------------------------------------------------------------
    # Decoding
    # ----------------------------------------------------------------------

    def decode(
        self, headers: HeadersLike | None, body: bytes | str | None
    ) -> CloudEvent | list[CloudEvent]:
        """
        Decode a request into one event (structured/binary) or a list
        (batch). Raises AmbiguousEncodingError when no mode applies.
        """
        normalized = normalize_headers(headers)
        mode = self.detect_mode(normalized)
        if mode is None:
            raise AmbiguousEncodingError(
                "Request has neither a CloudEvents content type nor the "
                f"{self.prefix}specversion/id/source/type headers"
            )
        if mode is ContentMode.BINARY:
            return self.decode_binary(normalized, body)

        content_type = ContentType.parse(normalized.get("content-type"))
        fmt = self._format_for(content_type)
        content = _as_bytes(body)
        if mode is ContentMode.STRUCTURED:
            return fmt.decode(content, content_type.charset)

        return fmt.decode_batch(content, content_type.charset, max_events=self.config.max_batch_size)

    def decode_binary(self, headers: HeadersLike | None, body: bytes | str | None) -> CloudEvent:
        """Decode a binary-mode request: attributes from headers, data from the body."""
        normalized = normalize_headers(headers)
        version = self._spec_version_header(normalized)
        if version is None:
            raise AmbiguousEncodingError(f"Missing {self.prefix}specversion header")
        schema = get_schema(version)

        attributes: dict[str, Any] = {}
        extensions: dict[str, Any] = {}
        core_headers = self._core_headers(schema)
        ext_headers = {
            f"{self.prefix}{wire.lower()}": name for name, wire in schema.extension_aliases.items()
        }

        for header, value in normalized.items():
            if not header.startswith(self.prefix):
                continue
            key = core_headers.get(header)
            if key == "datacontenttype":
                # Carried by Content-Type in binary mode.
                continue
            decoded = percent_decode(value)
            if key is not None:
                attributes[CORE_FIELDS[key]] = decoded
            else:
                name = ext_headers.get(header, header[len(self.prefix):])
                extensions[name] = decoded

        content_type = ContentType.parse(normalized.get("content-type"))
        if content_type is not None:
            attributes["data_content_type"] = content_type.string.strip()
        attributes["data"] = self._read_binary_data(body, content_type)
        attributes["extensions"] = extensions

        event = CloudEvent(**attributes)
        logger.debug("decoded binary event", event_id=event.id, specversion=event.specversion)
        return event

    def _core_headers(self, schema: AttributeSchema) -> dict[str, str]:
        """Header name -> canonical key for the dialect's core attributes."""
        headers = {
            f"{self.prefix}{wire.lower()}": key for key, wire in schema.wire_names().items()
        }
        for key in SPEC_VERSION_KEYS:
            headers.setdefault(f"{self.prefix}{key.lower()}", "specversion")
        return headers

    def _read_binary_data(self, body: bytes | str | None, content_type: ContentType | None) -> Any:
        content = _as_bytes(body)
        if not content:
            return None
        if content_type is not None and content_type.is_json:
            return parse_json(content, content_type.charset)
        return content

    def _format_for(self, content_type: ContentType) -> EventFormat:
        suffix = content_type.subtype_format
        fmt = self._formats.get(suffix) if suffix else None
        if fmt is None:
            raise AmbiguousEncodingError(f"Unknown cloudevents format: {content_type.essence!r}")
        return fmt

    # ----------------------------------------------------------------------
    # Encoding
    # ----------------------------------------------------------------------

    def encode_structured(self, event: CloudEvent, format_name: str = "json") -> tuple[dict[str, str], bytes]:
        fmt = self._named_format(format_name)
        headers = {"Content-Type": f"application/{STRUCTURED_SUBTYPE}+{format_name}; charset=utf-8"}
        return headers, fmt.encode(event).encode("utf-8")

    def encode_batch(
        self, events: Sequence[CloudEvent], format_name: str = "json"
    ) -> tuple[dict[str, str], bytes]:
        fmt = self._named_format(format_name)
        headers = {"Content-Type": f"application/{BATCH_SUBTYPE}+{format_name}; charset=utf-8"}
        return headers, fmt.encode_batch(events).encode("utf-8")

    def encode_binary(self, event: CloudEvent) -> tuple[dict[str, str], bytes]:
        """
        Encode an event in binary mode. Attributes become prefixed headers
        and the data becomes the body.
        """
        schema = get_schema(event.spec_version)
        headers: dict[str, str] = {}
        for key, value in event.attributes().items():
            if key == "datacontenttype":
                headers["Content-Type"] = value
                continue
            headers[f"{self.prefix}{schema.wire_name(key).lower()}"] = percent_encode(_header_text(value))

        data = event.data
        content_type = event.content_type
        if data is None:
            body = b""
        elif isinstance(data, bytes | bytearray):
            body = bytes(data)
        elif isinstance(data, str) and (content_type is None or not content_type.is_json):
            body = data.encode("utf-8")
            headers.setdefault("Content-Type", "text/plain; charset=utf-8")
        else:
            body = json.dumps(data, ensure_ascii=False).encode("utf-8")
            headers.setdefault("Content-Type", "application/json")
        return headers, body

    def _named_format(self, format_name: str) -> EventFormat:
        fmt = self._formats.get(format_name.lower())
        if fmt is None:
            raise AmbiguousEncodingError(f"Unknown cloudevents format: {format_name!r}")
        return fmt


def _as_bytes(body: bytes | str | None) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def _header_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
