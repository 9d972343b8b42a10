"""
Event Dispatcher (Kernel)

The single entry point for the server layer: given a request's headers and
buffered body, produce a CloudEvent, a batch of CloudEvents, or a legacy
(data, context) pair.
"""

from typing import Any, Union

from herald.codec.http_binding import ContentMode, HeadersLike, HttpBinding, normalize_headers
from herald.codec.json_format import parse_json
from herald.config.resolver import ResolverConfig
from herald.infra.logging import configure_logging, get_logger
from herald.legacy.shapes import LegacyEvent, is_cloudevent_structure
from herald.legacy.translator import LegacyEventTranslator, LegacyHints
from herald.protocol.cloudevents import CloudEvent
from herald.protocol.content_type import ContentType
from herald.protocol.errors import CloudEventsError, InvalidJsonError, UnrecognizedRequestError

logger = get_logger(__name__)

Resolution = Union[CloudEvent, list[CloudEvent], LegacyEvent]

TRACE_CONTEXT_HEADER = "x-cloud-trace-context"


class Dispatcher:
    """
    Central resolution mechanism. Rules are tried in order:
    1. Structured or batch decode, if the content type is a CloudEvents one.
    2. Binary decode, if the minimum binary-mode headers are present.
    3. Legacy translation, if the body is a JSON object without specversion.

    With legacy_hint=True, legacy translation is tried first and yields the
    (data, context) pair instead of a CloudEvent.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        binding: HttpBinding | None = None,
        translator: LegacyEventTranslator | None = None,
    ):
        self.config = config or ResolverConfig()
        self.binding = binding or HttpBinding(self.config)
        self.translator = translator or LegacyEventTranslator()

    @classmethod
    def from_env(cls, configure_logs: bool = True) -> "Dispatcher":
        """Build a dispatcher from HERALD_* environment variables."""
        config = ResolverConfig.from_env()
        if configure_logs:
            configure_logging(config.log_level, config.json_logs)
        return cls(config=config)

    def resolve(
        self,
        headers: HeadersLike | None,
        body: bytes | str | None,
        legacy_hint: bool = False,
        path: str | None = None,
        service: str | None = None,
    ) -> Resolution:
        """
        Resolve a request. Every failure is a CloudEventsError and is
        terminal for this request.

        path and service describe the route the request arrived on. Legacy
        payloads that do not name their originating service use service to
        find their mapping rule.
        """
        normalized = normalize_headers(headers)
        hints = LegacyHints(service=service, path=path, trace_context=normalized.get(TRACE_CONTEXT_HEADER))
        try:
            return self._resolve(normalized, body, legacy_hint, hints)
        except CloudEventsError as e:
            logger.warning(
                "rejected request", error=type(e).__name__, reason=str(e), path=path, service=service
            )
            raise

    def _resolve(
        self, headers: dict[str, str], body: bytes | str | None, legacy_hint: bool, hints: LegacyHints
    ) -> Resolution:
        mode = self.binding.detect_mode(headers)

        # 1. Legacy first when the target expects (data, context)
        if legacy_hint and self.config.legacy_enabled and mode is not ContentMode.BINARY:
            legacy_body = self._legacy_body(headers, body)
            if legacy_body is not None:
                return self.translator.to_legacy(legacy_body, hints)

        # 2. CloudEvents content modes
        if mode is not None:
            result = self.binding.decode(headers, body)
            logger.debug("resolved cloudevent request", mode=mode.value)
            return result

        # 3. Legacy translation
        if self.config.legacy_enabled:
            legacy_body = self._legacy_body(headers, body)
            if legacy_body is not None:
                return self.translator.translate(legacy_body, hints)

        raise UnrecognizedRequestError(
            "Request is neither a CloudEvent (structured, batch or binary) nor a legacy event"
        )

    def _legacy_body(self, headers: dict[str, str], body: bytes | str | None) -> Any | None:
        """The parsed body if it is a JSON object without a specversion."""
        if not body:
            return None
        content_type = ContentType.parse(headers.get("content-type"))
        charset = content_type.charset if content_type is not None else None
        try:
            parsed = parse_json(body, charset)
        except InvalidJsonError:
            return None
        if not isinstance(parsed, dict) or is_cloudevent_structure(parsed):
            return None
        return parsed


default_dispatcher = Dispatcher()


def resolve(
    headers: HeadersLike | None,
    body: bytes | str | None,
    legacy_hint: bool = False,
    path: str | None = None,
    service: str | None = None,
) -> Resolution:
    """Resolve a request with the default dispatcher."""
    return default_dispatcher.resolve(headers, body, legacy_hint=legacy_hint, path=path, service=service)
