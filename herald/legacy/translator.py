"""
Legacy Event Translator

Turns pre-CloudEvents notification payloads into canonical 1.0 events and,
separately, into the (data, context) pair older two-argument handlers expect.
Translation never guesses: a payload whose (service, type) pair has no rule
raises UnknownLegacyEventError.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from herald.infra.logging import get_logger
from herald.legacy.mappings import DEFAULT_LEGACY_MAPPINGS, PUBSUB_SERVICE, LegacyMappingTable, LegacyRecord
from herald.legacy.shapes import (
    ContextEnvelope,
    FlatEnvelope,
    LegacyContext,
    LegacyEvent,
    PubsubPush,
    classify,
)
from herald.protocol.cloudevents import CloudEvent
from herald.protocol.errors import UnknownLegacyEventError
from herald.protocol.schema import SpecVersion

logger = get_logger(__name__)

PUBSUB_MESSAGE_TYPE = "type.googleapis.com/google.pubsub.v1.PubsubMessage"
PUBSUB_PUBLISH_TYPE = "google.pubsub.topic.publish"
UNKNOWN_PUBSUB_TOPIC = "UNKNOWN_PUBSUB_TOPIC"
LEGACY_DATA_CONTENT_TYPE = "application/json"

_TOPIC_PATH = re.compile(r"^/?(projects/[^/]+/topics/[^/]+)/?$")


@dataclass(frozen=True)
class LegacyHints:
    """
    Out-of-band information about a legacy request.

    Attributes:
        service: Originating service, when the route or a header names it.
        path: Request path; raw Pub/Sub pushes encode the topic here.
        trace_context: X-Cloud-Trace-Context value, carried as the
            ``traceparent`` extension.
    """
    service: str | None = None
    path: str | None = None
    trace_context: str | None = None


def _utc_now() -> datetime:
    return datetime.now(UTC)


class LegacyEventTranslator:
    """
    Table-driven translator from legacy payloads to CloudEvents.

    Usage:
        translator = LegacyEventTranslator()
        event = translator.translate(body, LegacyHints(path=request_path))
        data, context = translator.to_legacy(body)
    """

    def __init__(
        self,
        table: LegacyMappingTable = DEFAULT_LEGACY_MAPPINGS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.table = table
        self._clock = clock

    def to_legacy(self, body: Any, hints: LegacyHints | None = None) -> LegacyEvent:
        """
        Return the (data, context) pair for a legacy payload. The payload must
        have a mapping rule, exactly as for translate().
        """
        _, legacy = self.translate_both(body, hints)
        return legacy

    def translate(self, body: Any, hints: LegacyHints | None = None) -> CloudEvent:
        """Return the canonical CloudEvent for a legacy payload."""
        event, _ = self.translate_both(body, hints)
        return event

    def translate_both(self, body: Any, hints: LegacyHints | None = None) -> tuple[CloudEvent, LegacyEvent]:
        hints = hints or LegacyHints()
        legacy = self._normalize(body, hints)
        context = legacy.context

        resource = context.resource_name
        service = context.resource_service or hints.service or self.table.service_for_type(context.event_type)
        rule = self.table.lookup(service, context.event_type)
        if rule is None:
            raise UnknownLegacyEventError(service, context.event_type)
        if not resource:
            raise UnknownLegacyEventError(service, context.event_type, "resource has no name")

        record = LegacyRecord(
            event_id=context.event_id,
            timestamp=context.timestamp,
            event_type=context.event_type,
            service=service,
            resource=resource,
            data=legacy.data,
            domain=_string_field(body, "domain"),
            subscription=_string_field(body, "subscription"),
        )
        located = rule.source(service, resource, record)
        if located is None:
            raise UnknownLegacyEventError(
                service, context.event_type, f"resource {resource!r} does not match the mapping rule"
            )
        source, subject = located

        extensions = {}
        if hints.trace_context:
            extensions["traceparent"] = hints.trace_context

        event = CloudEvent(
            spec_version=SpecVersion.V1_0,
            id=context.event_id,
            source=source,
            type=rule.ce_type,
            subject=subject,
            time=context.timestamp,
            data_content_type=LEGACY_DATA_CONTENT_TYPE,
            data=rule.data(legacy.data, record),
            extensions=extensions,
        )
        logger.debug(
            "translated legacy event",
            legacy_type=context.event_type,
            service=service,
            ce_type=event.type,
            event_id=event.id,
        )
        return event, legacy

    # ----------------------------------------------------------------------
    # Shape normalization
    # ----------------------------------------------------------------------

    def _normalize(self, body: Any, hints: LegacyHints) -> LegacyEvent:
        shape = classify(body)

        if isinstance(shape, ContextEnvelope | FlatEnvelope):
            return LegacyEvent(data=shape.data, context=shape.context)

        if isinstance(shape, PubsubPush):
            return self._from_pubsub_push(shape, hints)

        legacy_type = body.get("eventType") if isinstance(body, Mapping) else None
        raise UnknownLegacyEventError(
            hints.service,
            legacy_type if isinstance(legacy_type, str) else None,
            "payload does not match any legacy event shape",
        )

    def _from_pubsub_push(self, shape: PubsubPush, hints: LegacyHints) -> LegacyEvent:
        message = dict(shape.message)
        message_id = message.get("messageId") or message.get("message_id")
        if not isinstance(message_id, str) or not message_id:
            raise UnknownLegacyEventError(PUBSUB_SERVICE, PUBSUB_PUBLISH_TYPE, "push message has no messageId")

        timestamp = message.get("publishTime")
        if not isinstance(timestamp, str) or not timestamp:
            timestamp = self._clock().astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
            message["publishTime"] = timestamp

        topic = UNKNOWN_PUBSUB_TOPIC
        if hints.path:
            match = _TOPIC_PATH.match(hints.path)
            if match:
                topic = match.group(1)

        message["@type"] = PUBSUB_MESSAGE_TYPE
        context = LegacyContext(
            event_id=message_id,
            timestamp=timestamp,
            event_type=PUBSUB_PUBLISH_TYPE,
            resource={"service": PUBSUB_SERVICE, "type": PUBSUB_MESSAGE_TYPE, "name": topic},
        )
        return LegacyEvent(data=message, context=context)


def _string_field(body: Any, key: str) -> str | None:
    if not isinstance(body, Mapping):
        return None
    value = body.get(key)
    return value if isinstance(value, str) and value else None
