"""
Legacy payload shapes.

Pre-CloudEvents notifications arrive in one of a few JSON shapes. Each shape
is a variant of a tagged union; classify() matches them in a fixed order and
returns None when nothing matches, so an unknown payload is a single
explicit branch for the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field

from herald.protocol.schema import SPEC_VERSION_KEYS


class LegacyContext(BaseModel):
    """
    Event metadata in the shape older two-argument handlers expect.

    ``model_dump(by_alias=True)`` yields the legacy wire keys
    (eventId, timestamp, eventType, resource).
    """
    event_id: str = Field(alias="eventId")
    timestamp: str
    event_type: str = Field(alias="eventType")
    resource: str | dict[str, Any]

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def resource_name(self) -> str | None:
        if isinstance(self.resource, dict):
            name = self.resource.get("name")
            return name if isinstance(name, str) else None
        return self.resource

    @property
    def resource_service(self) -> str | None:
        if isinstance(self.resource, dict):
            service = self.resource.get("service")
            return service if isinstance(service, str) else None
        return None


class LegacyEvent(NamedTuple):
    """A legacy (data, context) pair."""
    data: Any
    context: LegacyContext


@dataclass(frozen=True)
class ContextEnvelope:
    """Metadata nested under a "context" object, payload under "data"."""
    context: LegacyContext
    data: Any
    body: Mapping[str, Any]


@dataclass(frozen=True)
class FlatEnvelope:
    """Metadata (eventId, timestamp, eventType, resource) at the top level."""
    context: LegacyContext
    data: Any
    body: Mapping[str, Any]


@dataclass(frozen=True)
class PubsubPush:
    """A raw Pub/Sub push request: {"subscription": ..., "message": {...}}."""
    subscription: str | None
    message: Mapping[str, Any]
    body: Mapping[str, Any]


LegacyShape = Union[ContextEnvelope, FlatEnvelope, PubsubPush]


def is_cloudevent_structure(body: Any) -> bool:
    """Whether a parsed JSON body carries a CloudEvents spec version."""
    return isinstance(body, Mapping) and any(key in body for key in SPEC_VERSION_KEYS)


def _read_context(source: Mapping[str, Any]) -> LegacyContext | None:
    event_id = source.get("eventId")
    timestamp = source.get("timestamp")
    event_type = source.get("eventType")
    resource = source.get("resource")
    if not (isinstance(event_id, str) and event_id):
        return None
    if not (isinstance(timestamp, str) and timestamp):
        return None
    if not (isinstance(event_type, str) and event_type):
        return None
    if not (isinstance(resource, str) and resource) and not isinstance(resource, Mapping):
        return None
    if isinstance(resource, Mapping):
        resource = dict(resource)
    return LegacyContext(event_id=event_id, timestamp=timestamp, event_type=event_type, resource=resource)


def classify(body: Any) -> LegacyShape | None:
    """
    Match a parsed JSON body against the known legacy shapes, in order:
    context envelope, flat envelope, raw Pub/Sub push.
    """
    if not isinstance(body, Mapping) or is_cloudevent_structure(body):
        return None

    nested = body.get("context")
    if isinstance(nested, Mapping):
        context = _read_context(nested)
        if context is not None:
            return ContextEnvelope(context=context, data=body.get("data"), body=body)

    context = _read_context(body)
    if context is not None:
        return FlatEnvelope(context=context, data=body.get("data"), body=body)

    message = body.get("message")
    subscription = body.get("subscription")
    if isinstance(message, Mapping) and (subscription is None or isinstance(subscription, str)):
        if "subscription" in body or "messageId" in message:
            return PubsubPush(subscription=subscription, message=message, body=body)

    return None
