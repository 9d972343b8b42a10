"""
Core Protocols for Herald.
Formats and translators are plugged in by structure, using typing.Protocol.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from herald.protocol.cloudevents import CloudEvent

# ----------------------------------------------------------------------
# Event Format Protocol
# ----------------------------------------------------------------------

@runtime_checkable
class EventFormat(Protocol):
    """
    Protocol for a structured-mode event format (e.g. JSON).

    The HTTP binding selects a format by the structured syntax suffix of the
    content type: application/cloudevents+<suffix>.
    """

    def encode(self, event: CloudEvent) -> str:
        """Serialize a single event."""
        ...

    def decode(self, content: str | bytes, charset: str | None = None) -> CloudEvent:
        """Deserialize a single event."""
        ...

    def encode_batch(self, events: Sequence[CloudEvent]) -> str:
        """Serialize an ordered sequence of events."""
        ...

    def decode_batch(
        self, content: str | bytes, charset: str | None = None, max_events: int | None = None
    ) -> list[CloudEvent]:
        """Deserialize an ordered sequence of events, rejecting more than max_events."""
        ...

# ----------------------------------------------------------------------
# Legacy Translator Protocol
# ----------------------------------------------------------------------

@runtime_checkable
class LegacyTranslatorProtocol(Protocol):
    """
    Protocol for translating legacy (pre-CloudEvents) payloads.
    """

    def translate(self, body: Mapping[str, Any], hints: Any = None) -> CloudEvent:
        ...

    def to_legacy(self, body: Mapping[str, Any], hints: Any = None) -> Any:
        ...
