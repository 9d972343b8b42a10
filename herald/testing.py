"""
Testing helpers.

Build request (headers, body) tuples for the dispatcher without a server.

Example:
    headers, body = make_binary_request(event)
    assert resolve(headers, body) == event
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from herald.codec.http_binding import HttpBinding
from herald.protocol.cloudevents import CloudEvent

_binding = HttpBinding()


def make_structured_request(event: CloudEvent) -> tuple[dict[str, str], bytes]:
    """Request carrying the event in structured JSON mode."""
    return _binding.encode_structured(event)


def make_batch_request(events: Sequence[CloudEvent]) -> tuple[dict[str, str], bytes]:
    """Request carrying the events as a JSON batch."""
    return _binding.encode_batch(events)


def make_binary_request(event: CloudEvent) -> tuple[dict[str, str], bytes]:
    """Request carrying the event in binary mode."""
    return _binding.encode_binary(event)


def make_legacy_request(
    payload: Mapping[str, Any], trace_context: str | None = None
) -> tuple[dict[str, str], bytes]:
    """Request carrying a legacy (pre-CloudEvents) JSON payload."""
    headers = {"Content-Type": "application/json"}
    if trace_context:
        headers["X-Cloud-Trace-Context"] = trace_context
    return headers, json.dumps(payload).encode("utf-8")
