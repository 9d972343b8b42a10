"""
Pytest Configuration and Fixtures
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from herald.codec.http_binding import HttpBinding
from herald.codec.json_format import JsonFormat
from herald.kernel.dispatcher import Dispatcher
from herald.legacy.translator import LegacyEventTranslator
from herald.protocol.cloudevents import CloudEvent

FIXTURES = Path(__file__).parent / "fixtures"

FIXED_NOW = datetime(2021, 3, 4, 5, 6, 7, 123456, tzinfo=UTC)


@pytest.fixture
def json_format() -> JsonFormat:
    return JsonFormat()


@pytest.fixture
def binding() -> HttpBinding:
    return HttpBinding()


@pytest.fixture
def translator() -> LegacyEventTranslator:
    """Translator with a fixed clock for raw Pub/Sub pushes."""
    return LegacyEventTranslator(clock=lambda: FIXED_NOW)


@pytest.fixture
def dispatcher(translator: LegacyEventTranslator) -> Dispatcher:
    return Dispatcher(translator=translator)


@pytest.fixture
def load_legacy() -> Callable[[str], dict[str, Any]]:
    """Returns a loader for JSON payloads under fixtures/legacy."""
    def _load(name: str) -> dict[str, Any]:
        return json.loads((FIXTURES / "legacy" / name).read_text(encoding="utf-8"))
    return _load


@pytest.fixture
def sample_event() -> CloudEvent:
    return CloudEvent(
        spec_version="1.0",
        id="1234-1234-1234",
        source="/mycontext",
        type="com.example.someevent",
        time="2018-04-05T17:31:00Z",
        subject="larry",
        data_content_type="application/json",
        data={"appinfoA": "abc", "appinfoB": 123, "appinfoC": True},
        extensions={"comexampleextension1": "value"},
    )
