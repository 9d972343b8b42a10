"""
HTTP binding: content mode detection, binary headers and request decoding.
"""

import json

import pytest

from herald.codec.http_binding import (
    ContentMode,
    HttpBinding,
    normalize_headers,
    percent_decode,
    percent_encode,
)
from herald.config.resolver import ResolverConfig
from herald.protocol.cloudevents import CloudEvent
from herald.protocol.errors import (
    AmbiguousEncodingError,
    InvalidJsonError,
    MalformedEventError,
    UnsupportedSpecVersionError,
)

BINARY_HEADERS = {
    "ce-specversion": "1.0",
    "ce-id": "1",
    "ce-source": "/s",
    "ce-type": "t",
}


class TestHeaders:

    def test_normalize_mapping(self):
        assert normalize_headers({"Content-Type": "a/b", " CE-ID ": 5}) == {"content-type": "a/b", "ce-id": "5"}

    def test_normalize_raw_pairs(self):
        headers = [(b"Content-Type", b"text/plain"), (b"X-Tag", b"a"), (b"x-tag", b"b")]
        assert normalize_headers(headers) == {"content-type": "text/plain", "x-tag": "a, b"}

    def test_normalize_none(self):
        assert normalize_headers(None) == {}

    def test_percent_encode(self):
        assert percent_encode('café x"%') == "caf%C3%A9%20x%22%25"
        assert percent_encode("/path/to:thing") == "/path/to:thing"

    def test_percent_decode(self):
        assert percent_decode("caf%C3%A9%20x") == "café x"

    def test_percent_decode_invalid_utf8(self):
        with pytest.raises(MalformedEventError):
            percent_decode("%FF")


class TestDetectMode:

    @pytest.mark.parametrize("content_type,mode", [
        ("application/cloudevents+json", ContentMode.STRUCTURED),
        ("Application/CloudEvents+JSON; charset=utf-8", ContentMode.STRUCTURED),
        ("application/cloudevents-batch+json", ContentMode.BATCH),
    ])
    def test_content_type_modes(self, binding, content_type, mode):
        assert binding.detect_mode({"Content-Type": content_type}) is mode

    def test_structured_wins_over_binary_headers(self, binding):
        headers = dict(BINARY_HEADERS, **{"content-type": "application/cloudevents+json"})
        assert binding.detect_mode(headers) is ContentMode.STRUCTURED

    def test_binary(self, binding):
        assert binding.detect_mode(BINARY_HEADERS) is ContentMode.BINARY

    def test_binary_header_names_are_case_insensitive(self, binding):
        headers = {"CE-SpecVersion": "1.0", "Ce-Id": "1", "CE-SOURCE": "/s", "ce-Type": "t"}
        assert binding.detect_mode(headers) is ContentMode.BINARY

    @pytest.mark.parametrize("missing", list(BINARY_HEADERS))
    def test_incomplete_binary_headers(self, binding, missing):
        headers = {k: v for k, v in BINARY_HEADERS.items() if k != missing}
        assert binding.detect_mode(headers) is None

    def test_v01_binary_headers(self, binding):
        headers = {"ce-cloudeventsversion": "0.1", "ce-eventid": "1", "ce-source": "/s", "ce-eventtype": "t"}
        assert binding.detect_mode(headers) is ContentMode.BINARY

    def test_plain_json_has_no_mode(self, binding):
        assert binding.detect_mode({"Content-Type": "application/json"}) is None
        assert binding.detect_mode({}) is None


class TestDecode:

    def test_structured_request(self, binding):
        body = b'{"specversion":"1.0","id":"123","source":"/s","type":"t","data":"hi"}'
        event = binding.decode({"Content-Type": "application/cloudevents+json"}, body)
        assert isinstance(event, CloudEvent)
        assert event.id == "123"
        assert event.data == "hi"

    def test_structured_charset(self, binding):
        body = '{"specversion":"1.0","id":"1","source":"/s","type":"t","data":"café"}'.encode("latin-1")
        event = binding.decode({"Content-Type": "application/cloudevents+json; charset=latin-1"}, body)
        assert event.data == "café"

    def test_batch_request(self, binding):
        body = json.dumps([
            {"specversion": "1.0", "id": str(i), "source": "/s", "type": "t"} for i in range(3)
        ])
        events = binding.decode({"Content-Type": "application/cloudevents-batch+json"}, body)
        assert [e.id for e in events] == ["0", "1", "2"]

    def test_empty_batch(self, binding):
        assert binding.decode({"Content-Type": "application/cloudevents-batch+json"}, b"[]") == []

    def test_batch_limit(self):
        binding = HttpBinding(ResolverConfig(max_batch_size=1))
        body = json.dumps([{"specversion": "1.0", "id": str(i), "source": "/s", "type": "t"} for i in range(2)])
        with pytest.raises(MalformedEventError):
            binding.decode({"Content-Type": "application/cloudevents-batch+json"}, body)

    def test_batch_limit_checked_before_decoding(self):
        binding = HttpBinding(ResolverConfig(max_batch_size=1))
        body = b'[{"specversion":"1.0","id":"1","source":"/s","type":"t"}, {"specversion":"1.0"}]'
        with pytest.raises(MalformedEventError, match="exceeds the limit of 1"):
            binding.decode({"Content-Type": "application/cloudevents-batch+json"}, body)

    def test_batch_at_limit(self):
        binding = HttpBinding(ResolverConfig(max_batch_size=2))
        body = json.dumps([{"specversion": "1.0", "id": str(i), "source": "/s", "type": "t"} for i in range(2)])
        events = binding.decode({"Content-Type": "application/cloudevents-batch+json"}, body)
        assert [event.id for event in events] == ["0", "1"]

    def test_binary_text_request(self, binding):
        headers = dict(BINARY_HEADERS, **{"Content-Type": "text/plain"})
        event = binding.decode(headers, b"payload")
        assert event.data == b"payload"
        assert event.data_content_type == "text/plain"
        assert event.id == "1"

    def test_binary_json_request(self, binding):
        headers = dict(BINARY_HEADERS, **{"Content-Type": "application/json"})
        event = binding.decode(headers, b'{"a": [1, 2]}')
        assert event.data == {"a": [1, 2]}

    def test_binary_invalid_json(self, binding):
        headers = dict(BINARY_HEADERS, **{"Content-Type": "application/json"})
        with pytest.raises(InvalidJsonError):
            binding.decode(headers, b"{nope")

    def test_binary_empty_body(self, binding):
        assert binding.decode(BINARY_HEADERS, b"").data is None
        assert binding.decode(BINARY_HEADERS, None).data is None

    def test_binary_without_content_type(self, binding):
        event = binding.decode(BINARY_HEADERS, b"\x00\x01")
        assert event.data == b"\x00\x01"
        assert event.data_content_type is None

    def test_binary_extensions_and_percent_decoding(self, binding):
        headers = dict(BINARY_HEADERS, **{
            "ce-subject": "caf%C3%A9",
            "ce-time": "2020-01-01T00:00:00Z",
            "ce-myext": "some%20value",
            "x-other": "ignored",
        })
        event = binding.decode(headers, None)
        assert event.subject == "café"
        assert event.time_string == "2020-01-01T00:00:00Z"
        assert dict(event.extensions) == {"myext": "some value"}

    def test_binary_datacontenttype_header_ignored(self, binding):
        headers = dict(BINARY_HEADERS, **{"ce-datacontenttype": "application/xml", "Content-Type": "text/plain"})
        assert binding.decode(headers, b"x").data_content_type == "text/plain"

    def test_binary_invalid_extension_name(self, binding):
        headers = dict(BINARY_HEADERS, **{"ce-my_ext": "v"})
        with pytest.raises(MalformedEventError):
            binding.decode(headers, None)

    def test_binary_unsupported_version(self, binding):
        headers = dict(BINARY_HEADERS, **{"ce-specversion": "9.9"})
        with pytest.raises(UnsupportedSpecVersionError) as exc:
            binding.decode(headers, None)
        assert exc.value.spec_version == "9.9"

    def test_binary_v01(self, binding):
        headers = {
            "ce-cloudeventsversion": "0.1",
            "ce-eventid": "1",
            "ce-source": "/s",
            "ce-eventtype": "t",
            "ce-eventtypeversion": "2",
        }
        event = binding.decode(headers, None)
        assert event.specversion == "0.1"
        assert event.type == "t"
        assert dict(event.extensions) == {"eventtypeversion": "2"}

    def test_no_mode(self, binding):
        with pytest.raises(AmbiguousEncodingError):
            binding.decode({"Content-Type": "application/json"}, b"{}")

    def test_unknown_structured_format(self, binding):
        with pytest.raises(AmbiguousEncodingError):
            binding.decode({"Content-Type": "application/cloudevents+xml"}, b"<event/>")

    def test_custom_prefix(self):
        binding = HttpBinding(ResolverConfig(binary_header_prefix="X-CE-"))
        headers = {"x-ce-specversion": "1.0", "x-ce-id": "1", "x-ce-source": "/s", "x-ce-type": "t"}
        assert binding.detect_mode(headers) is ContentMode.BINARY
        assert binding.decode(headers, None).id == "1"
        assert binding.detect_mode(BINARY_HEADERS) is None


class TestEncode:

    def test_structured(self, binding, sample_event):
        headers, body = binding.encode_structured(sample_event)
        assert headers == {"Content-Type": "application/cloudevents+json; charset=utf-8"}
        assert binding.decode(headers, body) == sample_event

    def test_batch(self, binding, sample_event):
        events = [sample_event, sample_event.with_changes(id="2")]
        headers, body = binding.encode_batch(events)
        assert headers["Content-Type"].startswith("application/cloudevents-batch+json")
        assert binding.decode(headers, body) == events

    def test_binary_headers(self, binding, sample_event):
        headers, body = binding.encode_binary(sample_event)
        assert headers == {
            "ce-specversion": "1.0",
            "ce-id": "1234-1234-1234",
            "ce-source": "/mycontext",
            "ce-type": "com.example.someevent",
            "ce-time": "2018-04-05T17:31:00Z",
            "ce-subject": "larry",
            "ce-comexampleextension1": "value",
            "Content-Type": "application/json",
        }
        assert json.loads(body) == sample_event.data

    @pytest.mark.parametrize("data,content_type", [
        (None, None),
        (b"\x00raw\xff", None),
        (b"\x00raw\xff", "application/octet-stream"),
        ({"a": 1, "b": [True, None]}, "application/json"),
        ([1, 2, 3], "application/vnd.example+json"),
    ])
    def test_binary_round_trip(self, binding, data, content_type):
        event = CloudEvent(
            id="1", source="/s", type="t", subject="ünïcode subject",
            time="2020-05-06T07:33:34.556Z", data=data, data_content_type=content_type,
            extensions={"ext": "with space"},
        )
        headers, body = binding.encode_binary(event)
        assert binding.decode(headers, body) == event

    def test_binary_round_trip_v01(self, binding):
        event = CloudEvent(
            spec_version="0.1", id="1", source="/s", type="t",
            extensions={"eventtypeversion": "3", "other": "x"},
        )
        headers, body = binding.encode_binary(event)
        assert headers["ce-cloudeventsversion"] == "0.1"
        assert headers["ce-eventid"] == "1"
        assert headers["ce-eventtypeversion"] == "3"
        assert binding.decode(headers, body) == event

    def test_binary_text_data(self, binding):
        event = CloudEvent(id="1", source="/s", type="t", data="plain text")
        headers, body = binding.encode_binary(event)
        assert headers["Content-Type"] == "text/plain; charset=utf-8"
        assert body == b"plain text"

    def test_binary_percent_encodes_values(self, binding):
        event = CloudEvent(id="1", source="/s", type="t", subject="a b")
        headers, _ = binding.encode_binary(event)
        assert headers["ce-subject"] == "a%20b"

    def test_unknown_format_name(self, binding, sample_event):
        with pytest.raises(AmbiguousEncodingError):
            binding.encode_structured(sample_event, format_name="xml")


def test_formats_registry(binding):
    assert set(binding.formats) == {"json"}
    with pytest.raises(TypeError):
        binding.formats["xml"] = object()
