from herald.codec.http_binding import ContentMode, HttpBinding, normalize_headers
from herald.codec.json_format import JsonFormat, parse_json

__all__ = [
    "ContentMode",
    "HttpBinding",
    "JsonFormat",
    "normalize_headers",
    "parse_json",
]
