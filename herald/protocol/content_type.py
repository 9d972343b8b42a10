"""
Content-Type header parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ContentType:
    """
    A parsed Content-Type header (RFC 2045, simple cases).

    Media type, subtype and parameter names are lower-cased; parameter
    values keep their case but lose surrounding quotes.

    Example:
        >>> ct = ContentType.parse("application/cloudevents+json; charset=UTF-8")
        >>> ct.subtype_base, ct.subtype_format, ct.charset
        ('cloudevents', 'json', 'UTF-8')
    """
    string: str
    media_type: str
    subtype: str
    params: tuple[tuple[str, str], ...] = field(default=())

    @classmethod
    def parse(cls, header: str | None) -> ContentType | None:
        """Parse a header value; None for a missing or unusable header."""
        if not header or not header.strip():
            return None
        sections = header.split(";")
        full_type = sections[0].strip().lower()
        media_type, _, subtype = full_type.partition("/")
        if not media_type or not subtype:
            return None

        params = []
        for section in sections[1:]:
            name, sep, value = section.partition("=")
            if not sep or not name.strip():
                continue
            params.append((name.strip().lower(), value.strip().strip('"')))

        return cls(
            string=header,
            media_type=media_type.strip(),
            subtype=subtype.strip(),
            params=tuple(params),
        )

    @property
    def subtype_base(self) -> str:
        """Subtype before any '+' suffix."""
        return self.subtype.partition("+")[0]

    @property
    def subtype_format(self) -> str | None:
        """Structured syntax suffix after '+', or None."""
        base, sep, suffix = self.subtype.partition("+")
        return suffix if sep else None

    @property
    def essence(self) -> str:
        return f"{self.media_type}/{self.subtype}"

    @property
    def charset(self) -> str | None:
        return self.param("charset")

    def param(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.params:
            if key == name:
                return value
        return None

    @property
    def is_json(self) -> bool:
        """application/json, text/json, or any +json structured suffix."""
        return self.subtype == "json" or self.subtype_format == "json"

    @property
    def is_text(self) -> bool:
        return self.media_type == "text"

    def __str__(self) -> str:
        return self.string


def is_json_content_type(header: str | None) -> bool:
    """
    Whether a data content type denotes JSON. A missing content type counts
    as JSON, matching the CloudEvents JSON format default.
    """
    if header is None:
        return True
    content_type = ContentType.parse(header)
    return content_type is not None and content_type.is_json
