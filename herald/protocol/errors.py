"""
Error taxonomy for event decoding and translation.

Every error here is terminal for the request being processed. The codec
never retries and never substitutes a default event.
"""


class CloudEventsError(Exception):
    """Base class for all herald errors."""
    pass


class MalformedEventError(CloudEventsError):
    """A core attribute is missing, empty, or has the wrong shape."""
    pass


class UnsupportedSpecVersionError(MalformedEventError):
    """The specversion is present but not a supported dialect."""

    def __init__(self, spec_version: object):
        self.spec_version = spec_version
        super().__init__(f"Unsupported specversion: {spec_version!r}")


class InvalidJsonError(MalformedEventError):
    """The body could not be parsed as JSON in a JSON-based content mode."""
    pass


class AmbiguousEncodingError(CloudEventsError):
    """No structured/batch content type and no complete set of binary headers."""
    pass


class UnknownLegacyEventError(CloudEventsError):
    """A legacy payload whose (service, type) pair has no mapping rule."""

    def __init__(self, service: str | None, legacy_type: str | None, reason: str | None = None):
        self.service = service
        self.legacy_type = legacy_type
        message = f"Unrecognized legacy event: service={service!r} type={legacy_type!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnrecognizedRequestError(CloudEventsError):
    """None of the dispatch rules applied to the request."""
    pass
