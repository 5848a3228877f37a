"""
Error taxonomy for track data retrieval.

None of these are retried internally; callers decide.
"""


class TrackDataError(Exception):
    """Base class for all track data failures."""
    retryable = False

    @property
    def kind(self) -> str:
        return type(self).__name__


class TransportError(TrackDataError):
    """Connection or timeout failure. Safe to retry with backoff."""
    retryable = True


class RemoteRejected(TrackDataError):
    """The service answered with a non-success status."""

    def __init__(self, status: int, message: str = ''):
        self.status = status
        self.message = message
        super().__init__(f"Service rejected request ({status}): {message}")


class MalformedResponse(TrackDataError):
    """A payload parsed but did not contain the expected data."""


class TruncatedStream(TrackDataError):
    """A packed binary body ended partway through an element."""

    def __init__(self, expected_width: int, byte_length: int):
        self.expected_width = expected_width
        self.byte_length = byte_length
        super().__init__(
            f"Binary body of {byte_length} bytes is not a multiple of {expected_width}"
        )
