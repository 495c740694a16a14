"""Error taxonomy for the recommendation service."""


class CineScoutError(Exception):
    """Base exception for CineScout errors."""

    pass


class InvalidRequest(CineScoutError):
    """Raised when an inbound request body has the wrong shape."""

    pass


class Misconfigured(CineScoutError):
    """Raised when a required operational credential is missing."""

    pass


class UpstreamFailure(CineScoutError):
    """Raised when the research process fails mid-stream."""

    pass


class TransportError(CineScoutError):
    """Raised when writing to an output channel that is already closed."""

    pass
