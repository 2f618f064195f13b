"""
Error taxonomy for the log streamer.

Fatal errors abort before the poll loop starts; recoverable errors are logged,
trigger backoff, and the loop keeps running.
"""


class StreamerError(Exception):
    """Base class for all streamer errors."""


class FatalStartupError(StreamerError):
    """Missing log group, failed initial sign-in, or invalid configuration."""


class TokenFormatError(FatalStartupError):
    """Identity token is not a decodable JWT."""


class RecoverableServiceError(StreamerError):
    """Network or service failure inside an established poll loop."""


class AuthError(RecoverableServiceError):
    """Sign-in against the auth server failed."""


class TokenRefreshFailure(AuthError):
    """Refresh call failed; the session falls back to a full sign-in."""


class BrokerError(RecoverableServiceError):
    """Identity federation exchange failed."""
