"""
Runtime configuration for the log streamer.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import FatalStartupError

POLL_INTERVAL = 2.0
MAX_STREAMS = 10
MAX_STREAMS_LIMIT = 50  # describe_log_streams page limit
LOG_HISTORY_MINUTES = 5
TOKEN_REFRESH_THRESHOLD = 300  # seconds
BACKOFF_FLOOR = 1
BACKOFF_CAP = 30
HTTP_TIMEOUT = 10
DEFAULT_REGION = "us-east-1"


@dataclass
class StreamerConfig:
    """Settings for one streaming session."""
    log_group_name: str
    identity_pool_id: Optional[str] = None
    region: Optional[str] = None
    auth_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    poll_interval: float = POLL_INTERVAL
    max_streams: int = MAX_STREAMS
    minutes: int = LOG_HISTORY_MINUTES
    verbose: bool = False
    show_stream_name: bool = False
    color: bool = True

    @property
    def authenticated(self) -> bool:
        """True when a username was supplied and the sign-in flow is used."""
        return bool(self.username)

    def resolve_region(self) -> str:
        """
        Pick the AWS region.

        An explicit region wins, then the identity pool id prefix
        (``us-west-2:xxxx``), then the default.
        """
        if self.region:
            return self.region
        if self.identity_pool_id and ":" in self.identity_pool_id:
            prefix = self.identity_pool_id.split(":", 1)[0]
            if prefix:
                return prefix
        return DEFAULT_REGION

    def validate(self) -> None:
        """
        Check the settings before any network call.

        Raises:
            FatalStartupError: If a required setting is missing or out of range
        """
        if not self.log_group_name:
            raise FatalStartupError("Log group name is required")
        if self.authenticated:
            if not self.password:
                raise FatalStartupError("Password is required when a username is given")
            if not self.auth_url:
                raise FatalStartupError("Auth server URL is required when a username is given")
        if self.poll_interval <= 0:
            raise FatalStartupError(f"Poll interval must be positive, got {self.poll_interval}")
        if not 1 <= self.max_streams <= MAX_STREAMS_LIMIT:
            raise FatalStartupError(
                f"Max streams must be between 1 and {MAX_STREAMS_LIMIT}, got {self.max_streams}"
            )
        if self.minutes < 0:
            raise FatalStartupError(f"Lookback minutes must not be negative, got {self.minutes}")
