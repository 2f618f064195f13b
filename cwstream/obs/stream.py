"""
Polling engine that tails a CloudWatch log group.
"""

import logging
import sys
import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

import click
from botocore.exceptions import BotoCoreError, ClientError

from ..auth.broker import CredentialBroker, CredentialSet
from ..auth.session import AuthSession
from ..config import TOKEN_REFRESH_THRESHOLD, StreamerConfig
from ..errors import AuthError, FatalStartupError, RecoverableServiceError
from .backoff import Backoff
from .cursor import StreamCursor
from .format import OutputFormatter
from .parse import LogMessageParser

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Lifecycle states of the poll engine."""
    INITIALIZING = "initializing"
    VERIFYING_TARGET = "verifying_target"
    POLLING = "polling"
    BACKING_OFF = "backing_off"
    TERMINATED = "terminated"


@contextmanager
def service_call(action: str):
    """Translate AWS client failures into RecoverableServiceError."""
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        raise RecoverableServiceError(f"{action}: {e}") from e


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class PollEngine:
    """
    Drives the fetch, parse and render loop for one log group.

    One network call is in flight at a time. The engine owns the cursor
    registry, the backoff state and the logs client; everything that talks
    to the network is injected so the state machine can run against fakes.
    """

    def __init__(self, config: StreamerConfig, broker: CredentialBroker,
                 session: Optional[AuthSession] = None,
                 parser: Optional[LogMessageParser] = None,
                 formatter: Optional[OutputFormatter] = None,
                 client_factory: Optional[Callable[[CredentialSet], Any]] = None,
                 clock: Callable[[], float] = time.time,
                 wait: Optional[Callable[[float], Any]] = None,
                 echo: Callable[..., None] = click.echo):
        self.config = config
        self.broker = broker
        self.session = session
        self.parser = parser or LogMessageParser()
        self.formatter = formatter or OutputFormatter(
            show_stream_name=config.show_stream_name, color=config.color
        )
        self.client_factory = client_factory or broker.logs_client
        self.clock = clock
        self.echo = echo

        self.stop_event = threading.Event()
        self.wait = wait or self.stop_event.wait
        self.state = EngineState.INITIALIZING
        self.cursors = StreamCursor()
        self.backoff = Backoff()
        self.client = None
        self.credentials: Optional[CredentialSet] = None
        self._credentials_token: Optional[str] = None
        self.window_start: Optional[int] = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    # Startup

    def start(self) -> None:
        """
        Sign in, build the logs client and verify the target log group.

        Raises:
            FatalStartupError: If any startup step fails
        """
        self.state = EngineState.INITIALIZING
        if self.session is not None:
            try:
                self.session.authenticate()
            except AuthError as e:
                raise FatalStartupError(str(e)) from e

        try:
            self._setup_client()
        except RecoverableServiceError as e:
            raise FatalStartupError(str(e)) from e

        self.state = EngineState.VERIFYING_TARGET
        self.verify_log_group()

        self.window_start = self._now_ms() - self.config.minutes * 60 * 1000
        self.state = EngineState.POLLING

    def _setup_client(self) -> None:
        id_token = self.session.id_token if self.session is not None else None
        self.credentials = self.broker.credentials_for(id_token)
        self.client = self.client_factory(self.credentials)
        self._credentials_token = id_token
        logger.info("CloudWatch client setup complete")

    def verify_log_group(self) -> None:
        """
        Confirm the configured log group exists.

        Raises:
            FatalStartupError: If the group is missing or cannot be listed
        """
        group = self.config.log_group_name
        logger.info(f"Verifying log group: {group}")

        kwargs: Dict[str, Any] = {"logGroupNamePrefix": group}
        try:
            while True:
                response = self.client.describe_log_groups(**kwargs)
                if any(g.get("logGroupName") == group for g in response.get("logGroups", [])):
                    logger.info("Log group verified")
                    return
                next_token = response.get("nextToken")
                if not next_token:
                    break
                kwargs["nextToken"] = next_token
        except (ClientError, BotoCoreError) as e:
            raise FatalStartupError(f"Failed to verify log group: {e}") from e

        raise FatalStartupError(f"Log group '{group}' does not exist")

    # Polling

    def ensure_fresh_credentials(self) -> None:
        """Refresh the session when due and rebuild the client if its credentials went stale."""
        if self.session is not None and self.session.can_refresh and self.session.needs_refresh():
            logger.info("Token expiring soon, refreshing...")
            self.session.refresh()

        current_token = self.session.id_token if self.session is not None else None
        if self.client is None or current_token != self._credentials_token:
            self._setup_client()
        elif self.credentials is not None and self.credentials.expires_within(TOKEN_REFRESH_THRESHOLD):
            logger.info("AWS credentials expiring soon, renewing...")
            self._setup_client()

    def list_streams(self) -> List[str]:
        """Names of the most recently active streams, newest first."""
        with service_call("Failed to list log streams"):
            response = self.client.describe_log_streams(
                logGroupName=self.config.log_group_name,
                orderBy="LastEventTime",
                descending=True,
                limit=self.config.max_streams,
            )
        return [s["logStreamName"] for s in response.get("logStreams", [])]

    def fetch_events(self, stream_name: str, start_time: int) -> Iterator[Dict[str, Any]]:
        """Yield a stream's events from ``start_time`` onwards, oldest first, across pages."""
        kwargs: Dict[str, Any] = {
            "logGroupName": self.config.log_group_name,
            "logStreamName": stream_name,
            "startTime": start_time,
            "startFromHead": True,
        }
        token = None
        while True:
            response = self.client.get_log_events(**kwargs)
            events = response.get("events", [])
            yield from events

            next_token = response.get("nextForwardToken")
            # Pages may be empty while more events remain; the stream is
            # drained only once the service hands back the same token
            if not next_token or next_token == token:
                return
            token = next_token
            kwargs["nextToken"] = token

    def poll_stream(self, stream_name: str) -> int:
        """
        Render every new entry of one stream and advance its cursor.

        Returns:
            Number of entries printed
        """
        start_time = self.cursors.start_time(stream_name, self.window_start)
        rendered = 0
        try:
            with service_call(f"Failed to read stream {stream_name}"):
                for event in self.fetch_events(stream_name, start_time):
                    timestamp = event.get("timestamp")
                    if timestamp is None or timestamp < start_time:
                        continue
                    if self.render(stream_name, event):
                        rendered += 1
                    self.cursors.advance(stream_name, timestamp)
        except RecoverableServiceError as e:
            cause = e.__cause__
            if isinstance(cause, ClientError) and _error_code(cause) == "ResourceNotFoundException":
                logger.warning(f"Stream {stream_name} disappeared, skipping")
                return rendered
            raise
        return rendered

    def render(self, stream_name: str, event: Dict[str, Any]) -> bool:
        message = (event.get("message") or "").rstrip("\r\n")
        if not message.strip():
            return False
        parsed = self.parser.parse(message)
        self.echo(self.formatter.format(parsed, timestamp_ms=event["timestamp"], stream_name=stream_name))
        return True

    def poll_once(self) -> int:
        """
        Run one polling cycle.

        Returns:
            Number of entries printed

        Raises:
            RecoverableServiceError: If any service call in the cycle fails
        """
        if self.state is EngineState.TERMINATED:
            return 0
        if self.window_start is None:
            self.window_start = self._now_ms() - self.config.minutes * 60 * 1000

        self.ensure_fresh_credentials()
        rendered = 0
        for stream_name in self.list_streams():
            if self.stop_event.is_set():
                break
            rendered += self.poll_stream(stream_name)

        self.backoff.reset()
        return rendered

    def run(self) -> None:
        """Poll until stopped, backing off on recoverable errors."""
        self.echo(click.style(f"Connected to log group: {self.config.log_group_name}", fg="green"))
        self.echo(click.style("Starting log streaming...", fg="green"))
        self.echo(click.style("Press Ctrl+C to stop.", fg="yellow"))

        try:
            while not self.stop_event.is_set():
                self.state = EngineState.POLLING
                try:
                    self.poll_once()
                    delay = self.config.poll_interval
                except RecoverableServiceError as e:
                    self.state = EngineState.BACKING_OFF
                    delay = self.backoff.next_delay()
                    logger.info(f"Poll cycle failed, retrying in {delay}s: {e}")
                    self.echo(click.style(f"Error: {e}", fg="red"), err=True)
                if self.stop_event.is_set():
                    break
                self.wait(delay)
        except KeyboardInterrupt:
            pass
        finally:
            self.state = EngineState.TERMINATED
            sys.stdout.flush()

        self.echo(click.style("\nLog streaming stopped.", fg="yellow"))

    def stop(self) -> None:
        """Ask the loop to end; interrupts any pending sleep."""
        self.stop_event.set()
