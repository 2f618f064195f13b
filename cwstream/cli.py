"""
Click CLI for the CloudWatch log streamer.
"""

import logging
import signal
import sys
from typing import Optional

import click

from .auth import AuthSession, CredentialBroker
from .config import LOG_HISTORY_MINUTES, MAX_STREAMS, POLL_INTERVAL, StreamerConfig
from .errors import FatalStartupError
from .obs import PollEngine


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def build_engine(config: StreamerConfig) -> PollEngine:
    """Wire the session, broker and engine for a validated config."""
    broker = CredentialBroker(config.identity_pool_id, config.resolve_region())
    session = None
    if config.authenticated:
        session = AuthSession(config.auth_url, config.username, config.password)
    return PollEngine(config, broker, session=session)


@click.command()
@click.option("--log-group-name", required=True, help="CloudWatch log group name")
@click.option("--identity-pool-id", required=True, help="Cognito identity pool ID (region:uuid)")
@click.option("--region", help="AWS region (default: taken from the identity pool ID)")
@click.option("--auth-url", envvar="CWSTREAM_AUTH_URL", help="Authentication server URL")
@click.option("--username", envvar="CWSTREAM_USERNAME", help="Username; omit for anonymous access")
@click.option("--password", envvar="CWSTREAM_PASSWORD", help="Password for authentication")
@click.option("--minutes", type=int, default=LOG_HISTORY_MINUTES, show_default=True,
              help="Minutes of log history to retrieve")
@click.option("--poll-interval", type=float, default=POLL_INTERVAL, show_default=True,
              help="Seconds between log polling")
@click.option("--max-streams", type=int, default=MAX_STREAMS, show_default=True,
              help="Maximum number of log streams to process")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--show-stream", is_flag=True, help="Show stream name in log output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
def main(log_group_name: str, identity_pool_id: str, region: Optional[str], auth_url: Optional[str],
         username: Optional[str], password: Optional[str], minutes: int, poll_interval: float,
         max_streams: int, verbose: bool, show_stream: bool, no_color: bool):
    """
    Stream CloudWatch logs to the console.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = StreamerConfig(
        log_group_name=log_group_name,
        identity_pool_id=identity_pool_id,
        region=region,
        auth_url=auth_url,
        username=username,
        password=password,
        poll_interval=poll_interval,
        max_streams=max_streams,
        minutes=minutes,
        verbose=verbose,
        show_stream_name=show_stream,
        color=not no_color,
    )

    try:
        config.validate()
        engine = build_engine(config)
        engine.start()
    except FatalStartupError as e:
        _fail(str(e))
    except KeyboardInterrupt:
        click.echo(click.style("\nLog streaming stopped.", fg="yellow"))
        sys.exit(0)

    signal.signal(signal.SIGTERM, lambda signum, frame: engine.stop())

    try:
        engine.run()
    except FatalStartupError as e:
        _fail(str(e))

    sys.exit(0)


if __name__ == "__main__":
    main()
