"""Unium client CLI.

Ad-hoc probing of a running scene server.

Usage:
    unium-client query scene/Game/Player              # First result
    unium-client query scene/Game/Enemy --all --json  # Every result as JSON
    unium-client watch scene/Game/Player.position --freq 0.5 --count 5
    unium-client watch scene/Game.state --until '["GameOver"]'
    unium-client bind Died scene/Game/Player.Died --poll --count 1

    unium-client --host 10.0.0.5 --port 8342 --debug query scene

Host and port default to the IP and PORT environment variables.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from .config import ClientConfig
from .errors import UniumError
from .protocol.messages import AckToken, Reply, event_id
from .session import Session
from .transport.websocket import WebSocketTransport

# Output format options
FORMAT_TEXT = "text"
FORMAT_JSON = "json"

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Log to stderr; frames are only shown in debug mode."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )


def parse_value(text: str | None) -> Any:
    """Parse a JSON value, falling back to the raw string."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def format_value(value: Any, output_format: str) -> str:
    if output_format == FORMAT_JSON:
        return json.dumps(value, indent=2)
    if isinstance(value, str):
        return value
    return json.dumps(value)


@click.group()
@click.option("--host", default=None, help="Server host (default: $IP or localhost)")
@click.option("--port", type=int, default=None, help="Server port (default: $PORT or 8342)")
@click.option("--debug", is_flag=True, help="Log every frame sent and received")
@click.pass_context
def main(ctx: click.Context, host: str | None, port: int | None, debug: bool) -> None:
    """Query and watch a scene server over its WebSocket."""
    config = ClientConfig.from_env()
    if host:
        config.host = host
    if port:
        config.port = port
    config.debug = config.debug or debug

    configure_logging(config.debug)
    ctx.obj = config


def _run(config: ClientConfig, work: Any) -> None:
    """Connect, run ``work(session)``, always disconnect."""

    async def execute() -> None:
        session = Session(WebSocketTransport(config))
        try:
            await session.connect()
        except ConnectionError:
            click.echo(f"Cannot connect to server at {config.url}", err=True)
            sys.exit(1)
        try:
            await work(session)
        finally:
            await session.disconnect()

    try:
        asyncio.run(execute())
    except UniumError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)


def _collect(session: Session, request_id: str, ack: AckToken) -> asyncio.Queue[Reply]:
    """Queue every reply for an id except acknowledgments and errors."""
    queue: asyncio.Queue[Reply] = asyncio.Queue()

    def on_reply(reply: Reply) -> None:
        if reply.id == request_id and not reply.had_error and reply.payload != ack.value:
            queue.put_nowait(reply)

    session.transport.on_message(on_reply)
    return queue


async def _echo(
    queue: asyncio.Queue[Reply],
    until: Any,
    count: int | None,
    output_format: str,
) -> None:
    """Print replies until ``until`` is seen or ``count`` replies arrived."""
    seen = 0
    while True:
        reply = await queue.get()
        seen += 1
        click.echo(format_value(reply.payload, output_format))
        if until is not None and reply.payload == until:
            return
        if count is not None and seen >= count:
            return


@main.command("query")
@click.argument("path")
@click.option("--id", "request_id", default="cli_query", help="Correlation id")
@click.option("--all", "show_all", is_flag=True, help="Print every result, not just the first")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)
@click.pass_obj
def query(
    config: ClientConfig, path: str, request_id: str, show_all: bool, output_format: str
) -> None:
    """Run a one-shot query.

    Examples:

        unium-client query scene/Game/Player
        unium-client query "scene//Enemy*" --all --format json
    """

    async def work(session: Session) -> None:
        if show_all:
            result = await session.query_all(request_id, path)
        else:
            result = await session.query(request_id, path)
        click.echo(format_value(result, output_format))
        error = session.last_error(request_id)
        if error:
            click.echo(f"Server reported: {error}", err=True)

    _run(config, work)


@main.command("watch")
@click.argument("path")
@click.option("--id", "request_id", default="cli_watch", help="Correlation id")
@click.option("--freq", type=float, default=1.0, help="Seconds between samples (0 = every frame)")
@click.option("--until", "until", default=None, help="Stop once a sample equals this JSON value")
@click.option("--count", "-n", type=int, default=None, help="Stop after this many samples")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)
@click.pass_obj
def watch(
    config: ClientConfig,
    path: str,
    request_id: str,
    freq: float,
    until: str | None,
    count: int | None,
    output_format: str,
) -> None:
    """Sample a query repeatedly, then stop it.

    Runs until --until matches, --count samples arrive, or Ctrl+C.
    """

    async def work(session: Session) -> None:
        samples = _collect(session, request_id, AckToken.REPEATING)
        await session.repeat_query(request_id, path, freq)
        await _echo(samples, parse_value(until), count, output_format)
        await session.remove_query(request_id)

    _run(config, work)


@main.command("bind")
@click.argument("name")
@click.argument("path")
@click.option("--poll", is_flag=True, help="Retry every second until the event source exists")
@click.option("--until", "until", default=None, help="Stop once an event equals this JSON value")
@click.option("--count", "-n", type=int, default=None, help="Stop after this many events")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)
@click.pass_obj
def bind(
    config: ClientConfig,
    name: str,
    path: str,
    poll: bool,
    until: str | None,
    count: int | None,
    output_format: str,
) -> None:
    """Bind to a scene event and print each occurrence."""

    async def work(session: Session) -> None:
        events = _collect(session, event_id(name), AckToken.BOUND)
        attempts = await session.bind_to_event(name, path, polling=poll)
        click.echo(f"Bound to {path} after {attempts} attempt(s)", err=True)
        await _echo(events, parse_value(until), count, output_format)

    _run(config, work)


if __name__ == "__main__":
    main()
