"""Session - public API for talking to a scene server.

A Session owns one Correlator and one transport. Each operation builds a
message, registers a waiter for its id, sends it and awaits the reply:

    async with Session(WebSocketTransport()) as session:
        player = await session.query("get_player", "scene/Game/Player")

        await session.repeat_query("player_alive", "scene/Game/Player.activeInHierarchy", 0.25)
        await session.wait_for_repeat_response("player_alive", [False])
        await session.remove_query("player_alive")

        await session.bind_to_event("died", "scene/Game/Player.Died", polling=True)
        await session.wait_for_event("died", {"reason": "fall"})

Repeating queries keep running on the server until stopped. The session
tracks their ids so disconnect() (or clean_up_repeating_queries()) can stop
them all.

One-shot awaits have no timeout. Wrap calls in asyncio.timeout() if needed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .config import ClientConfig
from .correlator import Correlator
from .errors import DuplicateSubscription, RemoteError, TransportUnavailable
from .protocol.messages import AckToken, QueryMessage, Reply, event_id
from .transport.base import SocketTransport

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]

DEFAULT_BIND_RETRY_INTERVAL = 1.0


class Session:
    """Correlated request/response session over one socket."""

    def __init__(
        self,
        transport: SocketTransport,
        *,
        correlator: Correlator | None = None,
        sleep: SleepFunc = asyncio.sleep,
        bind_retry_interval: float = DEFAULT_BIND_RETRY_INTERVAL,
    ):
        self.transport = transport
        self.correlator = correlator or Correlator()
        self.bind_retry_interval = bind_retry_interval
        self.remote_errors: list[RemoteError] = []
        self._sleep = sleep
        self._repeating: dict[str, None] = {}  # insertion-ordered set
        self._registry_lock = asyncio.Lock()

        transport.on_message(self._on_reply)
        transport.on_disconnect(self._on_disconnect)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.transport.is_ready

    @property
    def repeating_queries(self) -> tuple[str, ...]:
        """Ids of repeating queries started and not yet stopped."""
        return tuple(self._repeating)

    async def connect(self) -> None:
        await self.transport.connect()

    async def close(self) -> None:
        """Close the socket, failing anything still awaited."""
        await self.transport.close()
        self.correlator.cancel_all("Session closed")
        self._repeating.clear()

    async def disconnect(self) -> None:
        """Stop all repeating queries, then close."""
        try:
            if self.is_ready:
                await self.clean_up_repeating_queries()
        finally:
            await self.close()

    async def sleep(self, seconds: float) -> None:
        await self._sleep(seconds)

    async def __aenter__(self) -> Session:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def query(self, request_id: str, path: str) -> Any:
        """Send a query and return the first result (None if nothing matched)."""
        results = await self.query_all(request_id, path)
        return results[0] if results else None

    async def query_all(self, request_id: str, path: str) -> Any:
        """Send a query and return every result."""
        return await self._send(QueryMessage.query(request_id, path))

    async def repeat_query(self, request_id: str, path: str, frequency: float) -> None:
        """Start a query the server re-runs until stopped.

        Args:
            request_id: Id the server tags every sample with
            path: Scene query path (without the /q/ prefix)
            frequency: Seconds between samples (0 samples every frame)

        Raises:
            DuplicateSubscription: If a repeating query with this id is running
            UnexpectedReply: If the server does not acknowledge with "repeating"
        """
        message = QueryMessage.repeating(request_id, path, frequency)
        async with self._registry_lock:
            if request_id in self._repeating:
                raise DuplicateSubscription(request_id)
            self._repeating[request_id] = None

            try:
                await self._send(message, AckToken.REPEATING.value)
            except BaseException:
                self._repeating.pop(request_id, None)
                raise
        logger.debug(f"Repeating query {request_id} started ({path}, freq={frequency})")

    async def wait_for_repeat_response(self, request_id: str, expected: Any) -> Any:
        """Wait until a repeating query returns ``expected``.

        Samples that do not match are ignored.
        """
        return await self.correlator.await_reply(request_id, expected, repeating=True)

    async def remove_query(self, request_id: str) -> None:
        """Stop a repeating query and forget its id."""
        async with self._registry_lock:
            await self._stop(request_id)

    async def clean_up_repeating_queries(self) -> None:
        """Stop every repeating query, one at a time."""
        async with self._registry_lock:
            for request_id in list(self._repeating):
                await self._stop(request_id)

    async def _stop(self, request_id: str) -> None:
        # Samples already in flight may arrive before the ack
        await self._send(QueryMessage.stop(request_id), AckToken.STOPPED.value, repeating=True)
        self._repeating.pop(request_id, None)
        logger.debug(f"Repeating query {request_id} stopped")

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def bind_to_event(self, name: str, path: str, polling: bool = False) -> int:
        """Bind to a scene event.

        With ``polling`` the bind is retried every ``bind_retry_interval``
        seconds until the server acknowledges it. Use this when the event
        source does not exist yet, e.g. it lives in a scene still loading.

        Returns:
            Number of bind attempts made

        Raises:
            UnexpectedReply: If not polling and the server does not reply "bound"
        """
        attempts = 0
        while True:
            attempts += 1
            message = QueryMessage.bind(name, path)
            if not polling:
                await self._send(message, AckToken.BOUND.value)
                return attempts

            if await self._send(message) == AckToken.BOUND.value:
                logger.debug(f"Bound to {path} as {message.id} after {attempts} attempt(s)")
                return attempts

            logger.debug(f"Bind to {path} not ready, retrying in {self.bind_retry_interval}s")
            await self._sleep(self.bind_retry_interval)

    async def wait_for_event(self, name: str, expected: Any) -> Any:
        """Wait until a bound event fires with ``expected``."""
        return await self.correlator.await_reply(event_id(name), expected, repeating=True)

    # -------------------------------------------------------------------------
    # Remote errors
    # -------------------------------------------------------------------------

    def last_error(self, request_id: str) -> str | None:
        """Most recent server error reported for an id."""
        for error in reversed(self.remote_errors):
            if error.request_id == request_id:
                return error.message
        return None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _send(
        self, message: QueryMessage, expected: Any = None, repeating: bool = False
    ) -> Any:
        if not self.transport.is_ready:
            raise TransportUnavailable(f"Cannot send {message.id}: transport not connected")

        reply = self.correlator.await_reply(message.id, expected, repeating)
        try:
            await self.transport.send(message.to_json())
        except BaseException:
            reply.cancel()
            raise
        return await reply

    def _on_reply(self, reply: Reply) -> None:
        if reply.had_error:
            error = RemoteError(reply.id, reply.error or "")
            self.remote_errors.append(error)
            logger.warning(str(error))
        self.correlator.dispatch_reply(reply.id, reply.payload, reply.had_error)

    def _on_disconnect(self) -> None:
        self.correlator.cancel_all("Connection lost")
        self._repeating.clear()


async def connect_session(
    config: ClientConfig | None = None,
    *,
    transport: SocketTransport | None = None,
    retry_delay: float = 0.3,
    ready_poll: float = 0.1,
    sleep: SleepFunc = asyncio.sleep,
    **session_kwargs: Any,
) -> Session:
    """Connect a session, retrying until the server is reachable.

    Keeps trying forever; wrap in asyncio.timeout() to bound the wait.
    """
    if transport is None:
        from .transport.websocket import WebSocketTransport

        transport = WebSocketTransport(config or ClientConfig.from_env())

    session = Session(transport, sleep=sleep, **session_kwargs)
    while True:
        try:
            await session.connect()
            break
        except ConnectionError as e:
            logger.info(f"Error while connecting: {e}")
            await sleep(retry_delay)

    while not session.is_ready:
        logger.debug("Client is not ready, waiting for connection")
        await sleep(ready_poll)
    return session


async def disconnect_session(session: Session) -> None:
    """Stop all repeating queries and close the session."""
    await session.disconnect()
