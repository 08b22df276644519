"""Socket transport abstraction.

A transport owns the connection and nothing else: it sends text frames,
parses inbound frames into Reply objects and hands them to registered
handlers. Correlating replies with requests is the session's job.

Implementations:
- WebSocketTransport: real socket via the websockets library
- MockTransport: in-memory, scripted replies for tests
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..config import ClientConfig
from ..errors import TransportUnavailable
from ..protocol.messages import Reply

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Reply], None]
DisconnectHandler = Callable[[], None]


class TransportState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


@runtime_checkable
class SocketTransport(Protocol):
    """Protocol for transports a Session can drive."""

    @property
    def is_ready(self) -> bool:
        """Check if frames can be sent."""
        ...

    async def connect(self) -> None:
        """Open the connection.

        Raises:
            ConnectionError: If the server is unreachable
        """
        ...

    async def send(self, text: str) -> None:
        """Send one text frame.

        Raises:
            TransportUnavailable: If not connected
        """
        ...

    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler called with every parsed inbound reply."""
        ...

    def on_disconnect(self, handler: DisconnectHandler) -> None:
        """Register a handler called once the connection is gone."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...


class BaseSocketTransport(ABC):
    """Base class for transports with common functionality.

    Provides:
    - State management
    - Background reader task
    - Parsing and fan-out of inbound frames
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self._state = TransportState.DISCONNECTED
        self._handlers: list[MessageHandler] = []
        self._disconnect_handlers: list[DisconnectHandler] = []
        self._reader_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == TransportState.CONNECTED

    def on_message(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def on_disconnect(self, handler: DisconnectHandler) -> None:
        self._disconnect_handlers.append(handler)

    async def connect(self) -> None:
        """Establish connection."""
        async with self._lock:
            if self._state == TransportState.CONNECTED:
                return

            self._state = TransportState.CONNECTING
            try:
                await self._do_connect()
            except Exception as e:
                self._state = TransportState.DISCONNECTED
                raise ConnectionError(f"Failed to connect: {e}") from e

            self._state = TransportState.CONNECTED
            self._reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"{self.__class__.__name__} connected to {self.config.url}")

    async def close(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self._state in (TransportState.DISCONNECTED, TransportState.CLOSED):
                return

            self._state = TransportState.CLOSED

            if self._reader_task:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
                self._reader_task = None

            await self._do_close()
            self._state = TransportState.DISCONNECTED
            self._notify_disconnect()
            logger.info(f"{self.__class__.__name__} disconnected")

    async def send(self, text: str) -> None:
        if not self.is_ready:
            raise TransportUnavailable()
        logger.debug(f"Sending message: {text}")
        await self._do_send(text)

    def deliver(self, reply: Reply) -> None:
        """Hand a parsed reply to every registered handler."""
        for handler in list(self._handlers):
            try:
                handler(reply)
            except Exception:
                logger.exception(f"Error in message handler for {reply.id}")

    async def _read_loop(self) -> None:
        """Background task reading frames and routing them."""
        try:
            async for frame in self._receive_frames():
                try:
                    reply = Reply.from_json(frame)
                except (json.JSONDecodeError, ValueError) as e:
                    logger.warning(f"Invalid message from server: {e}")
                    continue
                logger.debug(f"Received message: {reply.model_dump_json()}")
                self.deliver(reply)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Read loop error: {e}")

        # Server went away on its own
        if self._state == TransportState.CONNECTED:
            self._state = TransportState.DISCONNECTED
            logger.info(f"{self.__class__.__name__} connection lost")
            self._notify_disconnect()

    def _notify_disconnect(self) -> None:
        for handler in list(self._disconnect_handlers):
            try:
                handler()
            except Exception:
                logger.exception("Error in disconnect handler")

    # Abstract methods for subclasses
    @abstractmethod
    async def _do_connect(self) -> None:
        """Implementation-specific connection logic."""
        ...

    @abstractmethod
    async def _do_close(self) -> None:
        """Implementation-specific disconnection logic."""
        ...

    @abstractmethod
    async def _do_send(self, text: str) -> None:
        """Implementation-specific send logic."""
        ...

    @abstractmethod
    def _receive_frames(self) -> AsyncIterator[str | bytes]:
        """Implementation-specific receive logic. Must be an async generator."""
        ...

    async def __aenter__(self) -> BaseSocketTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
