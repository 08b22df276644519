"""WebSocket transport to a scene server."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import websockets

from ..config import ClientConfig
from .base import BaseSocketTransport

logger = logging.getLogger(__name__)


class WebSocketTransport(BaseSocketTransport):
    """Transport over a single persistent WebSocket.

    Wire format:
    - Client -> server: one JSON object per text frame
    - Server -> client: one JSON object per text frame
    """

    def __init__(self, config: ClientConfig | None = None):
        super().__init__(config)
        self._ws: Any = None  # websockets ClientConnection

    async def _do_connect(self) -> None:
        self._ws = await websockets.connect(
            self.config.url,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
        )

    async def _do_close(self) -> None:
        if self._ws:
            await self._ws.close()
            self._ws = None

    async def _do_send(self, text: str) -> None:
        if not self._ws:
            raise ConnectionError("WebSocket not connected")
        await self._ws.send(text)

    async def _receive_frames(self) -> AsyncIterator[str | bytes]:
        if not self._ws:
            raise ConnectionError("WebSocket not connected")

        try:
            async for frame in self._ws:
                yield frame
        except websockets.ConnectionClosed as e:
            logger.info(f"WebSocket closed by server: {e}")


def create_websocket_transport(
    host: str | None = None,
    port: int | None = None,
) -> WebSocketTransport:
    """Create a WebSocket transport.

    Host and port default to the ``IP``/``PORT`` environment variables.
    """
    config = ClientConfig.from_env()
    if host:
        config.host = host
    if port:
        config.port = port
    return WebSocketTransport(config)
