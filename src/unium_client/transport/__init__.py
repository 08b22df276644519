"""Transports carrying messages to and from the scene server."""

from .base import (
    BaseSocketTransport,
    DisconnectHandler,
    MessageHandler,
    SocketTransport,
    TransportState,
)
from .mock import MockTransport
from .websocket import WebSocketTransport, create_websocket_transport

__all__ = [
    "BaseSocketTransport",
    "DisconnectHandler",
    "MessageHandler",
    "MockTransport",
    "SocketTransport",
    "TransportState",
    "WebSocketTransport",
    "create_websocket_transport",
]
