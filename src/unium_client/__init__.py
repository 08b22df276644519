"""Unium client - correlated queries and event bindings over one WebSocket.

Provides:
- Session: query, repeating query and event binding API
- Correlator: routes replies to the waiter that asked for them
- Transports: WebSocket for real servers, in-memory mock for tests
"""

from .config import ClientConfig
from .correlator import Correlator, DuplicatePolicy, Waiter
from .errors import (
    DuplicateSubscription,
    DuplicateWaiter,
    RemoteError,
    TransportUnavailable,
    UnexpectedReply,
    UniumError,
    WaiterSuperseded,
)
from .protocol import AckToken, QueryMessage, Reply
from .session import Session, connect_session, disconnect_session
from .transport import MockTransport, SocketTransport, TransportState, WebSocketTransport

__all__ = [
    # Session
    "Session",
    "connect_session",
    "disconnect_session",
    # Correlation
    "Correlator",
    "DuplicatePolicy",
    "Waiter",
    # Protocol
    "AckToken",
    "QueryMessage",
    "Reply",
    # Transport
    "MockTransport",
    "SocketTransport",
    "TransportState",
    "WebSocketTransport",
    # Config
    "ClientConfig",
    # Errors
    "DuplicateSubscription",
    "DuplicateWaiter",
    "RemoteError",
    "TransportUnavailable",
    "UnexpectedReply",
    "UniumError",
    "WaiterSuperseded",
]
