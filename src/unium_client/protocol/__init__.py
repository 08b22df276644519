"""Wire protocol for the scene server socket."""

from .messages import (
    BIND_PREFIX,
    EVENT_ID_PREFIX,
    QUERY_PREFIX,
    AckToken,
    QueryMessage,
    RepeatSpec,
    Reply,
    bind_path,
    event_id,
    query_path,
    stop_path,
)

__all__ = [
    "BIND_PREFIX",
    "EVENT_ID_PREFIX",
    "QUERY_PREFIX",
    "AckToken",
    "QueryMessage",
    "RepeatSpec",
    "Reply",
    "bind_path",
    "event_id",
    "query_path",
    "stop_path",
]
