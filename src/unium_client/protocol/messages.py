"""Wire messages exchanged with the scene server.

Outbound messages carry an ``id`` that the server echoes back on every reply:

    {"id": "get_player", "q": "/q/scene/Game/Player"}
    {"id": "pos", "q": "/q/scene/Game/Player.position", "repeat": {"freq": 0.25}}
    {"id": "event_ready", "q": "/bind/scene/Game.ready"}
    {"id": "pos", "q": "/socket.stop(pos)"}

Inbound replies put query results in ``data`` (a list) and event payloads or
acknowledgments in ``info``:

    {"id": "get_player", "data": [{"name": "Player", "activeInHierarchy": true}]}
    {"id": "pos", "info": "repeating"}
    {"id": "get_player", "data": [], "error": "no match"}
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

QUERY_PREFIX = "/q/"
BIND_PREFIX = "/bind/"
EVENT_ID_PREFIX = "event_"


class AckToken(str, Enum):
    """Acknowledgment payloads sent by the server."""

    REPEATING = "repeating"  # Repeating query started
    STOPPED = "stopped"  # Repeating query or binding stopped
    BOUND = "bound"  # Event binding established


def query_path(path: str) -> str:
    """Build the ``q`` field for a scene query."""
    return f"{QUERY_PREFIX}{path}"


def bind_path(path: str) -> str:
    """Build the ``q`` field for an event binding."""
    return f"{BIND_PREFIX}{path}"


def stop_path(request_id: str) -> str:
    """Build the ``q`` field that stops a repeating query or binding."""
    return f"/socket.stop({request_id})"


def event_id(name: str) -> str:
    """Namespace an event name so it cannot collide with a query id."""
    return f"{EVENT_ID_PREFIX}{name}"


class RepeatSpec(BaseModel):
    """Sampling settings for a repeating query.

    ``freq`` is the interval in seconds between samples; 0 samples every frame.
    """

    freq: float = Field(ge=0)


class QueryMessage(BaseModel):
    """A message from client to server."""

    id: str
    q: str
    repeat: RepeatSpec | None = None

    def to_json(self) -> str:
        """Serialize for the wire, omitting ``repeat`` when unset."""
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def query(cls, request_id: str, path: str) -> QueryMessage:
        return cls(id=request_id, q=query_path(path))

    @classmethod
    def repeating(cls, request_id: str, path: str, frequency: float) -> QueryMessage:
        return cls(id=request_id, q=query_path(path), repeat=RepeatSpec(freq=frequency))

    @classmethod
    def bind(cls, name: str, path: str) -> QueryMessage:
        return cls(id=event_id(name), q=bind_path(path))

    @classmethod
    def stop(cls, request_id: str) -> QueryMessage:
        return cls(id=request_id, q=stop_path(request_id))


class Reply(BaseModel):
    """A message from server to client."""

    id: str
    data: Any = None
    info: Any = None
    error: str | None = None

    @property
    def payload(self) -> Any:
        """The value handed to waiters: ``info`` when present, otherwise ``data``."""
        return self.info if self.info is not None else self.data

    @property
    def had_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_json(cls, text: str | bytes) -> Reply:
        """Parse a raw frame.

        Raises:
            json.JSONDecodeError: If the frame is not JSON
            ValueError: If the frame is not a valid reply
        """
        return cls.model_validate(json.loads(text))
