"""In-memory transport for tests.

Records every frame sent and answers with scripted replies keyed by the
outbound ``q`` path. No actual I/O.

Usage:
    transport = MockTransport()
    transport.set_reply("/q/scene/Game/Player", [{"data": [{"name": "Player"}]}])

    session = Session(transport)
    await session.connect()
    player = await session.query("get_player", "scene/Game/Player")

    assert transport.sent[0].id == "get_player"
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from collections.abc import AsyncIterator
from typing import Any

from ..protocol.messages import QueryMessage, Reply
from .base import BaseSocketTransport

ScriptedReply = dict[str, Any] | Reply


class MockTransport(BaseSocketTransport):
    """Scripted transport.

    Replies without an ``id`` are sent back under the id of the message that
    triggered them.
    """

    def __init__(self, fail_connects: int = 0) -> None:
        super().__init__()
        self.fail_connects = fail_connects
        self.connect_attempts = 0
        self._sent: list[QueryMessage] = []
        self._defaults: dict[str, list[ScriptedReply]] = {}
        self._rounds: dict[str, deque[list[ScriptedReply]]] = {}
        self._inbound: asyncio.Queue[str] = asyncio.Queue()

    @property
    def sent(self) -> list[QueryMessage]:
        """All messages sent through this transport."""
        return self._sent.copy()

    def sent_paths(self) -> list[str]:
        return [m.q for m in self._sent]

    def set_reply(self, q: str, replies: list[ScriptedReply]) -> None:
        """Answer every message for ``q`` with ``replies``."""
        self._defaults[q] = replies

    def queue_reply(self, q: str, replies: list[ScriptedReply]) -> None:
        """Answer the next unanswered message for ``q`` with ``replies``.

        Queued rounds are consumed in order before falling back to set_reply.
        """
        self._rounds.setdefault(q, deque()).append(replies)

    def inject(self, reply: ScriptedReply) -> None:
        """Push an unsolicited reply, as a repeating query or event would."""
        self._inbound.put_nowait(self._encode(reply, None))

    def drop_connection(self) -> None:
        """Simulate the server closing the socket."""
        self._inbound.put_nowait("")

    async def _do_connect(self) -> None:
        self.connect_attempts += 1
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise OSError("Connection refused")

    async def _do_close(self) -> None:
        pass

    async def _do_send(self, text: str) -> None:
        message = QueryMessage.model_validate_json(text)
        self._sent.append(message)

        rounds = self._rounds.get(message.q)
        replies = rounds.popleft() if rounds else self._defaults.get(message.q, [])
        for reply in replies:
            self._inbound.put_nowait(self._encode(reply, message.id))

    async def _receive_frames(self) -> AsyncIterator[str]:
        while True:
            frame = await self._inbound.get()
            if not frame:
                break
            yield frame

    @staticmethod
    def _encode(reply: ScriptedReply, request_id: str | None) -> str:
        if isinstance(reply, Reply):
            return reply.model_dump_json(exclude_none=True)
        data = dict(reply)
        if "id" not in data and request_id is not None:
            data["id"] = request_id
        return json.dumps(data)
