"""Reply correlator.

Maps a request id to the single waiter interested in its next reply and
routes inbound replies to it. Each session owns its own instance.

Resolution policy:
- No expected value: resolve on the first reply.
- Expected value, one-shot: resolve on a match, reject on anything else.
- Expected value, repeating: resolve on a match, ignore anything else.

A waiter leaves the table in the same step that settles its future, so the
id can be reused immediately.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import DuplicateWaiter, TransportUnavailable, UnexpectedReply, WaiterSuperseded

logger = logging.getLogger(__name__)


class DuplicatePolicy(str, Enum):
    """What to do when an id that already has a live waiter is registered again."""

    REPLACE = "replace"  # Newest registration wins, the old waiter fails
    REJECT = "reject"  # New registration raises DuplicateWaiter


@dataclass
class Waiter:
    """Someone awaiting the next matching reply for an id."""

    request_id: str
    future: asyncio.Future[Any]
    expected: Any = None
    repeating: bool = False

    def matches(self, payload: Any) -> bool:
        return self.expected is None or self.expected == payload


class Correlator:
    """Routes replies to waiters by request id.

    Usage:
        correlator = Correlator()
        reply = correlator.await_reply("get_player")
        correlator.dispatch_reply("get_player", [{"name": "Player"}])
        assert await reply == [{"name": "Player"}]
    """

    def __init__(self, duplicate_policy: DuplicatePolicy = DuplicatePolicy.REPLACE):
        self.duplicate_policy = duplicate_policy
        self._waiters: dict[str, Waiter] = {}

    def __len__(self) -> int:
        return len(self._waiters)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._waiters

    def pending(self, request_id: str) -> bool:
        """Check whether a waiter is registered for an id."""
        return request_id in self._waiters

    def await_reply(
        self,
        request_id: str,
        expected: Any = None,
        repeating: bool = False,
    ) -> asyncio.Future[Any]:
        """Register interest in the next reply for ``request_id``.

        Args:
            request_id: Correlation id echoed by the server
            expected: Payload to wait for (None accepts any reply)
            repeating: Keep waiting through non-matching replies instead of failing

        Returns:
            Future resolved with the matching payload, or failed with UnexpectedReply

        Raises:
            DuplicateWaiter: If the id is already awaited and the policy is REJECT
        """
        existing = self._waiters.get(request_id)
        if existing is not None:
            if self.duplicate_policy == DuplicatePolicy.REJECT:
                raise DuplicateWaiter(request_id)
            logger.debug(f"Replacing pending waiter for {request_id}")
            del self._waiters[request_id]
            if not existing.future.done():
                existing.future.set_exception(WaiterSuperseded(request_id))

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        waiter = Waiter(request_id=request_id, future=future, expected=expected, repeating=repeating)
        self._waiters[request_id] = waiter
        future.add_done_callback(lambda _: self._forget(waiter))
        return future

    def dispatch_reply(self, request_id: str, payload: Any, had_error: bool = False) -> bool:
        """Deliver a reply to the waiter registered for its id.

        Replies nobody is waiting for are dropped.

        Returns:
            True if a waiter consumed the reply
        """
        waiter = self._waiters.get(request_id)
        if waiter is None:
            logger.debug(f"Dropping reply for {request_id}: nobody is waiting")
            return False

        logger.debug(
            f"Reply for {request_id}: payload={payload!r} expected={waiter.expected!r} "
            f"repeating={waiter.repeating} error={had_error}"
        )

        if waiter.matches(payload):
            self._settle(waiter, result=payload)
        elif not waiter.repeating:
            self._settle(waiter, error=UnexpectedReply(request_id, waiter.expected, payload))
        return True

    def cancel_all(self, reason: str = "Transport closed") -> None:
        """Fail every outstanding waiter with TransportUnavailable."""
        waiters = list(self._waiters.values())
        self._waiters.clear()
        for waiter in waiters:
            if not waiter.future.done():
                waiter.future.set_exception(TransportUnavailable(reason))
        if waiters:
            logger.info(f"Abandoned {len(waiters)} pending waiter(s): {reason}")

    def _settle(self, waiter: Waiter, *, result: Any = None, error: Exception | None = None) -> None:
        del self._waiters[waiter.request_id]
        if waiter.future.done():
            # Cancelled by the caller before its done-callback ran
            return
        if error is not None:
            waiter.future.set_exception(error)
        else:
            waiter.future.set_result(result)

    def _forget(self, waiter: Waiter) -> None:
        # Drops waiters whose future was cancelled by the caller
        if self._waiters.get(waiter.request_id) is waiter:
            del self._waiters[waiter.request_id]
