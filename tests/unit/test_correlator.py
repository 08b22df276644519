"""Unit tests for the reply correlator.

Covers one-shot and repeating resolution, deregistration and the duplicate
registration policies.
"""

from __future__ import annotations

import asyncio

import pytest

from unium_client.correlator import Correlator, DuplicatePolicy
from unium_client.errors import (
    DuplicateWaiter,
    TransportUnavailable,
    UnexpectedReply,
    WaiterSuperseded,
)

# =============================================================================
# One-shot waiters
# =============================================================================


class TestOneShotWaiter:
    """Tests for waiters registered with repeating=False."""

    @pytest.mark.asyncio
    async def test_resolves_with_any_payload_without_expected(self) -> None:
        """First reply resolves the waiter when nothing is expected."""
        correlator = Correlator()
        reply = correlator.await_reply("q1")

        assert correlator.dispatch_reply("q1", ["ALIVE"]) is True
        assert await reply == ["ALIVE"]

    @pytest.mark.asyncio
    async def test_resolves_on_matching_payload(self) -> None:
        """Reply equal to the expected value resolves."""
        correlator = Correlator()
        reply = correlator.await_reply("r1", "repeating")

        correlator.dispatch_reply("r1", "repeating")
        assert await reply == "repeating"

    @pytest.mark.asyncio
    async def test_mismatch_rejects_with_both_values(self) -> None:
        """Non-matching reply rejects with expected and actual payloads."""
        correlator = Correlator()
        reply = correlator.await_reply("s1", "stopped")

        correlator.dispatch_reply("s1", "nope")

        with pytest.raises(UnexpectedReply) as exc_info:
            await reply
        assert exc_info.value.request_id == "s1"
        assert exc_info.value.expected == "stopped"
        assert exc_info.value.actual == "nope"
        assert "nope" in str(exc_info.value)
        assert "stopped" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rejected_waiter_ignores_later_correct_reply(self) -> None:
        """Once rejected, the waiter is gone and later replies are dropped."""
        correlator = Correlator()
        reply = correlator.await_reply("s1", "stopped")

        correlator.dispatch_reply("s1", "nope")
        assert correlator.dispatch_reply("s1", "stopped") is False

        with pytest.raises(UnexpectedReply):
            await reply

    @pytest.mark.asyncio
    async def test_deregisters_on_resolution(self) -> None:
        """The id is free again as soon as the reply is dispatched."""
        correlator = Correlator()
        first = correlator.await_reply("q1")

        correlator.dispatch_reply("q1", [1])
        assert "q1" not in correlator
        assert len(correlator) == 0

        second = correlator.await_reply("q1")
        correlator.dispatch_reply("q1", [2])
        assert await first == [1]
        assert await second == [2]

    @pytest.mark.asyncio
    async def test_error_flag_does_not_reject(self) -> None:
        """A reply flagged with an error still resolves."""
        correlator = Correlator()
        reply = correlator.await_reply("q1")

        correlator.dispatch_reply("q1", [], had_error=True)
        assert await reply == []


# =============================================================================
# Repeating waiters
# =============================================================================


class TestRepeatingWaiter:
    """Tests for waiters registered with repeating=True."""

    @pytest.mark.asyncio
    async def test_stays_pending_until_match(self) -> None:
        """Non-matching replies are ignored until the expected one arrives."""
        correlator = Correlator()
        reply = correlator.await_reply("pos", [3], repeating=True)

        for payload in ([0], [1], [2]):
            assert correlator.dispatch_reply("pos", payload) is True
            assert not reply.done()
            assert correlator.pending("pos")

        correlator.dispatch_reply("pos", [3])
        assert await reply == [3]
        assert not correlator.pending("pos")

    @pytest.mark.asyncio
    async def test_resolves_exactly_once(self) -> None:
        """Replies after the match are dropped."""
        correlator = Correlator()
        reply = correlator.await_reply("pos", "done", repeating=True)

        correlator.dispatch_reply("pos", "done")
        assert correlator.dispatch_reply("pos", "done") is False
        assert await reply == "done"


# =============================================================================
# Routing
# =============================================================================


class TestRouting:
    """Tests for reply routing across ids."""

    def test_dispatch_without_waiter_is_dropped(self) -> None:
        """Replies nobody awaits are not queued."""
        correlator = Correlator()
        assert correlator.dispatch_reply("ghost", ["x"]) is False
        assert len(correlator) == 0

    @pytest.mark.asyncio
    async def test_ids_are_independent(self) -> None:
        """Replies only reach the waiter with the same id."""
        correlator = Correlator()
        a = correlator.await_reply("a")
        b = correlator.await_reply("b")

        correlator.dispatch_reply("b", ["B"])
        assert b.done()
        assert not a.done()

        correlator.dispatch_reply("a", ["A"])
        assert await a == ["A"]
        assert await b == ["B"]

    @pytest.mark.asyncio
    async def test_cancelled_waiter_is_forgotten(self) -> None:
        """A waiter cancelled by its caller leaves the table."""
        correlator = Correlator()
        reply = correlator.await_reply("slow")

        reply.cancel()
        await asyncio.sleep(0)

        assert not correlator.pending("slow")
        assert correlator.dispatch_reply("slow", ["late"]) is False

    @pytest.mark.asyncio
    async def test_cancel_all_fails_pending_waiters(self) -> None:
        """cancel_all fails every waiter with TransportUnavailable."""
        correlator = Correlator()
        a = correlator.await_reply("a")
        b = correlator.await_reply("b", "x", repeating=True)

        correlator.cancel_all("gone")

        assert len(correlator) == 0
        for reply in (a, b):
            with pytest.raises(TransportUnavailable, match="gone"):
                await reply


# =============================================================================
# Duplicate registration
# =============================================================================


class TestDuplicatePolicy:
    """Tests for registering an id that already has a live waiter."""

    def test_default_policy_is_replace(self) -> None:
        """Last registration wins by default."""
        assert Correlator().duplicate_policy == DuplicatePolicy.REPLACE

    @pytest.mark.asyncio
    async def test_replace_supersedes_older_waiter(self) -> None:
        """The older waiter fails and the newer one gets the reply."""
        correlator = Correlator()
        old = correlator.await_reply("q1")
        new = correlator.await_reply("q1")

        correlator.dispatch_reply("q1", ["value"])

        with pytest.raises(WaiterSuperseded):
            await old
        assert await new == ["value"]
        assert len(correlator) == 0

    @pytest.mark.asyncio
    async def test_reject_raises_and_keeps_original(self) -> None:
        """REJECT refuses the second registration."""
        correlator = Correlator(duplicate_policy=DuplicatePolicy.REJECT)
        original = correlator.await_reply("q1")

        with pytest.raises(DuplicateWaiter) as exc_info:
            correlator.await_reply("q1")
        assert exc_info.value.request_id == "q1"

        correlator.dispatch_reply("q1", ["value"])
        assert await original == ["value"]
