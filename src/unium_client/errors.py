"""Error types raised by the correlation layer.

Every failure surfaces to the immediate caller as one of these. None of them
are fatal to the session.
"""

from __future__ import annotations

from typing import Any


class UniumError(Exception):
    """Base class for all client errors."""


class TransportUnavailable(UniumError, ConnectionError):
    """A message was sent while the socket was not open."""

    def __init__(self, message: str = "Transport not connected") -> None:
        super().__init__(message)


class UnexpectedReply(UniumError):
    """A one-shot reply did not carry the expected payload."""

    def __init__(self, request_id: str, expected: Any, actual: Any) -> None:
        self.request_id = request_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Returned response ({actual!r}) does not match expected ({expected!r}) "
            f"for id {request_id!r}"
        )


class DuplicateSubscription(UniumError):
    """A repeating query was started under an id that is already running."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Repeating query ID ({request_id}) is already being used")


class DuplicateWaiter(UniumError):
    """A waiter was registered for an id that already has a live waiter."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"A reply for id {request_id!r} is already being awaited")


class WaiterSuperseded(UniumError):
    """A pending waiter was replaced by a newer registration for the same id."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Waiter for id {request_id!r} was replaced by a newer one")


class RemoteError(UniumError):
    """The server attached an error message to a reply.

    Recorded for diagnostics. The reply itself is still delivered.
    """

    def __init__(self, request_id: str, message: str) -> None:
        self.request_id = request_id
        self.message = message
        super().__init__(f"Message has an error: {{{request_id}}} {message}")
