# gamevui/errors.py
from __future__ import annotations

from typing import Literal

ChannelErrorKind = Literal["conflict", "peer-unavailable", "network", "unsupported", "other"]


class ChannelError(Exception):
    """Failure reported by the channel substrate (allocate / connect / link)."""
    def __init__(self, kind: ChannelErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind
        super().__init__(f"[{kind}] {self.message}")


class SessionError(Exception):
    """Base exception for session-level failures surfaced to the UI layer."""
    code = "SESSION_ERROR"

    def __init__(self, message: str, code: str | None = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class AllocationConflict(SessionError):
    code = "ALLOCATION_CONFLICT"


class AllocationFailed(SessionError):
    code = "ALLOCATION_FAILED"


class ConnectTimeout(SessionError):
    code = "CONNECT_TIMEOUT"


class RoomNotFound(SessionError):
    code = "ROOM_NOT_FOUND"


class NetworkFailure(SessionError):
    code = "NETWORK_FAILURE"


class UnsupportedEnvironment(SessionError):
    code = "UNSUPPORTED_ENVIRONMENT"


class HostDisconnected(SessionError):
    code = "HOST_DISCONNECTED"


class ConnectionFailed(SessionError):
    code = "CONNECTION_FAILED"


class InvalidTransition(Exception):
    def __init__(self, current: str, event: str):
        self.current = current
        self.event = event
        super().__init__(f"Cannot apply {event} in state {current}")


def classify_channel_error(exc: ChannelError, *, room_code: str = "") -> SessionError:
    """Map a substrate failure to the message shown to a joining player."""
    if exc.kind == "peer-unavailable":
        return RoomNotFound(f'Room "{room_code}" not found. Check the room code and try again.')
    if exc.kind == "network":
        return NetworkFailure(
            "Network error: the connection was blocked. Try another network (e.g. mobile data) "
            "or ask the host for an invite link with relay (TURN) credentials."
        )
    if exc.kind == "unsupported":
        return UnsupportedEnvironment("This environment does not support peer connections.")
    return ConnectionFailed(f"System error: {exc.kind}")
