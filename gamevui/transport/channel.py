from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Literal, Optional, Protocol

from gamevui.errors import ChannelError

logger = logging.getLogger(__name__)

ChannelState = Literal["CONNECTING", "OPEN", "CLOSED", "ERRORED"]
ChannelEvent = Literal["open", "data", "close", "error"]

_TRANSITIONS: Dict[ChannelState, tuple] = {
    "CONNECTING": ("OPEN", "CLOSED", "ERRORED"),
    "OPEN": ("CLOSED", "ERRORED"),
    "ERRORED": ("CLOSED",),
    "CLOSED": (),
}


class Channel:
    """
    Narrow view of one point-to-point link.
    Reconcilers only see send / close / is_open and the four events; substrates drive
    the state machine through the underscore methods.
    """
    def __init__(self, peer: str) -> None:
        self.peer = peer
        self.state: ChannelState = "CONNECTING"
        self._handlers: Dict[str, List[Callable[..., None]]] = {
            "open": [],
            "data": [],
            "close": [],
            "error": [],
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} peer={self.peer} state={self.state}>"

    def on(self, event: ChannelEvent, handler: Callable[..., None]) -> None:
        self._handlers[event].append(handler)

    @property
    def is_open(self) -> bool:
        return self.state == "OPEN"

    def send(self, payload: Dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        self._transmit(payload)
        return True

    def close(self) -> None:
        if self.state == "CLOSED":
            return
        self._release()
        self._closed()

    # ---- substrate side ----

    def _transition(self, target: ChannelState) -> bool:
        if target not in _TRANSITIONS[self.state]:
            logger.debug("Ignoring %s -> %s on %r", self.state, target, self)
            return False
        self.state = target
        return True

    def _emit(self, event: ChannelEvent, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            handler(*args)

    def _opened(self) -> None:
        if self._transition("OPEN"):
            self._emit("open")

    def _received(self, payload: Dict[str, Any]) -> None:
        # no delivery after close
        if self.state != "OPEN":
            return
        self._emit("data", payload)

    def _closed(self) -> None:
        if self._transition("CLOSED"):
            self._emit("close")

    def _failed(self, exc: ChannelError) -> None:
        if self._transition("ERRORED"):
            self._emit("error", exc)

    def _transmit(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _release(self) -> None:
        """Tell the far side (if any) that this end is going away."""


class Endpoint(Protocol):
    """A local identity registered on the substrate."""
    identity: str

    def on_connection(self, handler: Callable[[Channel], None]) -> None: ...

    def connect(self, identity: str) -> Channel: ...

    def destroy(self) -> None: ...


class Substrate(Protocol):
    async def allocate(self, identity: Optional[str], relay_config: Any) -> Endpoint:
        """
        Register `identity` (or an anonymous one when None).
        Raises ChannelError(kind="conflict" | "network" | "other").
        """
        ...
