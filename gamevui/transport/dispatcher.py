# gamevui/transport/dispatcher.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple, Union

from pydantic import ValidationError

from gamevui.transport.protocols import MsgBase, PeerMessage, parse_message

logger = logging.getLogger(__name__)


@dataclass
class Directed:
    """An event for one specific peer (e.g. a private hand or a claim rejection)."""
    peer: str
    event: Any


Outgoing = Union[MsgBase, Directed]
Result = Tuple[List[Outgoing], List[Outgoing]]
# (to_sender, to_room); Directed entries in to_room go to their own peer only

Handler = Callable[..., Result]
DispatchResult = Tuple[List[Any], List[Any]]


def accept_message(raw: Dict[str, Any], *, origin: str, accepted: FrozenSet[str]) -> Optional[PeerMessage]:
    """
    Parse + validate one inbound payload and check it may travel in this direction.
    Returns None (and logs) for anything that should be dropped.
    """
    try:
        msg = parse_message(raw)
    except (ValidationError, ValueError) as e:
        logger.warning("Dropping malformed message from %s: %s", origin, e)
        return None

    if msg.type not in accepted:
        logger.warning("Dropping %s from %s: not allowed in this direction", msg.type, origin)
        return None
    return msg


def dispatch_message(
    *,
    state,
    pid: str,
    raw: Dict[str, Any],
    routes: Dict[str, Handler],
    accepted: FrozenSet[str],
) -> DispatchResult:
    """
    Reconcilers call this for every inbound payload.
    - Parses + validates raw JSON
    - Routes to the game handler registered for the message type
    - Returns (to_sender, to_room) events as JSON dicts

    NOTE: This file contains NO channel usage and NO game rules.
    """
    msg = accept_message(raw, origin=pid, accepted=accepted)
    if msg is None:
        return [], []

    handler = routes.get(msg.type)
    if handler is None:
        logger.debug("No handler for %s, ignoring", msg.type)
        return [], []

    to_sender, to_room = handler(state=state, pid=pid, msg=msg)
    return dump_events(to_sender), dump_events(to_room)


def dump_events(events: List[Outgoing]) -> List[Any]:
    """
    Convert pydantic events -> JSON dicts (Directed keeps its wrapper).
    """
    out: List[Any] = []
    for e in events:
        if isinstance(e, Directed):
            event = e.event.model_dump() if isinstance(e.event, MsgBase) else e.event
            out.append(Directed(peer=e.peer, event=event))
        else:
            out.append(e.model_dump())
    return out


def deliver(session, pid: Optional[str], to_sender: List[Any], to_room: List[Any]) -> None:
    """Host side: push dispatch output through the session."""
    for event in to_sender:
        if pid is not None:
            session.send_to_peer(pid, event)
    for event in to_room:
        if isinstance(event, Directed):
            session.send_to_peer(event.peer, event.event)
        else:
            session.broadcast(event)
