# gamevui/transport/ws_manager.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Conn:
    identity: str
    ws: WebSocket


class WSManager:
    """
    In-memory relay registry.
    - identity -> websocket
    - link id -> (initiator, acceptor)
    Transport-only: no Redis, no game rules.
    """
    def __init__(self) -> None:
        self._peers: Dict[str, Conn] = {}
        self._links: Dict[str, Tuple[str, str]] = {}
        self._lock = asyncio.Lock()

    async def add(self, identity: str, ws: WebSocket) -> None:
        async with self._lock:
            self._peers[identity] = Conn(identity=identity, ws=ws)

    async def remove(self, identity: str) -> List[Tuple[str, str]]:
        """
        Drop a peer and every link it was part of.
        Returns (link, other_identity) pairs so the caller can notify the far ends.
        """
        async with self._lock:
            self._peers.pop(identity, None)
            orphaned = []
            for link, (a, b) in list(self._links.items()):
                if identity in (a, b):
                    self._links.pop(link, None)
                    orphaned.append((link, b if a == identity else a))
            return orphaned

    async def has(self, identity: str) -> bool:
        async with self._lock:
            return identity in self._peers

    async def open_link(self, link: str, source: str, target: str) -> bool:
        async with self._lock:
            if target not in self._peers or link in self._links:
                return False
            self._links[link] = (source, target)
            return True

    async def link_peer(self, link: str, identity: str) -> Optional[str]:
        async with self._lock:
            ends = self._links.get(link)
        if ends is None or identity not in ends:
            return None
        a, b = ends
        return b if a == identity else a

    async def close_link(self, link: str, identity: str) -> Optional[str]:
        async with self._lock:
            ends = self._links.get(link)
            if ends is None or identity not in ends:
                return None
            self._links.pop(link, None)
        a, b = ends
        return b if a == identity else a

    async def send_to(self, identity: str, frame: dict) -> None:
        async with self._lock:
            conn = self._peers.get(identity)
        if conn is None:
            return
        try:
            await conn.ws.send_json(frame)
        except Exception as e:
            # dead socket; ws.py cleans up on disconnect
            logger.debug("Relay send to %s failed: %s", identity, e)

    async def close_peer(self, identity: str, code: int = 4000) -> None:
        async with self._lock:
            conn = self._peers.get(identity)
        if conn is None:
            return
        try:
            await conn.ws.close(code=code)
        except Exception as e:
            logger.debug("Closing relay socket for %s failed: %s", identity, e)

    async def size(self) -> int:
        async with self._lock:
            return len(self._peers)
