# gamevui/transport/memory.py
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from gamevui.errors import ChannelError
from gamevui.transport.channel import Channel

logger = logging.getLogger(__name__)


class MemoryChannel(Channel):
    def __init__(self, hub: "MemoryHub", peer: str) -> None:
        super().__init__(peer)
        self._hub = hub
        self._remote: Optional[MemoryChannel] = None

    def _transmit(self, payload: Dict[str, Any]) -> None:
        remote = self._remote
        if remote is None:
            return
        # frames cross the link as JSON, like any real substrate
        data = json.loads(json.dumps(payload))
        self._hub.sent.append((self.peer, data))
        self._hub.schedule(remote._received, data)

    def _release(self) -> None:
        remote, self._remote = self._remote, None
        if remote is not None:
            remote._remote = None
            self._hub.schedule(remote._closed)


class MemoryEndpoint:
    def __init__(self, hub: "MemoryHub", identity: str) -> None:
        self.identity = identity
        self._hub = hub
        self._handlers: List[Callable[[Channel], None]] = []
        self._channels: List[MemoryChannel] = []
        self.destroyed = False

    def on_connection(self, handler: Callable[[Channel], None]) -> None:
        self._handlers.append(handler)

    def connect(self, identity: str) -> Channel:
        channel = MemoryChannel(self._hub, identity)
        self._channels.append(channel)
        self._hub.schedule(self._hub._link, self, channel)
        return channel

    def _accept(self, channel: MemoryChannel) -> None:
        self._channels.append(channel)
        for handler in list(self._handlers):
            handler(channel)

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        for channel in self._channels:
            channel.close()
        self._channels.clear()
        self._hub._release(self)


class MemoryHub:
    """
    In-process channel substrate.

    Every delivery goes through the running loop (call_soon), so callbacks never
    re-enter the sender. Knobs for failure scenarios:
      - allocation_faults: errors raised by the next allocate() calls, in order
      - taken: identities that report an allocation conflict
      - black_holed: identities whose connects never open (NAT drop)
      - link_faults: identity -> error raised on the connecting side
    """
    def __init__(self) -> None:
        self._endpoints: Dict[str, MemoryEndpoint] = {}
        self.allocation_faults: List[ChannelError] = []
        self.taken: Set[str] = set()
        self.black_holed: Set[str] = set()
        self.link_faults: Dict[str, ChannelError] = {}
        self.allocations: List[Tuple[Optional[str], Any]] = []
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    def schedule(self, fn: Callable[..., None], *args: Any) -> None:
        asyncio.get_running_loop().call_soon(fn, *args)

    def endpoint(self, identity: str) -> Optional[MemoryEndpoint]:
        return self._endpoints.get(identity)

    async def allocate(self, identity: Optional[str], relay_config: Any) -> MemoryEndpoint:
        await asyncio.sleep(0)
        self.allocations.append((identity, relay_config))
        if self.allocation_faults:
            raise self.allocation_faults.pop(0)
        if identity is None:
            identity = uuid.uuid4().hex
        if identity in self._endpoints or identity in self.taken:
            raise ChannelError("conflict", f"ID {identity} is taken")
        endpoint = MemoryEndpoint(self, identity)
        self._endpoints[identity] = endpoint
        logger.debug("Allocated %s", identity)
        return endpoint

    def _link(self, source: MemoryEndpoint, channel: MemoryChannel) -> None:
        if channel.state != "CONNECTING" or source.destroyed:
            return
        fault = self.link_faults.get(channel.peer)
        if fault is not None:
            channel._failed(fault)
            return
        target = self._endpoints.get(channel.peer)
        if target is None:
            channel._failed(ChannelError("peer-unavailable", f"Could not connect to peer {channel.peer}"))
            return
        if channel.peer in self.black_holed:
            return

        remote = MemoryChannel(self, source.identity)
        channel._remote = remote
        remote._remote = channel
        target._accept(remote)
        remote._opened()
        channel._opened()

    def _release(self, endpoint: MemoryEndpoint) -> None:
        if self._endpoints.get(endpoint.identity) is endpoint:
            del self._endpoints[endpoint.identity]
