from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from gamevui.errors import ChannelError
from gamevui.transport.channel import Channel
from gamevui.transport.protocols import (
    FrameClose,
    FrameConnect,
    FrameData,
    FrameRegister,
)

logger = logging.getLogger(__name__)


class RelayChannel(Channel):
    """One link multiplexed over the endpoint's relay socket."""
    def __init__(self, endpoint: "RelayEndpoint", peer: str, link: str) -> None:
        super().__init__(peer)
        self.link = link
        self._endpoint = endpoint

    def _transmit(self, payload: Dict[str, Any]) -> None:
        self._endpoint._post(FrameData(link=self.link, data=payload).model_dump())

    def _release(self) -> None:
        self._endpoint._forget(self.link, notify=True)


class RelayEndpoint:
    def __init__(self, identity: str, ws) -> None:
        self.identity = identity
        self._ws = ws
        self._links: Dict[str, RelayChannel] = {}
        self._handlers: List[Callable[[Channel], None]] = []
        self._pending: set = set()
        self._destroyed = False
        self._reader = asyncio.get_running_loop().create_task(self._read_loop())

    def on_connection(self, handler: Callable[[Channel], None]) -> None:
        self._handlers.append(handler)

    def connect(self, identity: str) -> Channel:
        link = uuid.uuid4().hex[:16]
        channel = RelayChannel(self, identity, link)
        self._links[link] = channel
        self._post(FrameConnect(to=identity, link=link).model_dump())
        return channel

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        for channel in list(self._links.values()):
            channel.close()
        self._links.clear()
        self._reader.cancel()
        task = asyncio.get_running_loop().create_task(self._ws.close())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ---- internals ----

    def _post(self, frame: Dict[str, Any]) -> None:
        if self._destroyed and frame.get("type") != "close":
            return
        task = asyncio.get_running_loop().create_task(self._send(frame))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, frame: Dict[str, Any]) -> None:
        try:
            await self._ws.send(json.dumps(frame))
        except ConnectionClosed:
            logger.debug("Relay socket closed before %s frame went out", frame.get("type"))

    def _forget(self, link: str, *, notify: bool) -> None:
        if self._links.pop(link, None) is not None and notify:
            self._post(FrameClose(link=link).model_dump())

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    frame = json.loads(raw)
                except ValueError:
                    logger.warning("Relay sent a non-JSON frame on %s", self.identity)
                    continue
                self._on_frame(frame)
        except ConnectionClosed:
            pass
        finally:
            if not self._destroyed:
                logger.info("Relay socket for %s closed", self.identity)
                for channel in list(self._links.values()):
                    channel._closed()
                self._links.clear()

    def _on_frame(self, frame: Dict[str, Any]) -> None:
        t = frame.get("type")
        link = frame.get("link") or ""

        if t == "incoming":
            channel = RelayChannel(self, frame.get("peer", ""), link)
            self._links[link] = channel
            for handler in list(self._handlers):
                handler(channel)
            channel._opened()
            return

        channel = self._links.get(link)
        if channel is None:
            return

        if t == "opened":
            channel._opened()
        elif t == "frame":
            data = frame.get("data")
            if isinstance(data, dict):
                channel._received(data)
        elif t == "closed":
            self._forget(link, notify=False)
            channel._closed()
        elif t == "error":
            code = frame.get("code")
            kind = "peer-unavailable" if code == "PEER_UNAVAILABLE" else "other"
            channel._failed(ChannelError(kind, frame.get("message", "")))


class WebSocketSubstrate:
    """Channel substrate backed by the gamevui relay broker (gamevui.main:app)."""
    def __init__(self, broker_url: str, *, open_timeout: float = 10.0) -> None:
        self.broker_url = broker_url.rstrip("/")
        self.open_timeout = open_timeout

    async def allocate(self, identity: Optional[str], relay_config: Any) -> RelayEndpoint:
        url = f"{self.broker_url}/ws/{identity}" if identity else f"{self.broker_url}/ws"
        try:
            ws = await websockets.connect(url, open_timeout=self.open_timeout)
        except (OSError, asyncio.TimeoutError) as e:
            raise ChannelError("network", str(e)) from e
        except InvalidHandshake as e:
            raise ChannelError("other", str(e)) from e

        servers = getattr(relay_config, "ice_servers", [])
        register = FrameRegister(ice_servers=[s.model_dump() for s in servers])
        try:
            await ws.send(json.dumps(register.model_dump()))
            reply = json.loads(await asyncio.wait_for(ws.recv(), timeout=self.open_timeout))
        except (ConnectionClosed, asyncio.TimeoutError, ValueError) as e:
            await ws.close()
            raise ChannelError("network", f"Relay did not confirm registration: {e}") from e

        if reply.get("type") == "error":
            await ws.close()
            if reply.get("code") == "ID_TAKEN":
                raise ChannelError("conflict", reply.get("message", ""))
            raise ChannelError("other", reply.get("message", ""))

        return RelayEndpoint(reply["identity"], ws)
