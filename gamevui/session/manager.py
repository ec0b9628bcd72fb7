# gamevui/session/manager.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable, Dict, Optional

from gamevui.domain.common.types import Role
from gamevui.errors import (
    AllocationConflict,
    AllocationFailed,
    ChannelError,
    ConnectTimeout,
    HostDisconnected,
    SessionError,
    classify_channel_error,
)
from gamevui.session.relay import RelayConfig, build_relay_config
from gamevui.store.credentials import RelayCredentialStore
from gamevui.transport.channel import Channel, Endpoint, Substrate
from gamevui.transport.protocols import PING_PAYLOAD, is_keepalive

logger = logging.getLogger(__name__)

OnMessage = Callable[[Dict[str, Any], Channel], None]
OnError = Callable[[SessionError], None]


class SessionManager:
    """
    Owns the local endpoint for one room: either hosting (many inbound channels)
    or joined (one outbound channel to the host).

    Retry/backoff, connect timeout and keepalive live here so reconcilers only see
    send_to_host / send_to_peer / broadcast and the on_message callback.
    """
    def __init__(
        self,
        substrate: Substrate,
        *,
        credentials: Optional[RelayCredentialStore] = None,
        namespace: str = "loto",
        keepalive_interval: float = 2.5,
        connect_timeout: float = 12.0,
        max_conflict_retries: int = 5,
        conflict_backoff: float = 0.5,
        max_error_retries: int = 3,
        error_backoff: float = 1.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.substrate = substrate
        self.credentials = credentials
        self.namespace = namespace
        self.keepalive_interval = keepalive_interval
        self.connect_timeout = connect_timeout
        self.max_conflict_retries = max_conflict_retries
        self.conflict_backoff = conflict_backoff
        self.max_error_retries = max_error_retries
        self.error_backoff = error_backoff
        self._rng = rng or random.Random()

        self.role: Role = "NONE"
        self.endpoint: Optional[Endpoint] = None
        self.connections: Dict[str, Channel] = {}
        self.host_channel: Optional[Channel] = None
        self.relay_config: Optional[RelayConfig] = None
        self.short_code: Optional[str] = None
        self.connected = False

        self._generation = 0
        self._keepalive_task: Optional[asyncio.Task] = None
        self._connect_timer: Optional[asyncio.TimerHandle] = None

    # ----------------------------
    # Identity helpers
    # ----------------------------
    @property
    def local_identity(self) -> Optional[str]:
        return self.endpoint.identity if self.endpoint is not None else None

    def room_identity(self, code: str) -> str:
        return f"{self.namespace}-{code}"

    def _new_code(self) -> str:
        return str(self._rng.randint(1000, 9999))

    def _load_relay_config(self) -> RelayConfig:
        credential = self.credentials.load() if self.credentials is not None else None
        return build_relay_config(credential)

    def _report(self, on_error: Optional[OnError], err: SessionError) -> None:
        logger.warning("Session error: %s", err)
        if on_error is not None:
            on_error(err)

    # ----------------------------
    # Host
    # ----------------------------
    async def start_hosting(
        self,
        on_ready: Callable[[str], None],
        on_message: OnMessage,
        on_error: Optional[OnError] = None,
    ) -> Optional[str]:
        """
        Allocate `<namespace>-<4 digits>` and start accepting players.
        Returns the short code, or None when allocation failed (on_error was called)
        or the session was torn down meanwhile.
        """
        self.teardown()
        generation = self._generation
        self.role = "HOST"
        self.relay_config = self._load_relay_config()

        conflicts = 0
        failures = 0
        while True:
            code = self._new_code()
            try:
                endpoint = await self.substrate.allocate(self.room_identity(code), self.relay_config)
            except ChannelError as exc:
                if generation != self._generation:
                    return None
                if exc.kind == "conflict":
                    conflicts += 1
                    if conflicts > self.max_conflict_retries:
                        self._report(on_error, AllocationConflict("Could not reserve a room code. Please try again."))
                        self.role = "NONE"
                        return None
                    logger.info("Room code %s taken, retrying (%d/%d)", code, conflicts, self.max_conflict_retries)
                    await asyncio.sleep(self.conflict_backoff * conflicts)
                else:
                    failures += 1
                    if failures > self.max_error_retries:
                        self._report(on_error, AllocationFailed(f"Could not create the room: {exc.message}"))
                        self.role = "NONE"
                        return None
                    logger.info("Allocation failed (%s), retrying (%d/%d)", exc.kind, failures, self.max_error_retries)
                    await asyncio.sleep(self.error_backoff)
                if generation != self._generation:
                    return None
                continue
            break

        if generation != self._generation:
            endpoint.destroy()
            return None

        self.endpoint = endpoint
        self.short_code = code
        endpoint.on_connection(lambda channel: self._accept(channel, on_message, generation))
        logger.info("Hosting as %s", endpoint.identity)
        self._start_keepalive()
        on_ready(code)
        return code

    def _accept(self, channel: Channel, on_message: OnMessage, generation: int) -> None:
        if generation != self._generation:
            channel.close()
            return
        logger.info("New connection from %s", channel.peer)
        self.connections[channel.peer] = channel

        def on_data(payload: Dict[str, Any]) -> None:
            if is_keepalive(payload):
                return
            on_message(payload, channel)

        def on_close() -> None:
            logger.info("Connection to %s closed", channel.peer)
            if self.connections.get(channel.peer) is channel:
                del self.connections[channel.peer]

        def on_error(exc: ChannelError) -> None:
            # one bad peer never takes the room down
            logger.warning("Connection error from %s: %s", channel.peer, exc)
            if self.connections.get(channel.peer) is channel:
                del self.connections[channel.peer]

        channel.on("data", on_data)
        channel.on("close", on_close)
        channel.on("error", on_error)

    # ----------------------------
    # Player
    # ----------------------------
    async def join_room(
        self,
        code: str,
        on_open: Callable[[], None],
        on_message: OnMessage,
        on_error: OnError,
    ) -> None:
        self.teardown()
        generation = self._generation
        self.role = "PLAYER"
        self.relay_config = self._load_relay_config()
        code = code.strip()

        try:
            endpoint = await self.substrate.allocate(None, self.relay_config)
        except ChannelError as exc:
            if generation == self._generation:
                self.role = "NONE"
                self._report(on_error, classify_channel_error(exc, room_code=code))
            return

        if generation != self._generation:
            endpoint.destroy()
            return

        self.endpoint = endpoint
        self.short_code = code
        channel = endpoint.connect(self.room_identity(code))
        self.host_channel = channel
        settled = False  # True once the attempt opened or failed

        def live() -> bool:
            return generation == self._generation

        def fail(err: SessionError) -> None:
            nonlocal settled
            if settled or not live():
                return
            settled = True
            self._cancel_connect_timer()
            if self.host_channel is channel:
                self.host_channel = None
            channel.close()
            self._report(on_error, err)

        def on_timeout() -> None:
            self._connect_timer = None
            if channel.state != "OPEN":
                fail(ConnectTimeout(
                    "Connection timed out. Make sure you are on the same network, or ask the host "
                    "for an invite link / QR code that carries relay (TURN) credentials."
                ))

        def on_channel_open() -> None:
            nonlocal settled
            if not live() or settled:
                return
            settled = True
            self._cancel_connect_timer()
            self.connected = True
            logger.info("Connected to host %s", channel.peer)
            self._start_keepalive()
            on_open()

        def on_data(payload: Dict[str, Any]) -> None:
            if not live() or is_keepalive(payload):
                return
            on_message(payload, channel)

        def on_close() -> None:
            if not live():
                return
            if self.host_channel is channel:
                self.host_channel = None
            if self.connected:
                self.connected = False
                self._stop_keepalive()
                self._report(on_error, HostDisconnected("Lost connection to the host."))

        def on_channel_error(exc: ChannelError) -> None:
            if self.connected:
                logger.warning("Host connection error: %s", exc)
                return
            fail(classify_channel_error(exc, room_code=code))

        channel.on("open", on_channel_open)
        channel.on("data", on_data)
        channel.on("close", on_close)
        channel.on("error", on_channel_error)

        loop = asyncio.get_running_loop()
        self._connect_timer = loop.call_later(self.connect_timeout, on_timeout)

    # ----------------------------
    # Outbound
    # ----------------------------
    def send_to_host(self, payload: Dict[str, Any]) -> bool:
        if self.role != "PLAYER":
            logger.warning("send_to_host called while role=%s", self.role)
            return False
        channel = self.host_channel
        if channel is None or not channel.is_open:
            logger.warning("Cannot send to host, connection not open")
            return False
        return channel.send(payload)

    def send_to_peer(self, identity: str, payload: Dict[str, Any]) -> bool:
        if self.role != "HOST":
            logger.warning("send_to_peer called while role=%s", self.role)
            return False
        channel = self.connections.get(identity)
        if channel is None or not channel.is_open:
            return False
        return channel.send(payload)

    def broadcast(self, payload: Dict[str, Any]) -> int:
        """Best effort to every open channel. Returns how many channels took it."""
        if self.role != "HOST":
            logger.warning("broadcast called while role=%s", self.role)
            return 0
        sent = 0
        for channel in list(self.connections.values()):
            if channel.is_open and channel.send(payload):
                sent += 1
        return sent

    # ----------------------------
    # Keepalive
    # ----------------------------
    def _start_keepalive(self) -> None:
        self._stop_keepalive()
        self._keepalive_task = asyncio.get_running_loop().create_task(self._keepalive_loop())

    def _stop_keepalive(self) -> None:
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            self._keepalive_task = None

    async def _keepalive_loop(self) -> None:
        # keeps NAT/firewall bindings warm on mobile networks
        while True:
            await asyncio.sleep(self.keepalive_interval)
            for channel in list(self.connections.values()):
                channel.send(PING_PAYLOAD)
            if self.host_channel is not None:
                self.host_channel.send(PING_PAYLOAD)

    def _cancel_connect_timer(self) -> None:
        if self._connect_timer is not None:
            self._connect_timer.cancel()
            self._connect_timer = None

    # ----------------------------
    # Teardown
    # ----------------------------
    def teardown(self) -> None:
        """Close everything. Safe to call repeatedly."""
        self._generation += 1
        self._cancel_connect_timer()
        self._stop_keepalive()
        for channel in list(self.connections.values()):
            channel.close()
        self.connections.clear()
        if self.host_channel is not None:
            self.host_channel.close()
            self.host_channel = None
        if self.endpoint is not None:
            self.endpoint.destroy()
            self.endpoint = None
        self.role = "NONE"
        self.connected = False
        self.short_code = None
