from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Optional

from gamevui.domain.cards import handlers, player
from gamevui.domain.cards.state import CardGuestState, CardTableState
from gamevui.domain.common.autopilot import Autopilot
from gamevui.errors import SessionError
from gamevui.session.manager import SessionManager
from gamevui.transport.channel import Channel
from gamevui.transport.dispatcher import Result, deliver, dispatch_message, dump_events
from gamevui.transport.protocols import HOST_TO_PLAYER, PLAYER_TO_HOST

logger = logging.getLogger(__name__)


class CardTableHost:
    """
    Dealer side of a Bài Cào table. The host holds a seat too (id "host").
    Bot mode loops: deal -> wait -> reveal all -> wait -> deal again.
    """
    def __init__(
        self,
        session: SessionManager,
        name: str,
        *,
        bot: bool = False,
        reveal_delay: float = 3.0,
        redeal_delay: float = 5.0,
        rng: Optional[random.Random] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.session = session
        self.name = name
        self.state = CardTableState()
        handlers.add_host(self.state, name)
        self.reveal_delay = reveal_delay
        self.redeal_delay = redeal_delay
        self.rng = rng or random.Random()
        self.on_change = on_change
        self.room_code: Optional[str] = None
        self.autopilot = Autopilot("card-bot")
        self.autopilot.enabled = bot

    @property
    def bot(self) -> bool:
        return self.autopilot.enabled

    async def start(
        self,
        on_ready: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[SessionError], None]] = None,
    ) -> Optional[str]:
        def ready(code: str) -> None:
            self.room_code = code
            if on_ready is not None:
                on_ready(code)
            self._changed()

        return await self.session.start_hosting(ready, self._on_message, on_error)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _send(self, result: Result) -> None:
        to_sender, to_room = result
        deliver(self.session, None, dump_events(to_sender), dump_events(to_room))
        self._changed()

    def _on_message(self, payload: Dict[str, Any], channel: Channel) -> None:
        to_sender, to_room = dispatch_message(
            state=self.state,
            pid=channel.peer,
            raw=payload,
            routes=handlers.ROUTES,
            accepted=PLAYER_TO_HOST,
        )
        deliver(self.session, channel.peer, to_sender, to_room)
        self._changed()

    # ---- actions ----

    def deal(self) -> None:
        self._send(handlers.deal(self.state, self.rng, bot=self.bot))
        self.autopilot.schedule(self.reveal_delay, self.reveal_all)

    def flip(self, index: int) -> None:
        self._send(handlers.flip_host_card(self.state, index))

    def reveal_all(self) -> None:
        self._send(handlers.reveal_all(self.state))
        self.autopilot.schedule(self.redeal_delay, self.deal)

    def set_bot(self, enabled: bool) -> None:
        if not enabled:
            self.autopilot.stop()
            return
        self.autopilot.enabled = True
        if not self.autopilot.pending:
            self.autopilot.schedule(self.redeal_delay, self.deal)

    def reset(self) -> None:
        self.autopilot.cancel()
        self._send(handlers.reset(self.state))
        self.autopilot.schedule(self.redeal_delay, self.deal)

    def send_chat(self, text: str) -> None:
        self._send(handlers.send_chat(self.state, self.name, text))

    def leave(self) -> None:
        self.autopilot.stop()
        self.session.teardown()


class CardTableGuest:
    def __init__(
        self,
        session: SessionManager,
        name: str,
        *,
        on_change: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[SessionError], None]] = None,
    ) -> None:
        self.session = session
        self.state = CardGuestState(name=name)
        self.on_change = on_change
        self.on_error = on_error
        self.last_error: Optional[SessionError] = None

    async def join(self, code: str) -> None:
        await self.session.join_room(code, self._on_open, self._on_message, self._on_session_error)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _on_open(self) -> None:
        self.state.my_id = self.session.local_identity
        self.session.send_to_host(player.join_message(self.state).model_dump())

    def _on_message(self, payload: Dict[str, Any], channel: Channel) -> None:
        dispatch_message(
            state=self.state,
            pid=channel.peer,
            raw=payload,
            routes=player.ROUTES,
            accepted=HOST_TO_PLAYER,
        )
        self._changed()

    def _on_session_error(self, err: SessionError) -> None:
        self.last_error = err
        if self.on_error is not None:
            self.on_error(err)

    # ---- actions ----

    def flip(self, index: int) -> None:
        reveal = player.flip_card(self.state, index)
        if reveal is not None:
            self.session.send_to_host(reveal.model_dump())
        self._changed()

    def send_chat(self, text: str) -> None:
        self.session.send_to_host(player.chat_message(self.state, text).model_dump())
        self._changed()

    def leave(self) -> None:
        self.session.teardown()
