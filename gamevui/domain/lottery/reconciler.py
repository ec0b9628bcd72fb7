# gamevui/domain/lottery/reconciler.py
from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Optional

from gamevui.domain.common.autopilot import Autopilot
from gamevui.domain.lottery import handlers, player
from gamevui.domain.lottery.commentary import Announcement, CommentaryService, announce
from gamevui.domain.lottery.rules import TOTAL_NUMBERS
from gamevui.domain.lottery.state import LotteryHostState, LotteryPlayerState
from gamevui.errors import SessionError
from gamevui.session.manager import SessionManager
from gamevui.transport.channel import Channel
from gamevui.transport.dispatcher import Result, dump_events, deliver, dispatch_message
from gamevui.transport.protocols import HOST_TO_PLAYER, PLAYER_TO_HOST

logger = logging.getLogger(__name__)


class LotteryHost:
    """
    Host ("Cái") side of a lô tô room.
    Single writer of LotteryHostState; every change goes out through the session.
    """
    def __init__(
        self,
        session: SessionManager,
        *,
        commentary: Optional[CommentaryService] = None,
        speak: Optional[Callable[[str], None]] = None,
        auto_draw_interval: float = 5.0,
        auto_verify: bool = False,
        rng: Optional[random.Random] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.session = session
        self.state = LotteryHostState()
        self.commentary = commentary
        self.speak = speak
        self.auto_draw_interval = auto_draw_interval
        self.auto_verify = auto_verify
        self.rng = rng or random.Random()
        self.on_change = on_change
        self.room_code: Optional[str] = None
        self.last_announcement: Optional[Announcement] = None
        self.autopilot = Autopilot("auto-call")

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
        if self.auto_verify and self.state.pending is not None:
            self._send(handlers.resolve_claim(self.state))
        else:
            self._changed()

    # ---- actions ----

    def start_game(self) -> None:
        self._send(handlers.start_game(self.state))

    async def draw(self) -> Optional[Announcement]:
        before = len(self.state.called)
        self._send(handlers.draw(self.state, self.rng))
        if len(self.state.called) == before:
            return None

        number = self.state.current
        self.last_announcement = await announce(number, self.commentary, self.rng)
        if self.speak is not None:
            self.speak(self.last_announcement.spoken)
        self._changed()
        return self.last_announcement

    def set_auto(self, enabled: bool) -> bool:
        """
        Auto-call: draw every auto_draw_interval seconds until all numbers are out.
        Only runs during a round; returns whether auto-call is on.
        """
        if not enabled:
            self.autopilot.stop()
            return False
        if self.state.status != "PLAYING":
            logger.info("Auto-call needs a running round (status=%s)", self.state.status)
            return False
        self.autopilot.enabled = True
        self.autopilot.schedule(self.auto_draw_interval, self._auto_step)
        return True

    async def _auto_step(self) -> None:
        drawn = await self.draw()
        if drawn is None or len(self.state.called) >= TOTAL_NUMBERS:
            logger.info("Nothing left to call (status=%s), auto-call off", self.state.status)
            self.autopilot.stop()
            return
        self.autopilot.schedule(self.auto_draw_interval, self._auto_step)

    def resolve_claim(self) -> None:
        self._send(handlers.resolve_claim(self.state))

    def send_chat(self, text: str) -> None:
        self._send(handlers.send_chat(self.state, text))

    def reset(self) -> None:
        self._send(handlers.reset(self.state))

    def toggle_play(self) -> bool:
        playing = handlers.toggle_host_play(self.state, self.rng)
        self._changed()
        return playing

    def mark(self, board_id: str, row: int, col: int) -> None:
        handlers.mark_host_cell(self.state, board_id, row, col)
        self._changed()

    def claim(self) -> None:
        self._send(handlers.host_claim(self.state))

    def leave(self) -> None:
        self.autopilot.stop()
        self.session.teardown()


class LotteryGuest:
    """Player side: replays host messages into LotteryPlayerState."""
    def __init__(
        self,
        session: SessionManager,
        name: str,
        *,
        rng: Optional[random.Random] = None,
        on_change: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[SessionError], None]] = None,
    ) -> None:
        self.session = session
        self.rng = rng or random.Random()
        self.state = LotteryPlayerState(name=name)
        self.on_change = on_change
        self.on_error = on_error
        self.last_error: Optional[SessionError] = None
        player.new_boards(self.state, self.rng)

    async def join(self, code: str) -> None:
        await self.session.join_room(code, self._on_open, self._on_message, self._on_session_error)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _on_open(self) -> None:
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

    def new_boards(self) -> None:
        player.new_boards(self.state, self.rng)
        self._changed()

    def toggle_mark(self, board_id: str, row: int, col: int) -> None:
        player.toggle_mark(self.state, board_id, row, col)
        self._changed()

    def claim(self) -> bool:
        msg = player.claim(self.state)
        if msg is None:
            return False
        self.session.send_to_host(msg.model_dump())
        self._changed()
        return True

    def send_chat(self, text: str) -> None:
        self.session.send_to_host(player.chat_message(self.state, text).model_dump())
        self._changed()

    def leave(self) -> None:
        self.session.teardown()
