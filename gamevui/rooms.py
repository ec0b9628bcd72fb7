# gamevui/rooms.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from gamevui.domain.cards.reconciler import CardTableGuest, CardTableHost
from gamevui.domain.lottery.commentary import HttpCommentaryClient
from gamevui.domain.lottery.reconciler import LotteryGuest, LotteryHost
from gamevui.session.invite import apply_invite
from gamevui.session.manager import SessionManager
from gamevui.settings import Settings, get_settings
from gamevui.store.credentials import RelayCredentialStore
from gamevui.transport.channel import Substrate
from gamevui.transport.ws_client import WebSocketSubstrate

logger = logging.getLogger(__name__)

Reconciler = Union[LotteryHost, LotteryGuest, CardTableHost, CardTableGuest]


@dataclass
class Room:
    """Everything one participant holds for one room; leave() drops all of it."""
    session: SessionManager
    game: Reconciler
    credentials: RelayCredentialStore

    def leave(self) -> None:
        self.game.leave()
        logger.info("Left room")


def build_session(
    settings: Optional[Settings] = None,
    substrate: Optional[Substrate] = None,
    credentials: Optional[RelayCredentialStore] = None,
) -> SessionManager:
    settings = settings or get_settings()
    return SessionManager(
        substrate if substrate is not None else WebSocketSubstrate(settings.RELAY_BROKER_URL),
        credentials=credentials if credentials is not None else RelayCredentialStore(settings.CREDENTIALS_PATH),
        namespace=settings.ROOM_NAMESPACE,
        keepalive_interval=settings.KEEPALIVE_INTERVAL_SEC,
        connect_timeout=settings.CONNECT_TIMEOUT_SEC,
    )


def _parts(settings: Optional[Settings], substrate: Optional[Substrate]):
    settings = settings or get_settings()
    credentials = RelayCredentialStore(settings.CREDENTIALS_PATH)
    session = build_session(settings, substrate, credentials)
    return settings, credentials, session


def lottery_host(
    *,
    settings: Optional[Settings] = None,
    substrate: Optional[Substrate] = None,
    speak: Optional[Callable[[str], None]] = None,
    on_change: Optional[Callable[[], None]] = None,
) -> Room:
    settings, credentials, session = _parts(settings, substrate)
    commentary = None
    if settings.COMMENTARY_URL:
        commentary = HttpCommentaryClient(
            settings.COMMENTARY_URL,
            model=settings.COMMENTARY_MODEL,
            timeout=settings.COMMENTARY_TIMEOUT_SEC,
        )
    game = LotteryHost(
        session,
        commentary=commentary,
        speak=speak,
        auto_draw_interval=settings.AUTO_DRAW_INTERVAL_SEC,
        on_change=on_change,
    )
    return Room(session=session, game=game, credentials=credentials)


def lottery_guest(
    name: str,
    *,
    settings: Optional[Settings] = None,
    substrate: Optional[Substrate] = None,
    on_change: Optional[Callable[[], None]] = None,
) -> Room:
    settings, credentials, session = _parts(settings, substrate)
    game = LotteryGuest(session, name, on_change=on_change)
    return Room(session=session, game=game, credentials=credentials)


def card_host(
    name: str,
    *,
    bot: bool = False,
    settings: Optional[Settings] = None,
    substrate: Optional[Substrate] = None,
    on_change: Optional[Callable[[], None]] = None,
) -> Room:
    settings, credentials, session = _parts(settings, substrate)
    game = CardTableHost(
        session,
        name,
        bot=bot,
        reveal_delay=settings.BOT_REVEAL_DELAY_SEC,
        redeal_delay=settings.BOT_REDEAL_DELAY_SEC,
        on_change=on_change,
    )
    return Room(session=session, game=game, credentials=credentials)


def card_guest(
    name: str,
    *,
    settings: Optional[Settings] = None,
    substrate: Optional[Substrate] = None,
    on_change: Optional[Callable[[], None]] = None,
) -> Room:
    settings, credentials, session = _parts(settings, substrate)
    game = CardTableGuest(session, name, on_change=on_change)
    return Room(session=session, game=game, credentials=credentials)


async def join_from_invite(room: Room, text: str) -> Optional[str]:
    """
    Accept a room code or an invite link. Relay credentials carried by the link
    are stored before joining so this very session already uses them.
    """
    code = apply_invite(text, room.credentials)
    if code is None:
        return None
    await room.game.join(code)
    return code
