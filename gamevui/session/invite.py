# gamevui/session/invite.py
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

from pydantic import BaseModel

from gamevui.domain.common.types import GameKind
from gamevui.store.credentials import RelayCredentialStore
from gamevui.store.models import RelayCredential

ROOM_CODE_RE = re.compile(r"^\d{4}$")


class Invite(BaseModel):
    room: str
    game: Optional[str] = None
    credential: Optional[RelayCredential] = None


def build_invite_url(
    base_url: str,
    *,
    room: str,
    game: GameKind,
    credential: Optional[RelayCredential] = None,
) -> str:
    params = {"game": game, "room": room}
    if credential is not None:
        if credential.endpoint:
            params["t_url"] = credential.endpoint
        if credential.user:
            params["t_u"] = credential.user
        if credential.credential:
            params["t_p"] = credential.credential
    return f"{base_url}?{urlencode(params)}"


def parse_invite(text: str) -> Optional[Invite]:
    """
    Accepts a bare room code or a shared link.
    Credentials are only taken from a link when all three fields are present.
    """
    text = (text or "").strip()
    if not text:
        return None
    if "://" not in text:
        return Invite(room=text) if ROOM_CODE_RE.match(text) else None

    query = parse_qs(urlparse(text).query)

    def first(key: str) -> str:
        values = query.get(key) or [""]
        return values[0].strip()

    room = first("room")
    if not room:
        return None

    credential = RelayCredential(endpoint=first("t_url"), user=first("t_u"), credential=first("t_p"))
    return Invite(
        room=room,
        game=first("game") or None,
        credential=credential if credential.is_complete() else None,
    )


def apply_invite(text: str, store: Optional[RelayCredentialStore] = None) -> Optional[str]:
    """Parse an invite, persist embedded relay credentials, return the room code."""
    invite = parse_invite(text)
    if invite is None:
        return None
    if invite.credential is not None and store is not None:
        store.save(invite.credential)
    return invite.room
