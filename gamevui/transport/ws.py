# gamevui/transport/ws.py
from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from gamevui.settings import allowed_origins, get_settings
from gamevui.transport.protocols import (
    FrameClose,
    FrameClosed,
    FrameConnect,
    FrameData,
    FrameError,
    FrameIncoming,
    FrameOpened,
    FrameRegister,
    FrameRegistered,
    parse_client_frame,
)
from gamevui.util.timeutil import now_ts

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    allowed = set(allowed_origins(get_settings()))

    origin = websocket.headers.get("origin")
    # native clients (no Origin header) are always allowed
    if origin is None or origin in allowed or "*" in allowed:
        return True
    await websocket.close(code=1008)
    return False


async def _route_frame(wsman, identity: str, raw: dict) -> None:
    try:
        frame = parse_client_frame(raw)
    except (ValidationError, ValueError) as e:
        await wsman.send_to(identity, FrameError(code="BAD_FRAME", message=str(e)).model_dump())
        return

    if isinstance(frame, FrameConnect):
        if frame.to == identity or not await wsman.open_link(frame.link, identity, frame.to):
            await wsman.send_to(
                identity,
                FrameError(code="PEER_UNAVAILABLE", message=f"Could not connect to peer {frame.to}", link=frame.link).model_dump(),
            )
            return
        await wsman.send_to(frame.to, FrameIncoming(peer=identity, link=frame.link).model_dump())
        await wsman.send_to(identity, FrameOpened(link=frame.link).model_dump())
        return

    if isinstance(frame, FrameData):
        other = await wsman.link_peer(frame.link, identity)
        if other is not None:
            await wsman.send_to(other, frame.model_dump())
        return

    if isinstance(frame, FrameClose):
        other = await wsman.close_link(frame.link, identity)
        if other is not None:
            await wsman.send_to(other, FrameClosed(link=frame.link).model_dump())


async def _serve_peer(websocket: WebSocket, requested: Optional[str]) -> None:
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    repo = websocket.app.state.repo
    wsman = websocket.app.state.wsman

    try:
        raw = await websocket.receive_json()
        register = FrameRegister.model_validate(raw)
    except (ValidationError, ValueError):
        await websocket.send_json(FrameError(code="ONLY_REGISTER", message="first frame must be register").model_dump())
        await websocket.close()
        return
    except WebSocketDisconnect:
        return

    identity = requested or f"anon-{uuid.uuid4().hex[:12]}"
    token = uuid.uuid4().hex
    claimed = await repo.claim_identity(identity, token, ts=now_ts(), relays=len(register.ice_servers))
    if not claimed or await wsman.has(identity):
        if claimed:
            await repo.release_identity(identity, token)
        await websocket.send_json(FrameError(code="ID_TAKEN", message=f"ID {identity} is taken").model_dump())
        await websocket.close()
        return

    await wsman.add(identity, websocket)
    await websocket.send_json(FrameRegistered(identity=identity).model_dump())
    logger.info("Peer %s registered (%d relay candidates)", identity, len(register.ice_servers))

    try:
        while True:
            raw = await websocket.receive_json()
            # any traffic (keepalive pings included) keeps the registration alive
            await repo.touch(identity, token, ts=now_ts())
            await _route_frame(wsman, identity, raw)
    except WebSocketDisconnect:
        logger.info("Peer %s disconnected", identity)
    finally:
        orphaned = await wsman.remove(identity)
        for link, other in orphaned:
            await wsman.send_to(other, FrameClosed(link=link).model_dump())
        await repo.release_identity(identity, token)


@router.websocket("/ws")
async def ws_anonymous(websocket: WebSocket):
    await _serve_peer(websocket, None)


@router.websocket("/ws/{identity}")
async def ws_identity(websocket: WebSocket, identity: str):
    await _serve_peer(websocket, identity)
