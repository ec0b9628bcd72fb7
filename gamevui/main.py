# gamevui/main.py
"""
Rendezvous relay: peers register an identity (`loto-1234`, anonymous ids for
joiners) and exchange frames over links the relay multiplexes per socket.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from gamevui.settings import Settings, allowed_origins, get_settings
from gamevui.store.redis_repo import RedisRepo
from gamevui.transport.admin import router as admin_router
from gamevui.transport.ws import router as ws_router
from gamevui.transport.ws_manager import WSManager

logger = logging.getLogger(__name__)


def _attach_relay_state(app: FastAPI, r: Redis, settings: Settings) -> None:
    app.state.redis = r
    app.state.repo = RedisRepo(r, peer_ttl_sec=settings.PEER_TTL_SEC)
    app.state.wsman = WSManager()


def create_app(redis_client: Optional[Redis] = None) -> FastAPI:
    """`redis_client` overrides REDIS_URL (tests pass an in-memory double)."""
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        if redis_client is None:
            r = Redis.from_url(settings.REDIS_URL, decode_responses=False)
        else:
            r = redis_client
        _attach_relay_state(app, r, settings)
        await r.ping()
        logger.info("Relay %s up, identity TTL %ss", settings.APP_NAME, settings.PEER_TTL_SEC)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.redis.close()

    @app.get("/health")
    async def health():
        redis_ok = await app.state.redis.ping()
        peers = await app.state.wsman.size()
        return {"ok": True, "redis": str(redis_ok), "peers": peers}

    app.include_router(ws_router)
    app.include_router(admin_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("gamevui.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


app = create_app()
