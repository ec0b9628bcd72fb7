# gamevui/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os


class Settings(BaseModel):
    APP_NAME: str = "gamevui-relay"

    # Redis (relay broker identity registry)
    REDIS_URL: str = "redis://localhost:6379/0"
    PEER_TTL_SEC: int = 60

    # Relay server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,null"

    # Session
    ROOM_NAMESPACE: str = "loto"
    RELAY_BROKER_URL: str = "ws://localhost:8000"
    KEEPALIVE_INTERVAL_SEC: float = 2.5
    CONNECT_TIMEOUT_SEC: float = 12.0
    CREDENTIALS_PATH: str = "~/.gamevui/relay.json"

    # Lottery MC
    COMMENTARY_URL: str = ""
    COMMENTARY_MODEL: str = "llama3"
    COMMENTARY_TIMEOUT_SEC: float = 8.0
    AUTO_DRAW_INTERVAL_SEC: float = 5.0

    # Card table bot
    BOT_REVEAL_DELAY_SEC: float = 3.0
    BOT_REDEAL_DELAY_SEC: float = 5.0


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "gamevui-relay"),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        PEER_TTL_SEC=int(os.getenv("PEER_TTL_SEC", "60")),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,null",
        ),

        ROOM_NAMESPACE=os.getenv("ROOM_NAMESPACE", "loto"),
        RELAY_BROKER_URL=os.getenv("RELAY_BROKER_URL", "ws://localhost:8000"),
        KEEPALIVE_INTERVAL_SEC=float(os.getenv("KEEPALIVE_INTERVAL_SEC", "2.5")),
        CONNECT_TIMEOUT_SEC=float(os.getenv("CONNECT_TIMEOUT_SEC", "12")),
        CREDENTIALS_PATH=os.getenv("CREDENTIALS_PATH", "~/.gamevui/relay.json"),

        COMMENTARY_URL=os.getenv("COMMENTARY_URL", ""),
        COMMENTARY_MODEL=os.getenv("COMMENTARY_MODEL", "llama3"),
        COMMENTARY_TIMEOUT_SEC=float(os.getenv("COMMENTARY_TIMEOUT_SEC", "8")),
        AUTO_DRAW_INTERVAL_SEC=float(os.getenv("AUTO_DRAW_INTERVAL_SEC", "5")),

        BOT_REVEAL_DELAY_SEC=float(os.getenv("BOT_REVEAL_DELAY_SEC", "3")),
        BOT_REDEAL_DELAY_SEC=float(os.getenv("BOT_REDEAL_DELAY_SEC", "5")),
    )


def allowed_origins(settings: Settings) -> list[str]:
    """WS_ALLOWED_ORIGINS split on commas; "*" allows any origin."""
    return [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
