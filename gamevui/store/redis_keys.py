# gamevui/store/redis_keys.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PK:
    """
    Redis key builder for one rendezvous identity.
    """
    identity: str

    def owner(self) -> str:
        return f"peer:{self.identity}"  # STRING session token (SET NX)

    def info(self) -> str:
        return f"peer:{self.identity}:info"  # HASH registered_at / last_seen / relays

    def all_keys(self) -> list[str]:
        return [self.owner(), self.info()]
