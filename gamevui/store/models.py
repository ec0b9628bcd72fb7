# gamevui/store/models.py
from __future__ import annotations

from pydantic import BaseModel


class PeerRecord(BaseModel):
    identity: str
    registered_at: int
    last_seen: int
    relays: int = 0  # relay candidates the peer registered with


class RelayCredential(BaseModel):
    """User-supplied TURN-style relay entry."""
    endpoint: str = ""
    user: str = ""
    credential: str = ""

    def is_complete(self) -> bool:
        return bool(self.endpoint.strip() and self.user.strip() and self.credential.strip())
