from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from gamevui.store.models import RelayCredential
from gamevui.transport.protocols import RelayServerEntry

DEFAULT_RELAYS: tuple[str, ...] = (
    "stun:stun.l.google.com:19302",
    "stun:stun1.l.google.com:19302",
    "stun:stun2.l.google.com:19302",
    "stun:stun3.l.google.com:19302",
    "stun:stun4.l.google.com:19302",
)


class RelayConfig(BaseModel):
    """Ordered relay candidates; earlier entries are tried first."""
    ice_servers: List[RelayServerEntry] = Field(default_factory=list)


def build_relay_config(credential: Optional[RelayCredential]) -> RelayConfig:
    """
    Default public list, with a complete user credential placed in front.
    A partially filled credential is ignored entirely.
    """
    servers = [RelayServerEntry(urls=url) for url in DEFAULT_RELAYS]
    if credential is not None and credential.is_complete():
        servers.insert(
            0,
            RelayServerEntry(
                urls=credential.endpoint.strip(),
                username=credential.user.strip(),
                credential=credential.credential.strip(),
            ),
        )
    return RelayConfig(ice_servers=servers)
