# gamevui/store/redis_repo.py
from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from gamevui.store.redis_keys import PK
from gamevui.store.models import PeerRecord


class RedisRepo:
    """Rendezvous identity registry: who currently owns `peer:<identity>`."""
    def __init__(self, r: Redis, peer_ttl_sec: int = 60):
        self.r = r
        self.peer_ttl_sec = peer_ttl_sec

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/int/None safely."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    def _dec_map(self, d: dict) -> dict:
        return {self._dec(k): self._dec(v) for k, v in d.items()}

    # ----------------------------
    # Ownership
    # ----------------------------
    async def claim_identity(self, identity: str, token: str, *, ts: int, relays: int = 0) -> bool:
        """
        SET NX: the first registrant owns the identity until release or TTL expiry.
        Returns False on conflict.
        """
        pk = PK(identity)
        ok = await self.r.set(pk.owner(), token, nx=True, ex=self.peer_ttl_sec)
        if not ok:
            return False
        await self.r.hset(pk.info(), mapping={"registered_at": ts, "last_seen": ts, "relays": relays})
        await self.r.expire(pk.info(), self.peer_ttl_sec)
        return True

    async def touch(self, identity: str, token: str, *, ts: int) -> bool:
        """Refresh TTL while we still own the identity."""
        pk = PK(identity)
        owner = self._dec(await self.r.get(pk.owner()))
        if owner != token:
            return False
        pipe = self.r.pipeline()
        pipe.expire(pk.owner(), self.peer_ttl_sec)
        pipe.hset(pk.info(), mapping={"last_seen": ts})
        pipe.expire(pk.info(), self.peer_ttl_sec)
        await pipe.execute()
        return True

    async def release_identity(self, identity: str, token: str) -> None:
        # non-atomic compare-and-delete; a stale token never deletes a newer owner
        pk = PK(identity)
        owner = self._dec(await self.r.get(pk.owner()))
        if owner != token:
            return
        await self.r.delete(*pk.all_keys())

    async def force_release(self, identity: str) -> None:
        await self.r.delete(*PK(identity).all_keys())

    async def identity_exists(self, identity: str) -> bool:
        return bool(await self.r.exists(PK(identity).owner()))

    async def get_peer(self, identity: str) -> Optional[PeerRecord]:
        data = await self.r.hgetall(PK(identity).info())
        if not data:
            return None
        norm = self._dec_map(data)
        return PeerRecord(
            identity=identity,
            registered_at=int(norm.get("registered_at") or 0),
            last_seen=int(norm.get("last_seen") or 0),
            relays=int(norm.get("relays") or 0),
        )

    async def list_identities(self, match: str = "peer:*") -> list[str]:
        cursor = 0
        found: set[str] = set()
        while True:
            cursor, keys = await self.r.scan(cursor=cursor, match=match, count=200)
            for k in keys:
                key = self._dec(k)
                # keep only owner keys: peer:<identity>
                if key.count(":") == 1:
                    found.add(key.split(":", 1)[1])
            if cursor == 0:
                break
        return sorted(found)
