import asyncio
from fnmatch import fnmatch

import pytest


def _b(x):
    if isinstance(x, bytes):
        return x
    return str(x).encode("utf-8")


class FakePipeline:
    def __init__(self, r):
        self.r = r
        self.ops = []

    def expire(self, *args, **kwargs):
        self.ops.append(("expire", args, kwargs))
        return self

    def hset(self, *args, **kwargs):
        self.ops.append(("hset", args, kwargs))
        return self

    async def execute(self):
        results = []
        for name, args, kwargs in self.ops:
            results.append(await getattr(self.r, name)(*args, **kwargs))
        self.ops = []
        return results


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the relay registry."""
    def __init__(self):
        self.kv = {}
        self.hashes = {}
        self.ttl = {}
        self.closed = False

    async def ping(self):
        return True

    async def close(self):
        self.closed = True

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.kv:
            return None
        self.kv[key] = _b(value)
        if ex is not None:
            self.ttl[key] = ex
        return True

    async def get(self, key):
        return self.kv.get(key)

    async def hset(self, key, mapping=None):
        h = self.hashes.setdefault(key, {})
        for k, v in (mapping or {}).items():
            h[_b(k)] = _b(v)
        return len(mapping or {})

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def expire(self, key, seconds):
        if key in self.kv or key in self.hashes:
            self.ttl[key] = seconds
            return True
        return False

    async def delete(self, *keys):
        n = 0
        for k in keys:
            if self.kv.pop(k, None) is not None:
                n += 1
            if self.hashes.pop(k, None) is not None:
                n += 1
            self.ttl.pop(k, None)
        return n

    async def exists(self, *keys):
        return sum(1 for k in keys if k in self.kv or k in self.hashes)

    async def scan(self, cursor=0, match=None, count=None):
        keys = [k for k in list(self.kv) + list(self.hashes) if fnmatch(k, match or "*")]
        return 0, [_b(k) for k in keys]

    def pipeline(self):
        return FakePipeline(self)


@pytest.fixture
def fake_redis():
    return FakeRedis()


async def settle(rounds: int = 20) -> None:
    """Let MemoryHub deliveries (call_soon) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
