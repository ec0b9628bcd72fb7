from __future__ import annotations

import time


def now_ts() -> int:
    """Wall clock in milliseconds (chat timestamps, registry bookkeeping)."""
    return int(time.time() * 1000)
