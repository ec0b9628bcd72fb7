from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class Autopilot:
    """
    One pending delayed step at a time (lottery auto-call, card bot).
    Scheduling a new step replaces the pending one; cancel() drops it.
    A step may be a plain callable or return an awaitable.
    """
    def __init__(self, name: str) -> None:
        self.name = name
        self.enabled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, step: Callable[[], Any]) -> None:
        if not self.enabled:
            return
        # a step may schedule its successor from inside the running task
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(delay, step))

    async def _run(self, delay: float, step: Callable[[], Any]) -> None:
        await asyncio.sleep(delay)
        if not self.enabled:
            return
        try:
            result = step()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s step failed, switching off", self.name)
            self.enabled = False

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and task is not _current_task():
            task.cancel()

    def stop(self) -> None:
        self.enabled = False
        self.cancel()
