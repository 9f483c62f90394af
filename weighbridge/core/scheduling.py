"""Cancellable periodic tasks running on the asyncio event loop."""
from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

from weighbridge.core.log import get_logger

LOG = get_logger("scheduler")

TickCallback = Callable[[], Union[None, Awaitable[None]]]


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until stopped.

    ``start()`` returns the task itself as the handle; ``stop()`` may be called
    from anywhere, including from inside the callback, in which case the loop
    finishes the current tick and exits without being cancelled mid-await.
    """

    def __init__(self, name: str, interval: float, callback: TickCallback) -> None:
        self.name = name
        self.interval = max(0.0, float(interval))
        self._callback = callback
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PeriodicTask":
        if self.running:
            return self
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        LOG.debug("Periodic task %s started (every %.1fs)", self.name, self.interval)
        return self

    def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        LOG.debug("Periodic task %s stopped", self.name)
        if task is asyncio.current_task():
            return
        task.cancel()

    async def _loop(self) -> None:
        me = asyncio.current_task()
        while self._task is me:
            await asyncio.sleep(self.interval)
            if self._task is not me:
                break
            try:
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                LOG.exception("Periodic task %s tick failed", self.name)


__all__ = ["PeriodicTask"]
