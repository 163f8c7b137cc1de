"""Asyncio debouncer: run an action once input has been quiet for a delay."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesces rapid calls to :meth:`schedule` into a single deferred run.

    Each call cancels the pending run and starts a new quiet window.
    Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]]):
        self.delay = delay
        self._action = action
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Run the pending action now instead of waiting out the delay."""
        if not self.pending:
            return
        self.cancel()
        await self._action()

    async def _run(self) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        # Past the quiet window the run can no longer be cancelled.
        if asyncio.current_task() is self._task:
            self._task = None
        try:
            await self._action()
        except Exception:
            logger.exception("Debounced action failed")
