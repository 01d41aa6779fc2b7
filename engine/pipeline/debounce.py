"""Quiet-period coalescing for document edits."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 0.5


class Debouncer:
    """
    Run `callback` once the input has been quiet for `delay_seconds`.

    Each trigger cancels a timer that is still sleeping and starts a new
    one with the latest value. A callback that has already started is left
    to finish; its result is simply superseded by the next run.
    """

    def __init__(
        self,
        callback: Callable[[Any], Awaitable[None]],
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
    ) -> None:
        self.callback = callback
        self.delay_seconds = delay_seconds
        self._timer: asyncio.Task | None = None
        self._sleeping: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        """True while a timer is waiting out its quiet period."""
        return self._timer is not None and self._sleeping is self._timer

    def trigger(self, value: Any) -> None:
        if self.pending:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._run(value))
        self._sleeping = self._timer

    def cancel(self) -> None:
        if self.pending:
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Wait for the current timer (if any) and its callback to finish."""
        timer = self._timer
        if timer is None:
            return
        try:
            await timer
        except asyncio.CancelledError:
            pass

    async def _run(self, value: Any) -> None:
        task = asyncio.current_task()
        try:
            await asyncio.sleep(self.delay_seconds)
        finally:
            if self._sleeping is task:
                self._sleeping = None
        try:
            await self.callback(value)
        except Exception:
            logger.exception("debounce: callback failed")
