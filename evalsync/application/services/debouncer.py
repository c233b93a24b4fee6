"""Trailing-edge debounce for async actions on the running event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from evalsync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class Debouncer:
    """Runs an async action once after calls to trigger() stop for `delay` seconds.

    Re-triggering only moves the timer; an action that already started is
    never cancelled. The action takes no arguments, so it always sees the
    state current at fire time.
    """

    def __init__(self, action: Callable[[], Awaitable[Any]], delay: float) -> None:
        if delay < 0:
            raise ValueError(f"Debounce delay must be >= 0, got: {delay!r}")
        self._action = action
        self.delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        """True while a timer is armed and has not fired yet."""
        return self._handle is not None

    @property
    def running(self) -> bool:
        return bool(self._running)

    def trigger(self) -> None:
        """Arm (or re-arm) the timer. Must be called from the event loop thread."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Disarm the timer. A running action keeps running."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> Any:
        """Disarm the timer and run the action now; return its result."""
        self.cancel()
        return await self._action()

    async def wait(self) -> None:
        """Wait until every action started by the timer has finished."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._action())
        self._running.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced action failed: %s", exc, exc_info=exc)
