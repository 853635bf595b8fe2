"""Cancellation token and debounce timer built on asyncio tasks."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Set

import logfire


class CancellationToken:
    """One-shot cancellation signal with callbacks."""

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback; runs immediately if already cancelled."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)


class DebounceTimer:
    """
    Runs `action` once after `delay` seconds without further schedule() calls.

    Each schedule() cancels the pending wait and starts a new one. cancel()
    drops pending work; dispose() also rejects later schedules.
    """

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]]):
        self.delay = delay
        self._action = action
        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancellationToken] = None
        self._disposed = False
        # Live tasks, including actions already past their wait
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def running(self) -> bool:
        """True while any scheduled task, waiting or acting, has not finished."""
        return any(not task.done() for task in self._tasks)

    def schedule(self) -> None:
        if self._disposed:
            return
        self.cancel()
        token = CancellationToken()
        self._token = token
        task = asyncio.get_running_loop().create_task(self._run(token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._task = task

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def dispose(self) -> None:
        self.cancel()
        self._disposed = True

    async def _run(self, token: CancellationToken) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        if token.cancelled:
            return
        # The action owns its task from here; cancel() no longer interrupts it
        self._task = None
        self._token = None
        try:
            await self._action()
        except Exception as e:
            logfire.error(
                "Debounced action failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
