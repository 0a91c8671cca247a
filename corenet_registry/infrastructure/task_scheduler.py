"""Keyed asyncio timers for purge, advisory, registration and renewal tasks."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from ..ports.logger import LoggerPort

OneShotCallback = Callable[[], Awaitable[None]]
# Recurring callbacks return False to stop; None or True keeps them running
RecurringCallback = Callable[[], Awaitable[bool | None]]


class KeyedTaskScheduler:
    """Runs delayed and periodic coroutines under string keys.

    At most one task exists per key: scheduling under a busy key cancels the
    older task first. Cancelling an unknown or finished key does nothing.
    Callback errors are logged and never reach the caller.
    """

    def __init__(self, logger: LoggerPort | None = None) -> None:
        self._logger = logger or self._create_default_logger()
        self._tasks: dict[str, asyncio.Task] = {}

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from .simple_logger import SimpleLogger

        return SimpleLogger()

    def schedule_once(self, key: str, delay: float, callback: OneShotCallback) -> asyncio.Task:
        """Run ``callback`` once after ``delay`` seconds."""

        async def runner() -> None:
            await asyncio.sleep(delay)
            await self._invoke(key, callback)

        return self._start(key, runner())

    def schedule_recurring(
        self,
        key: str,
        interval: float,
        callback: RecurringCallback,
        run_immediately: bool = False,
    ) -> asyncio.Task:
        """Run ``callback`` every ``interval`` seconds until it returns False.

        Args:
            key: Task key
            interval: Seconds between runs
            callback: Coroutine function; returning False ends the schedule
            run_immediately: Run the first time without waiting
        """

        async def runner() -> None:
            if not run_immediately:
                await asyncio.sleep(interval)
            while True:
                if await self._invoke(key, callback) is False:
                    return
                await asyncio.sleep(interval)

        return self._start(key, runner())

    def cancel(self, key: str) -> bool:
        """Cancel the task under ``key``.

        Returns:
            True if a pending task was cancelled
        """
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        # A callback may cancel its own key; the running task finishes normally
        if task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def is_scheduled(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def scheduled_keys(self) -> list[str]:
        return [key for key, task in self._tasks.items() if not task.done()]

    async def cancel_all(self) -> None:
        """Cancel every task and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            if task is not asyncio.current_task():
                task.cancel()
        for task in tasks:
            if task is asyncio.current_task():
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _start(self, key: str, coro: Awaitable[None]) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(coro, name=key)
        self._tasks[key] = task
        task.add_done_callback(lambda t, key=key: self._forget(key, t))
        return task

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def _invoke(self, key: str, callback: Callable[[], Awaitable]) -> bool | None:
        try:
            return await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.exception(f"Scheduled task failed: {e}", exc_info=e, task_key=key)
            return None
