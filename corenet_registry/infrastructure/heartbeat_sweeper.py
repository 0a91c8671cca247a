"""Background heartbeat sweep.

Periodically asks the registry to apply heartbeat timeouts, so profiles that
stopped renewing degrade to UNAVAILABLE and are eventually REMOVED.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime

from ..domain.value_objects import Duration
from ..ports.clock import ClockPort
from ..ports.logger import LoggerPort
from ..ports.registry import RegistryPort


class HeartbeatSweeper:
    """Runs ``registry.sweep()`` on a fixed interval.

    Errors back off exponentially; after three consecutive failures the
    sweeper gives up and logs it.
    """

    MAX_CONSECUTIVE_FAILURES = 3

    def __init__(
        self,
        registry: RegistryPort,
        interval: Duration | None = None,
        clock: ClockPort | None = None,
        logger: LoggerPort | None = None,
    ) -> None:
        """Initialize the sweeper.

        Args:
            registry: Registry whose timeouts are applied
            interval: Duration between sweeps (default 10s)
            clock: Time source for the status report
            logger: Logger for sweep results
        """
        self._registry = registry
        self._interval = interval or Duration(seconds=10)
        self._clock = clock
        self._logger = logger or self._create_default_logger()

        self._sweep_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._last_sweep: datetime | None = None
        self._sweep_count = 0
        self._consecutive_failures = 0

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from .simple_logger import SimpleLogger

        return SimpleLogger()

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Start the sweep loop; a second call while running is ignored."""
        if self.is_running:
            self._logger.warning("Heartbeat sweeper already running")
            return

        self._stop_event.clear()
        self._consecutive_failures = 0
        self._sweep_task = asyncio.create_task(self._sweep_loop())

        self._logger.info("Started heartbeat sweeper", interval=str(self._interval))

    async def stop(self) -> None:
        """Stop the sweep loop and wait for it to finish."""
        self._stop_event.set()

        if self._sweep_task and not self._sweep_task.done():
            try:
                await asyncio.wait_for(self._sweep_task, timeout=2.0)
            except TimeoutError:
                self._sweep_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._sweep_task

        self._logger.info("Stopped heartbeat sweeper", sweeps=self._sweep_count)

    async def _sweep_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                report = await self._registry.sweep()
                self._sweep_count += 1
                self._consecutive_failures = 0
                if self._clock is not None:
                    self._last_sweep = self._clock.now()

                if report.changed:
                    self._logger.info(
                        "Heartbeat sweep applied timeouts",
                        unavailable=report.marked_unavailable,
                        removed=report.removed,
                    )

                # Wake early on stop
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval.seconds)

            except asyncio.CancelledError:
                break
            except Exception as e:
                self._consecutive_failures += 1
                self._logger.error(
                    f"Error in heartbeat sweep: {e}",
                    consecutive_failures=self._consecutive_failures,
                )

                if self._consecutive_failures >= self.MAX_CONSECUTIVE_FAILURES:
                    self._logger.error("Too many consecutive sweep failures, stopping sweeper")
                    break

                await asyncio.sleep(min(2**self._consecutive_failures, 30))

    def get_status(self) -> dict:
        """Get current sweeper status.

        Returns:
            Dictionary with sweeper status information
        """
        return {
            "running": self.is_running,
            "interval": self._interval.seconds,
            "sweeps": self._sweep_count,
            "consecutive_failures": self._consecutive_failures,
            "last_sweep": self._last_sweep.isoformat() if self._last_sweep else None,
        }
