"""Cooperative polling loop driving the scan cycles."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .errors import FatalSessionError

logger = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
STOPPING = "stopping"


class PollingScheduler:
    """Run ``cycle`` repeatedly, waiting ``interval_seconds`` between runs.

    A cycle starts only after the previous one has fully settled, so slow
    ledger calls never stack up overlapping cycles.  :meth:`stop` is a
    cooperative flag checked before each cycle: it wakes a pending wait but
    never interrupts a cycle already in flight.  Failing cycles are logged and
    retried after the normal interval; only :class:`FatalSessionError` ends the
    loop early.
    """

    def __init__(self, cycle: Callable[[], Awaitable[object]], interval_seconds: float) -> None:
        if interval_seconds < 0:
            raise ValueError("Polling interval must not be negative")
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.cycles_completed = 0
        self._state = IDLE
        self._stop_requested = False
        self._wakeup: asyncio.Event | None = None

    @property
    def state(self) -> str:
        return self._state

    async def run(self) -> None:
        if self._state != IDLE:
            raise RuntimeError(f"Scheduler is already {self._state}")
        self._state = RUNNING
        self._stop_requested = False
        self._wakeup = asyncio.Event()
        try:
            while not self._stop_requested:
                try:
                    await self.cycle()
                except FatalSessionError:
                    raise
                except Exception:
                    logger.exception("Scan cycle encountered an error")
                self.cycles_completed += 1
                if self._stop_requested:
                    break
                await self._wait()
        finally:
            self._state = IDLE
            self._wakeup = None

    def stop(self) -> None:
        """Prevent any further cycle from starting."""

        if self._state == IDLE:
            return
        self._stop_requested = True
        self._state = STOPPING
        if self._wakeup is not None:
            self._wakeup.set()

    async def _wait(self) -> None:
        assert self._wakeup is not None
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass
