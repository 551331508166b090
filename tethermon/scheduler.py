"""Fixed-interval scheduler driving one pipeline cycle per tick."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from transitions import Machine

logger = logging.getLogger("tethermon.scheduler")

CycleFactory = Callable[[], Awaitable[Any]]


class Scheduler:
    """Serial ticker with a small lifecycle state machine.

    ``idle -> running -> idle`` repeats once per tick; ``shutdown`` moves to
    ``shutting_down`` from either state. Cycles never overlap: ticks missed
    while a cycle runs long are dropped.
    """

    if TYPE_CHECKING:
        # FSM generated methods and attributes for static analysis
        fsm_state: str
        tick: Callable[[], bool]
        finish: Callable[[], bool]
        shutdown: Callable[[], bool]

    STATE_IDLE = "idle"
    STATE_RUNNING = "running"
    STATE_SHUTTING_DOWN = "shutting_down"

    def __init__(self, cycle: CycleFactory, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be greater than zero")
        self._cycle = cycle
        self._interval = float(interval)
        self._stop_requested = asyncio.Event()
        self.cycles_started = 0
        self.ticks_skipped = 0

        self.state_machine = Machine(
            model=self,
            states=[self.STATE_IDLE, self.STATE_RUNNING, self.STATE_SHUTTING_DOWN],
            initial=self.STATE_IDLE,
            ignore_invalid_triggers=True,
            model_attribute="fsm_state",
        )
        self.state_machine.add_transition(trigger="tick", source=self.STATE_IDLE, dest=self.STATE_RUNNING)
        self.state_machine.add_transition(trigger="finish", source=self.STATE_RUNNING, dest=self.STATE_IDLE)
        self.state_machine.add_transition(
            trigger="shutdown",
            source=[self.STATE_IDLE, self.STATE_RUNNING],
            dest=self.STATE_SHUTTING_DOWN,
        )

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def request_shutdown(self, reason: str = "shutdown requested") -> None:
        """Ask the loop to stop; safe to call from a signal handler."""
        if self._stop_requested.is_set():
            return
        logger.info("Received %s; stopping scheduler", reason)
        self._stop_requested.set()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        logger.info("Scheduler started (interval=%.1fs)", self._interval)
        try:
            while not await self._wait_for_stop(next_tick - loop.time()):
                self.tick()
                self.cycles_started += 1
                if await self._run_cycle():
                    break
                self.finish()
                next_tick = self._advance(next_tick, loop.time())
        finally:
            self.shutdown()
            logger.info("Scheduler stopped after %d cycles", self.cycles_started)

    async def _wait_for_stop(self, delay: float) -> bool:
        """Block until the next tick or a stop request, whichever comes first."""
        if self._stop_requested.is_set():
            return True
        if delay <= 0:
            return False
        try:
            async with asyncio.timeout(delay):
                await self._stop_requested.wait()
        except TimeoutError:
            return False
        return True

    async def _run_cycle(self) -> bool:
        """Run one cycle; returns True when a stop request interrupted it."""
        cycle_task = asyncio.create_task(self._cycle(), name="tethermon-cycle")
        stop_task = asyncio.create_task(self._stop_requested.wait(), name="tethermon-stop")
        try:
            done, _ = await asyncio.wait({cycle_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            cycle_task.cancel()
            await asyncio.gather(cycle_task, return_exceptions=True)
            raise
        finally:
            stop_task.cancel()

        if cycle_task not in done:
            logger.info("Cancelling in-flight cycle for shutdown")
            cycle_task.cancel()
            await asyncio.gather(cycle_task, return_exceptions=True)
            return True

        if cycle_task.cancelled():
            logger.warning("Cycle was cancelled")
            return False
        exc = cycle_task.exception()
        if exc is not None:
            logger.error("Cycle failed: %s", exc, exc_info=exc)
        return False

    def _advance(self, previous: float, now: float) -> float:
        next_tick = previous + self._interval
        if next_tick <= now:
            skipped = int((now - next_tick) // self._interval) + 1
            self.ticks_skipped += skipped
            logger.warning("Cycle overran the interval; dropping %d tick(s)", skipped)
            next_tick += skipped * self._interval
        return next_tick


__all__ = ["Scheduler"]
