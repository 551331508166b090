"""Tests for the fixed-interval scheduler."""

from __future__ import annotations

import asyncio

import pytest

from tethermon.scheduler import Scheduler


def test_scheduler_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        Scheduler(lambda: asyncio.sleep(0), 0)


def test_scheduler_starts_idle() -> None:
    scheduler = Scheduler(lambda: asyncio.sleep(0), 5)

    assert scheduler.fsm_state == Scheduler.STATE_IDLE
    assert scheduler.interval == 5.0


@pytest.mark.asyncio
async def test_scheduler_runs_cycles_serially_until_shutdown() -> None:
    active = 0
    overlaps = 0
    runs = 0
    scheduler: Scheduler

    async def cycle() -> None:
        nonlocal active, overlaps, runs
        active += 1
        overlaps += active > 1
        await asyncio.sleep(0.005)
        active -= 1
        runs += 1
        if runs == 3:
            scheduler.request_shutdown("test")

    scheduler = Scheduler(cycle, 0.01)
    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert runs == 3
    assert overlaps == 0
    assert scheduler.cycles_started == 3
    assert scheduler.fsm_state == Scheduler.STATE_SHUTTING_DOWN


@pytest.mark.asyncio
async def test_first_cycle_waits_one_interval() -> None:
    started = asyncio.Event()

    async def cycle() -> None:
        started.set()

    scheduler = Scheduler(cycle, 10)
    runner = asyncio.create_task(scheduler.run())
    await asyncio.sleep(0.05)

    assert not started.is_set()
    scheduler.request_shutdown("test")
    await asyncio.wait_for(runner, timeout=1)
    assert scheduler.cycles_started == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_in_flight_cycle() -> None:
    entered = asyncio.Event()
    cancelled = False

    async def cycle() -> None:
        nonlocal cancelled
        entered.set()
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            cancelled = True
            raise

    scheduler = Scheduler(cycle, 0.01)
    runner = asyncio.create_task(scheduler.run())
    await asyncio.wait_for(entered.wait(), timeout=1)

    scheduler.request_shutdown("SIGTERM")
    await asyncio.wait_for(runner, timeout=1)

    assert cancelled is True
    assert scheduler.fsm_state == Scheduler.STATE_SHUTTING_DOWN


@pytest.mark.asyncio
async def test_cycle_exception_does_not_stop_scheduler() -> None:
    runs = 0
    scheduler: Scheduler

    async def cycle() -> None:
        nonlocal runs
        runs += 1
        if runs == 1:
            raise RuntimeError("collector exploded")
        scheduler.request_shutdown("test")

    scheduler = Scheduler(cycle, 0.01)
    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert runs == 2


@pytest.mark.asyncio
async def test_overrun_drops_missed_ticks() -> None:
    runs = 0
    scheduler: Scheduler

    async def cycle() -> None:
        nonlocal runs
        runs += 1
        if runs == 1:
            await asyncio.sleep(0.05)
        else:
            scheduler.request_shutdown("test")

    scheduler = Scheduler(cycle, 0.01)
    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert runs == 2
    assert scheduler.ticks_skipped >= 1


def test_request_shutdown_is_idempotent() -> None:
    scheduler = Scheduler(lambda: asyncio.sleep(0), 1)

    scheduler.request_shutdown("SIGINT")
    scheduler.request_shutdown("SIGTERM")

    assert scheduler.stop_requested is True


@pytest.mark.asyncio
async def test_cancelling_run_waits_for_cycle_cleanup() -> None:
    entered = asyncio.Event()
    cleaned_up = False

    async def cycle() -> None:
        nonlocal cleaned_up
        entered.set()
        try:
            await asyncio.sleep(60)
        finally:
            await asyncio.sleep(0.01)
            cleaned_up = True

    scheduler = Scheduler(cycle, 0.01)
    runner = asyncio.create_task(scheduler.run())
    await asyncio.wait_for(entered.wait(), timeout=1)

    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert cleaned_up is True
    assert scheduler.fsm_state == Scheduler.STATE_SHUTTING_DOWN
