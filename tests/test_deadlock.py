import asyncio

import pytest

from bridge_watchdog.deadlock import DeadlockCanary, KeyedMutex, die


def test_mutex_is_process_wide():
    assert KeyedMutex() is KeyedMutex()
    assert KeyedMutex().get("a") is KeyedMutex().get("a")
    assert KeyedMutex().get("a") is not KeyedMutex().get("b")


async def test_lock_returns_unlock():
    mutex = KeyedMutex()
    unlock = await mutex.lock("claims")
    assert mutex.is_locked("claims")
    unlock()
    assert not mutex.is_locked("claims")
    async with mutex.hold("claims"):
        assert mutex.is_locked("claims")
    assert not mutex.is_locked("claims")


async def test_watch_is_idempotent():
    canary = DeadlockCanary(interval=3600, on_deadlock=lambda msg: None)
    try:
        assert canary.watch("claims")
        assert not canary.watch("claims")
        assert list(canary.watched) == ["claims"]
        assert canary.watch("challenges")
        assert len(canary.watched) == 2
    finally:
        await canary.stop()


async def test_check_on_free_lock_does_not_fire():
    fired = []
    canary = DeadlockCanary(timeout=0.05, on_deadlock=fired.append)
    await asyncio.wait_for(canary.check_once("claims"), 1)
    await asyncio.sleep(0.1)
    assert fired == []


async def test_check_on_stuck_lock_fires():
    fired = []
    mutex = KeyedMutex()
    await mutex.lock("claims")  # never released
    canary = DeadlockCanary(mutex, timeout=0.05, on_deadlock=fired.append)
    check = asyncio.create_task(canary.check_once("claims"))
    await asyncio.sleep(0.2)
    assert fired == ["possible deadlock on claims"]
    check.cancel()


async def test_check_waits_for_holder_to_release():
    fired = []
    mutex = KeyedMutex()
    unlock = await mutex.lock("claims")
    canary = DeadlockCanary(mutex, timeout=1, on_deadlock=fired.append)
    check = asyncio.create_task(canary.check_once("claims"))
    await asyncio.sleep(0.02)
    assert not check.done()
    unlock()
    await asyncio.wait_for(check, 1)
    assert fired == []


async def test_watch_runs_periodic_checks():
    canary = DeadlockCanary(interval=0.01, timeout=1, on_deadlock=lambda msg: None)
    checked = []
    original = canary.check_once

    async def counting(key):
        checked.append(key)
        await original(key)

    canary.check_once = counting
    canary.watch("claims")
    await asyncio.sleep(0.1)
    await canary.stop()
    assert len(checked) >= 2
    assert set(checked) == {"claims"}


def test_die_exits():
    with pytest.raises(SystemExit):
        die("possible deadlock on claims")


async def test_module_level_watch():
    from bridge_watchdog import deadlock

    canary = deadlock.default_canary()
    assert deadlock.default_canary() is canary
    try:
        assert deadlock.watch_for_deadlock("withdrawals")
        assert not deadlock.watch_for_deadlock("withdrawals")
        assert list(canary.watched) == ["withdrawals"]
    finally:
        await canary.stop()


async def test_stop_waits_for_watch_tasks():
    canary = DeadlockCanary(interval=3600, on_deadlock=lambda msg: None)
    canary.watch("claims")
    canary.watch("challenges")
    await canary.stop()
    assert all(task.done() for task in canary.watched.values())
