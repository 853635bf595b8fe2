"""
Tests for CancellationToken and DebounceTimer.
"""

import asyncio

import pytest

from pipeline.core.timers import CancellationToken, DebounceTimer


@pytest.mark.unit
def test_cancellation_token_runs_callbacks_once():
    token = CancellationToken()
    calls = []
    token.add_callback(lambda: calls.append("a"))

    token.cancel()
    token.cancel()

    assert token.cancelled
    assert calls == ["a"]

    token.add_callback(lambda: calls.append("late"))
    assert calls == ["a", "late"]


@pytest.mark.asyncio
async def test_debounce_coalesces_bursts():
    fired = []

    async def action():
        fired.append(asyncio.get_running_loop().time())

    timer = DebounceTimer(0.05, action)
    for _ in range(10):
        timer.schedule()
        await asyncio.sleep(0.005)

    await asyncio.sleep(0.15)
    assert len(fired) == 1
    assert not timer.pending


@pytest.mark.asyncio
async def test_cancel_drops_pending_action():
    fired = []

    async def action():
        fired.append(True)

    timer = DebounceTimer(0.02, action)
    timer.schedule()
    assert timer.pending
    timer.cancel()

    await asyncio.sleep(0.06)
    assert fired == []


@pytest.mark.asyncio
async def test_dispose_rejects_new_schedules():
    fired = []

    async def action():
        fired.append(True)

    timer = DebounceTimer(0.01, action)
    timer.dispose()
    timer.schedule()

    await asyncio.sleep(0.03)
    assert fired == []
    assert not timer.pending


@pytest.mark.asyncio
async def test_failing_action_is_contained():
    async def action():
        raise RuntimeError("boom")

    timer = DebounceTimer(0.0, action)
    timer.schedule()
    await asyncio.sleep(0.02)

    timer.schedule()
    assert timer.pending
    timer.cancel()


@pytest.mark.asyncio
async def test_running_action_stays_referenced():
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def action():
        started.set()
        await release.wait()
        finished.append(True)

    timer = DebounceTimer(0.0, action)
    timer.schedule()
    await asyncio.wait_for(started.wait(), timeout=1)

    # Past its wait, the action is no longer pending but is still tracked
    assert not timer.pending
    assert timer.running
    assert len(timer._tasks) == 1

    release.set()
    await asyncio.sleep(0.01)
    assert finished == [True]
    assert not timer.running
    assert timer._tasks == set()
