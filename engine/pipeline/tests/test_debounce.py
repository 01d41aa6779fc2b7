"""
Arcade Pipeline -- Debounce Tests

Short real delays; only the last value inside a quiet window is delivered.
"""

import asyncio

import pytest

from engine.pipeline.debounce import DEFAULT_DELAY_SECONDS, Debouncer

pytestmark = pytest.mark.asyncio


def make_debouncer(delay=0.02):
    seen = []

    async def callback(value):
        seen.append(value)

    return Debouncer(callback, delay), seen


async def test_default_quiet_period():
    assert DEFAULT_DELAY_SECONDS == 0.5


async def test_only_last_value_runs():
    debouncer, seen = make_debouncer()
    for value in ("a", "ab", "abc"):
        debouncer.trigger(value)
    assert debouncer.pending
    await debouncer.flush()
    assert seen == ["abc"]
    assert not debouncer.pending


async def test_separate_windows_each_run():
    debouncer, seen = make_debouncer()
    debouncer.trigger(1)
    await debouncer.flush()
    debouncer.trigger(2)
    await debouncer.flush()
    assert seen == [1, 2]


async def test_cancel():
    debouncer, seen = make_debouncer()
    debouncer.trigger("x")
    debouncer.cancel()
    await asyncio.sleep(0.05)
    assert seen == []


async def test_running_callback_is_not_cancelled():
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def slow(value):
        started.set()
        await release.wait()
        finished.append(value)

    debouncer = Debouncer(slow, 0.01)
    debouncer.trigger("first")
    await started.wait()
    debouncer.trigger("second")
    release.set()
    await debouncer.flush()
    await asyncio.sleep(0.02)
    assert finished == ["first", "second"]


async def test_callback_errors_are_contained():
    calls = []

    async def failing(value):
        calls.append(value)
        raise ValueError("nope")

    debouncer = Debouncer(failing, 0.01)
    debouncer.trigger(1)
    await debouncer.flush()
    assert calls == [1]
