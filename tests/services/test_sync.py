from __future__ import annotations

import pytest

from app.services.admin.sync import IntervalPoller, ManualNotifier


def test_manual_notifier_continues_past_failing_listener():
    notifier = ManualNotifier()
    seen: list[str] = []

    def broken():
        raise RuntimeError("boom")

    notifier.subscribe(broken)
    notifier.subscribe(lambda: seen.append("refreshed"))

    assert notifier.notify() == 1
    assert seen == ["refreshed"]


def test_poller_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        IntervalPoller(interval_seconds=0)


@pytest.mark.asyncio
async def test_poller_notifies_each_tick():
    poller = IntervalPoller(interval_seconds=0.01)
    calls: list[int] = []
    poller.subscribe(lambda: calls.append(1))

    ticks = await poller.run(max_ticks=3)

    assert ticks == 3
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_stopped_poller_exits_without_notifying():
    poller = IntervalPoller(interval_seconds=0.01)
    calls: list[int] = []
    poller.subscribe(lambda: calls.append(1))
    poller.stop()

    assert await poller.run() == 0
    assert calls == []
