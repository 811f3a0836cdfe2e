"""Refresh notifications for admin screens, independent of transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from app.config import settings

logger = logging.getLogger(__name__)

Listener = Callable[[], object]


class ChangeNotifier(Protocol):
    """Tells subscribers that server-side data may have changed."""

    def subscribe(self, listener: Listener) -> None:
        ...


class ManualNotifier(ChangeNotifier):
    """Push-style notifier: whoever receives a change event calls `notify`."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def notify(self) -> int:
        """Call every listener; returns how many completed without error."""
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("admin.sync.listener_failed")
                continue
            delivered += 1
        return delivered


class IntervalPoller(ManualNotifier):
    """Pull-style notifier that fires on a fixed interval."""

    def __init__(self, interval_seconds: float | None = None) -> None:
        super().__init__()
        if interval_seconds is None:
            interval_seconds = settings.board_refresh_interval_seconds
        self.interval_seconds = interval_seconds
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._stopped = asyncio.Event()

    def stop(self) -> None:
        self._stopped.set()

    async def run(self, *, max_ticks: int | None = None) -> int:
        """Poll until `stop()` (or `max_ticks`); listeners run in a worker thread."""
        ticks = 0
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass
            await asyncio.to_thread(self.notify)
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
        logger.info("admin.sync.poller_stopped", extra={"ticks": ticks})
        return ticks
