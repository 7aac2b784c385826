"""Periodic status polling with activity-based deferral."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum


class PullTimerState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"


class PullTimer:
    """Restartable poller that runs *read* every *interval* seconds.

    Each tick awaits *read* and hands a successful result to *sink*. Errors
    are logged and the timer keeps going. :meth:`reset_timer` pushes the
    next tick a full interval into the future; it is called whenever other
    activity (manual reads/writes, push updates) already told us the state.

    Only the pending wake-up is cancellable: a tick whose read is already in
    flight completes and delivers its result even after :meth:`stop`. At most
    one read runs at a time; a wake-up during an in-flight read is skipped.
    """

    def __init__(
        self,
        interval: float,
        read: Callable[[], Awaitable[bool]],
        sink: Callable[[bool], None],
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._read = read
        self._sink = sink
        self._logger = logger or logging.getLogger(__name__)
        self._state = PullTimerState.STOPPED
        self._loop: asyncio.AbstractEventLoop | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._last_reset_at: float | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def state(self) -> PullTimerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is PullTimerState.RUNNING

    @property
    def last_reset_at(self) -> float | None:
        """Loop time at which the current countdown started."""
        return self._last_reset_at

    def start(self) -> None:
        """Start polling; the first tick fires after one interval. Must run inside an event loop."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._state = PullTimerState.RUNNING
        self._schedule()

    def stop(self) -> None:
        self._state = PullTimerState.STOPPED
        self._cancel_pending()

    def reset_timer(self) -> None:
        """Restart the countdown from now. No-op when stopped."""
        if not self.is_running:
            return
        self._schedule()

    def _cancel_pending(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def _schedule(self) -> None:
        assert self._loop is not None  # noqa: S101
        self._cancel_pending()
        self._last_reset_at = self._loop.time()
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self.is_running or self._loop is None:
            return
        if self._tick_task is not None and not self._tick_task.done():
            # The in-flight tick reschedules when it finishes.
            self._logger.debug("Previous status poll still running, skipping this one")
            return
        self._tick_task = self._loop.create_task(self._tick())

    async def _tick(self) -> None:
        try:
            value = await self._read()
        except Exception as exc:
            self._logger.warning("Scheduled status poll failed: %s", exc)
            self._logger.debug("Scheduled status poll failure", exc_info=True)
        else:
            try:
                self._sink(value)
            except Exception:
                self._logger.warning("Pull timer sink failed", exc_info=True)
        finally:
            if self.is_running:
                self._schedule()
