"""Metrics / task list 폴러: 주기적 fetch, 구독자에게 스냅샷 전달"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from voltboard.client import VoltAPIError, VoltClient
from voltboard.models import MetricsSnapshot, Task, TaskCollection

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]
Sleep = Callable[[float], Awaitable[None]]


class Poller(Generic[T]):
    """Fetch on a fixed interval and publish each result as a whole snapshot.

    Every tick starts its own fetch whether or not the previous one finished.
    Results are applied in completion order, so a slow early response can
    overwrite a newer one (last-response-wins). Set ``drop_stale`` to apply
    results in issue order instead: a response older than the one already
    applied is discarded.

    After ``stop()`` nothing in flight is cancelled, but whatever it returns is
    dropped.
    """

    name = "poller"

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        *,
        interval: float = 5.0,
        sleep: Sleep = asyncio.sleep,
        drop_stale: bool = False,
    ) -> None:
        self._fetch = fetch
        self.interval = interval
        self._sleep = sleep
        self.drop_stale = drop_stale
        self._value: T | None = None
        self._subscribers: list[Subscriber[T]] = []
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._epoch = 0  # bumped on stop; fetches from an older epoch are void
        self._issued = 0
        self._applied = 0
        self.fetch_count = 0

    # ── Status ──

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    def on_update(self, callback: Subscriber[T]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ── Control ──

    def start(self, interval: float | None = None) -> None:
        if self.running:
            return
        if interval is not None:
            self.interval = interval
        logger.info("%s started (every %ss)", self.name, self.interval)
        self._fetch_now()
        self._timer = asyncio.create_task(self._run_timer())

    async def stop(self) -> None:
        self._epoch += 1
        timer, self._timer = self._timer, None
        if timer and not timer.done():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
            logger.info("%s stopped", self.name)

    # ── Internal ──

    async def _run_timer(self) -> None:
        while True:
            await self._sleep(self.interval)
            self._fetch_now()

    def _fetch_now(self) -> asyncio.Task:
        self._issued += 1
        task = asyncio.create_task(self._fetch_and_publish(self._issued, self._epoch))
        self._inflight.add(task)
        task.add_done_callback(self._on_fetch_done)
        return task

    def _on_fetch_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error("%s fetch crashed: %s", self.name, exc)

    async def _fetch_and_publish(self, seq: int, epoch: int) -> None:
        self.fetch_count += 1
        try:
            value = await self._fetch()
        except VoltAPIError as exc:
            # keep last-known-good; the next tick retries
            logger.debug("%s fetch #%d failed: %s", self.name, seq, exc)
            return
        if epoch != self._epoch:
            logger.debug("%s dropped fetch #%d after stop", self.name, seq)
            return
        if self.drop_stale and seq < self._applied:
            logger.debug("%s dropped stale fetch #%d (applied #%d)", self.name, seq, self._applied)
            return
        self._applied = max(self._applied, seq)
        self._value = value
        self._publish(value)

    def _publish(self, value: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("%s subscriber failed", self.name)


class MetricsPoller(Poller[MetricsSnapshot]):
    name = "metrics"

    def __init__(self, client: VoltClient, *, interval: float = 5.0, sleep: Sleep = asyncio.sleep, drop_stale: bool = False) -> None:
        super().__init__(client.get_metrics, interval=interval, sleep=sleep, drop_stale=drop_stale)


class TaskListPoller(Poller[TaskCollection]):
    name = "tasks"

    def __init__(self, client: VoltClient, *, interval: float = 5.0, sleep: Sleep = asyncio.sleep, drop_stale: bool = False) -> None:
        super().__init__(client.list_tasks, interval=interval, sleep=sleep, drop_stale=drop_stale)

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._value.tasks if self._value is not None else ()

    def refresh_now(self) -> asyncio.Task:
        """Fetch out of cycle. The scheduled ticks are not moved or cancelled."""
        return self._fetch_now()
