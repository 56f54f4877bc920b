"""Task output file viewer: open / refresh / close"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from voltboard.client import VoltAPIError, VoltClient
from voltboard.models import ERROR_MARKER, FileView, ViewerState

logger = logging.getLogger(__name__)

ViewCallback = Callable[[FileView], None]


class ViewerClosedError(RuntimeError):
    pass


class FileViewer:
    """Shows one task file at a time.

    Each refresh replaces the content wholesale. Any failure, whether an HTTP
    error, a dropped connection or a timeout, turns the content into
    ``ERROR_MARKER``; callers cannot tell the causes apart.

    ``open()`` and ``close()`` bump a generation counter. A fetch that lands
    under an older generation belongs to a view that no longer exists and is
    thrown away.
    """

    def __init__(
        self,
        client: VoltClient,
        *,
        follow_interval: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.follow_interval = follow_interval
        self._sleep = sleep
        self.state = ViewerState.CLOSED
        self._view: FileView | None = None
        self._generation = 0
        self._follow: asyncio.Task | None = None
        self._subscribers: list[ViewCallback] = []

    @property
    def view(self) -> FileView | None:
        return self._view

    @property
    def is_open(self) -> bool:
        return self.state == ViewerState.OPEN

    def on_update(self, callback: ViewCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def open(self, task_id: str, file_name: str) -> FileView | None:
        self._stop_follow()
        self._generation += 1
        self.state = ViewerState.OPEN
        self._view = FileView(task_id=task_id, file_name=file_name)
        logger.info("Opened %s of task %s", file_name, task_id)
        view = await self.refresh()
        if self.follow_interval and self.is_open and self._follow is None:
            self._follow = asyncio.create_task(self._run_follow(self._generation))
        return view

    async def refresh(self) -> FileView | None:
        if not self.is_open or self._view is None:
            raise ViewerClosedError("File viewer is closed")
        generation = self._generation
        task_id, file_name = self._view.task_id, self._view.file_name
        try:
            content = await self.client.read_file(task_id, file_name)
        except VoltAPIError as exc:
            logger.debug("Reading %s of task %s failed: %s", file_name, task_id, exc)
            content = ERROR_MARKER
        if generation != self._generation or self._view is None:
            logger.debug("Discarded late content for %s of task %s", file_name, task_id)
            return self._view
        self._view = FileView(task_id=task_id, file_name=file_name, content=content)
        self._publish(self._view)
        return self._view

    def close(self) -> None:
        self._stop_follow()
        self._generation += 1
        self.state = ViewerState.CLOSED
        self._view = None

    # ── Follow mode ──

    async def _run_follow(self, generation: int) -> None:
        while self.is_open and generation == self._generation:
            await self._sleep(self.follow_interval)
            if not self.is_open or generation != self._generation:
                break
            await self.refresh()

    def _stop_follow(self) -> None:
        follow, self._follow = self._follow, None
        if follow and not follow.done():
            follow.cancel()

    def _publish(self, view: FileView) -> None:
        for callback in list(self._subscribers):
            try:
                callback(view)
            except Exception:
                logger.exception("File view subscriber failed")
