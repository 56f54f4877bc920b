"""DashboardHub: client, pollers, mutation service, editor, file viewers"""

from __future__ import annotations

import asyncio
import logging
import uuid

import httpx

from voltboard.client import VoltClient
from voltboard.config import AppConfig
from voltboard.editor import TaskEditor
from voltboard.file_viewer import FileViewer
from voltboard.models import MetricsSnapshot, MutationResult, TaskCollection, TaskDraft
from voltboard.mutations import TaskMutationService
from voltboard.pollers import MetricsPoller, Sleep, TaskListPoller

logger = logging.getLogger(__name__)


class DashboardHub:
    def __init__(
        self,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self.client = VoltClient(
            config.api_url,
            timeout=config.request_timeout,
            metrics_path=config.metrics_path,
            transport=transport,
        )
        self.metrics = MetricsPoller(
            self.client,
            interval=config.metrics_interval,
            sleep=sleep,
            drop_stale=config.drop_stale_responses,
        )
        self.tasks = TaskListPoller(
            self.client,
            interval=config.tasks_interval,
            sleep=sleep,
            drop_stale=config.drop_stale_responses,
        )
        self.mutations = TaskMutationService(self.client)
        self.editor = TaskEditor(self.mutations, defaults=config.draft)
        self._viewers: dict[str, FileViewer] = {}

    # ── Lifecycle ──

    def start(self) -> None:
        self.metrics.start()
        self.tasks.start()

    async def stop(self) -> None:
        await self.metrics.stop()
        await self.tasks.stop()
        for viewer in self._viewers.values():
            viewer.close()
        self._viewers.clear()
        await self.client.close()
        logger.info("Dashboard hub stopped")

    # ── Snapshots ──

    @property
    def snapshot(self) -> MetricsSnapshot | None:
        return self.metrics.value

    @property
    def task_list(self) -> TaskCollection | None:
        return self.tasks.value

    # ── Mutations ──

    async def submit(self, draft: TaskDraft | None = None) -> MutationResult:
        # no refresh: the next tick picks the new task up
        return await self.mutations.submit(draft or self.editor.defaults)

    async def kill(self, task_id: str) -> MutationResult:
        result = await self.mutations.kill(task_id)
        self._after_mutation(result)
        return result

    async def remove(self, task_id: str) -> MutationResult:
        result = await self.mutations.remove(task_id)
        self._after_mutation(result)
        return result

    def _after_mutation(self, result: MutationResult) -> None:
        if result.ok and self.config.refresh_after_mutation:
            self.tasks.refresh_now()

    # ── File viewers ──

    def new_viewer(self) -> tuple[str, FileViewer]:
        viewer_id = uuid.uuid4().hex[:12]
        viewer = FileViewer(self.client, follow_interval=self.config.file_follow_interval, sleep=self._sleep)
        self._viewers[viewer_id] = viewer
        return viewer_id, viewer

    def get_viewer(self, viewer_id: str) -> FileViewer | None:
        return self._viewers.get(viewer_id)

    def close_viewer(self, viewer_id: str) -> bool:
        viewer = self._viewers.pop(viewer_id, None)
        if viewer is None:
            return False
        viewer.close()
        return True
