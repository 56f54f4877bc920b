"""Task create / kill / delete: 결과만 보고, 폴러와 독립"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine

from voltboard.client import VoltAPIError, VoltClient, VoltHTTPError
from voltboard.models import MutationAction, MutationResult, TaskDraft

logger = logging.getLogger(__name__)

ResultCallback = Callable[[MutationResult], None]


class TaskMutationService:
    """Issues task mutations and reports the outcome.

    Nothing here touches the pollers: a killed or deleted task leaves the
    displayed list on the next poll, not when the call returns. Failures come
    back as ``ok=False`` results and are never retried.
    """

    def __init__(self, client: VoltClient) -> None:
        self.client = client
        self._callbacks: list[ResultCallback] = []
        self._pending: set[asyncio.Task] = set()

    def on_result(self, callback: ResultCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    # ── Operations ──

    async def submit(self, draft: TaskDraft | None = None) -> MutationResult:
        draft = draft or TaskDraft()
        return await self._run(MutationAction.SUBMIT, None, lambda: self.client.create_task(draft))

    async def kill(self, task_id: str) -> MutationResult:
        return await self._run(MutationAction.KILL, task_id, lambda: self.client.kill_task(task_id))

    async def remove(self, task_id: str) -> MutationResult:
        return await self._run(MutationAction.REMOVE, task_id, lambda: self.client.delete_task(task_id))

    def dispatch(self, operation: Coroutine[Any, Any, MutationResult]) -> asyncio.Task:
        """Run a mutation in the background; the caller does not wait for it."""
        task = asyncio.create_task(operation)
        self._pending.add(task)
        task.add_done_callback(self._on_dispatch_done)
        return task

    # ── Internal ──

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error("Background mutation failed: %s", exc)

    async def _run(
        self,
        action: MutationAction,
        task_id: str | None,
        call: Callable[[], Awaitable[Any]],
    ) -> MutationResult:
        try:
            data = await call()
        except VoltHTTPError as exc:
            logger.warning("%s %s rejected (%d): %s", action.value, task_id or "", exc.status_code, exc.message)
            result = MutationResult(action=action, ok=False, task_id=task_id, status_code=exc.status_code, error=exc.message)
        except VoltAPIError as exc:
            logger.warning("%s %s failed: %s", action.value, task_id or "", exc)
            result = MutationResult(action=action, ok=False, task_id=task_id, error=str(exc))
        else:
            logger.info("%s %s accepted", action.value, task_id or "")
            result = MutationResult(action=action, ok=True, task_id=task_id, data=data)
        self._notify(result)
        return result

    def _notify(self, result: MutationResult) -> None:
        for callback in list(self._callbacks):
            try:
                callback(result)
            except Exception:
                logger.exception("Mutation result subscriber failed")
