"""REST API + SSE 상태 스트림"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ValidationError
from sse_starlette.sse import EventSourceResponse

from voltboard.editor import EditorClosedError, TaskEditor
from voltboard.file_viewer import FileViewer, ViewerClosedError
from voltboard.hub import DashboardHub
from voltboard.models import MutationResult, TaskDraft

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_hub(request: Request) -> DashboardHub:
    return request.app.state.hub


def _result(result: MutationResult) -> dict:
    if not result.ok:
        raise HTTPException(502, result.error or f"{result.action.value} failed")
    return result.model_dump(mode="json")


def _viewer(hub: DashboardHub, viewer_id: str) -> FileViewer:
    viewer = hub.get_viewer(viewer_id)
    if viewer is None:
        raise HTTPException(404, "Viewer not found")
    return viewer


# ── State ──


@router.get("/api/state")
async def get_state(hub: DashboardHub = Depends(_get_hub)):
    metrics = hub.snapshot
    tasks = hub.task_list
    return {
        "metrics": metrics.model_dump() if metrics else None,
        "tasks": tasks.model_dump(mode="json") if tasks else None,
    }


@router.get("/api/metrics")
async def get_metrics(hub: DashboardHub = Depends(_get_hub)):
    metrics = hub.snapshot
    return metrics.model_dump() if metrics else None


@router.get("/api/tasks")
async def list_tasks(hub: DashboardHub = Depends(_get_hub)):
    tasks = hub.task_list
    if tasks is None:
        return {"size": 0, "tasks": []}
    return {"size": tasks.size, **tasks.model_dump(mode="json")}


@router.post("/api/tasks/refresh", status_code=202)
async def refresh_tasks(hub: DashboardHub = Depends(_get_hub)):
    hub.tasks.refresh_now()
    return {"ok": True}


# ── Mutations ──


@router.get("/api/draft")
async def get_draft(hub: DashboardHub = Depends(_get_hub)):
    return hub.editor.defaults.to_payload()


@router.post("/api/tasks", status_code=202)
async def create_task(data: TaskDraft | None = None, hub: DashboardHub = Depends(_get_hub)):
    return _result(await hub.submit(data))


@router.put("/api/tasks/{task_id}/kill")
async def kill_task(task_id: str, hub: DashboardHub = Depends(_get_hub)):
    return _result(await hub.kill(task_id))


@router.delete("/api/tasks/{task_id}")
async def delete_task(task_id: str, hub: DashboardHub = Depends(_get_hub)):
    return _result(await hub.remove(task_id))


# ── New-task editor ──


class DraftUpdate(BaseModel):
    cpus: float | None = None
    mem: float | None = None
    disk: float | None = None
    docker_image: str | None = None
    cmd: str | None = None
    files: list[str] | None = None


def _editor_state(editor: TaskEditor) -> dict:
    return {"open": editor.is_open, "draft": editor.draft.to_payload()}


@router.get("/api/editor")
async def get_editor(hub: DashboardHub = Depends(_get_hub)):
    return _editor_state(hub.editor)


@router.post("/api/editor/open")
async def open_editor(hub: DashboardHub = Depends(_get_hub)):
    hub.editor.open()
    return _editor_state(hub.editor)


@router.patch("/api/editor")
async def update_editor(data: DraftUpdate, hub: DashboardHub = Depends(_get_hub)):
    try:
        hub.editor.update(**data.model_dump(exclude_none=True))
    except EditorClosedError:
        raise HTTPException(409, "Task editor is closed")
    except ValidationError as exc:
        raise HTTPException(422, exc.errors(include_url=False, include_context=False))
    return _editor_state(hub.editor)


@router.post("/api/editor/send", status_code=202)
async def send_editor(hub: DashboardHub = Depends(_get_hub)):
    # the outcome arrives later as a "mutation" event
    try:
        hub.editor.send()
    except EditorClosedError:
        raise HTTPException(409, "Task editor is closed")
    return _editor_state(hub.editor)


@router.post("/api/editor/cancel")
async def cancel_editor(hub: DashboardHub = Depends(_get_hub)):
    hub.editor.cancel()
    return _editor_state(hub.editor)


@router.post("/api/editor/reset")
async def reset_editor(hub: DashboardHub = Depends(_get_hub)):
    hub.editor.reset()
    return _editor_state(hub.editor)


# ── Files ──


class FileOpenRequest(BaseModel):
    task_id: str
    file_name: str


@router.post("/api/files", status_code=201)
async def open_file(data: FileOpenRequest, hub: DashboardHub = Depends(_get_hub)):
    viewer_id, viewer = hub.new_viewer()
    view = await viewer.open(data.task_id, data.file_name)
    return {"viewer_id": viewer_id, "view": view.model_dump() if view else None}


@router.get("/api/files/{viewer_id}")
async def get_file(viewer_id: str, hub: DashboardHub = Depends(_get_hub)):
    view = _viewer(hub, viewer_id).view
    return view.model_dump() if view else None


@router.post("/api/files/{viewer_id}/refresh")
async def refresh_file(viewer_id: str, hub: DashboardHub = Depends(_get_hub)):
    viewer = _viewer(hub, viewer_id)
    try:
        view = await viewer.refresh()
    except ViewerClosedError:
        raise HTTPException(409, "Viewer is closed")
    return view.model_dump() if view else None


@router.delete("/api/files/{viewer_id}")
async def close_file(viewer_id: str, hub: DashboardHub = Depends(_get_hub)):
    if not hub.close_viewer(viewer_id):
        raise HTTPException(404, "Viewer not found")
    return {"ok": True}


# ── SSE ──


@router.get("/api/events")
async def stream_events(request: Request, hub: DashboardHub = Depends(_get_hub)):
    async def generate():
        queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue(maxsize=100)

        def push(event: str):
            def callback(value) -> None:
                try:
                    queue.put_nowait((event, value.model_dump_json()))
                except asyncio.QueueFull:
                    logger.debug("Event stream backlog full, dropped %s update", event)

            return callback

        unsubscribe = [
            hub.metrics.on_update(push("metrics")),
            hub.tasks.on_update(push("tasks")),
            hub.mutations.on_result(push("mutation")),
        ]
        try:
            if hub.snapshot is not None:
                yield {"event": "metrics", "data": hub.snapshot.model_dump_json()}
            if hub.task_list is not None:
                yield {"event": "tasks", "data": hub.task_list.model_dump_json()}
            while not await request.is_disconnected():
                try:
                    event, data = await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                yield {"event": event, "data": data}
        finally:
            for unsub in unsubscribe:
                unsub()

    return EventSourceResponse(generate())
