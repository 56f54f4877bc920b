"""TaskMutationService + TaskEditor tests"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from voltboard.client import VoltClient
from voltboard.editor import EditorClosedError, TaskEditor
from voltboard.models import MutationAction, TaskDraft, ViewerState
from voltboard.mutations import TaskMutationService
from voltboard.pollers import TaskListPoller


class FakeVolt:
    """Minimal in-memory Volt API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tasks = [{"id": "t1", "cmd": "sleep 60", "cpus": "0.1", "mem": "32", "disk": "0", "state": "TASK_RUNNING"}]
        self.fail_with: int | None = None
        self.down = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectTimeout("timed out", request=request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"code": self.fail_with, "message": "No offers available"})
        path = request.url.path
        if request.method == "GET" and path == "/tasks":
            return httpx.Response(200, json={"size": len(self.tasks), "tasks": self.tasks})
        if request.method == "POST" and path == "/tasks":
            return httpx.Response(202, text="OK")
        if request.method in ("PUT", "DELETE"):
            return httpx.Response(200, text="OK")
        return httpx.Response(404, text="404 page not found")


@pytest.fixture
async def setup():
    volt = FakeVolt()
    client = VoltClient("http://volt", transport=httpx.MockTransport(volt.handler))
    service = TaskMutationService(client)
    yield service, volt
    await client.close()


async def test_submit_default_draft_body(setup):
    service, volt = setup
    result = await service.submit()
    assert result.ok
    assert result.action == MutationAction.SUBMIT
    assert result.data == "OK"
    request = volt.requests[-1]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json; charset=UTF-8"
    assert json.loads(request.content) == {"cpus": 0.1, "mem": 32, "disk": 0, "docker_image": "busybox", "cmd": "/bin/ls"}


async def test_submit_custom_draft(setup):
    service, volt = setup
    await service.submit(TaskDraft(cpus=2, mem=512, docker_image="alpine", cmd="echo hi"))
    body = json.loads(volt.requests[-1].content)
    assert body["cpus"] == 2
    assert body["docker_image"] == "alpine"
    assert body["cmd"] == "echo hi"


async def test_kill(setup):
    service, volt = setup
    result = await service.kill("t1")
    assert result.ok
    assert result.task_id == "t1"
    assert (volt.requests[-1].method, volt.requests[-1].url.path) == ("PUT", "/tasks/t1/kill")


async def test_remove(setup):
    service, volt = setup
    result = await service.remove("t1")
    assert result.ok
    assert result.action == MutationAction.REMOVE
    assert (volt.requests[-1].method, volt.requests[-1].url.path) == ("DELETE", "/tasks/t1")


async def test_http_failure_reported(setup):
    service, volt = setup
    volt.fail_with = 500
    result = await service.submit()
    assert not result.ok
    assert result.status_code == 500
    assert result.error == "No offers available"
    # no automatic retry
    assert len(volt.requests) == 1


async def test_transport_failure_reported(setup):
    service, volt = setup
    volt.down = True
    result = await service.kill("t1")
    assert not result.ok
    assert result.status_code is None
    assert "timed out" in result.error
    assert len(volt.requests) == 1


async def test_on_result_callback(setup):
    service, volt = setup
    results = []
    unsubscribe = service.on_result(results.append)
    await service.kill("t1")
    volt.fail_with = 404
    await service.remove("gone")
    unsubscribe()
    await service.kill("t1")
    assert [(r.action, r.ok) for r in results] == [(MutationAction.KILL, True), (MutationAction.REMOVE, False)]


async def test_dispatch_does_not_block(setup):
    service, volt = setup
    task = service.dispatch(service.kill("t1"))
    assert not task.done()
    result = await task
    assert result.ok


async def test_kill_does_not_touch_task_list(setup):
    service, volt = setup
    sleepers = []

    async def never(delay: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        sleepers.append(fut)
        await fut

    poller = TaskListPoller(service.client, sleep=never)
    loaded = asyncio.Event()
    poller.on_update(lambda _: loaded.set())
    poller.start()
    await asyncio.wait_for(loaded.wait(), timeout=1)
    before = poller.value
    assert [t.id for t in before.tasks] == ["t1"]

    volt.tasks = []  # the server forgets the task right away
    await service.kill("t1")
    await service.remove("t1")
    for _ in range(10):
        await asyncio.sleep(0)

    assert poller.fetch_count == 1
    assert poller.value is before
    await poller.stop()


# ── Editor ──


async def test_editor_send_unedited(setup):
    service, volt = setup
    editor = TaskEditor(service)
    editor.open()
    task = editor.send()
    assert editor.state == ViewerState.CLOSED
    result = await task
    assert result.ok
    assert json.loads(volt.requests[-1].content) == {"cpus": 0.1, "mem": 32, "disk": 0, "docker_image": "busybox", "cmd": "/bin/ls"}


async def test_editor_update_and_persist(setup):
    service, _ = setup
    editor = TaskEditor(service)
    editor.open()
    editor.update(cmd="uname -a", mem=64)
    editor.cancel()
    # edits survive closing the dialog
    draft = editor.open()
    assert draft.cmd == "uname -a"
    assert draft.mem == 64
    assert editor.reset() == TaskDraft()


async def test_editor_update_validates(setup):
    service, _ = setup
    editor = TaskEditor(service)
    editor.open()
    with pytest.raises(ValueError):
        editor.update(cpus=-1)
    assert editor.draft == TaskDraft()


async def test_editor_closed_rejects(setup):
    service, _ = setup
    editor = TaskEditor(service)
    with pytest.raises(EditorClosedError):
        editor.update(cmd="x")
    with pytest.raises(EditorClosedError):
        editor.send()


async def test_editor_custom_defaults(setup):
    service, volt = setup
    editor = TaskEditor(service, defaults=TaskDraft(docker_image="alpine"))
    editor.open()
    await editor.send()
    assert json.loads(volt.requests[-1].content)["docker_image"] == "alpine"
