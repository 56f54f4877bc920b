"""VoltClient tests (httpx.MockTransport)"""

from __future__ import annotations

import json

import httpx
import pytest

from voltboard.client import (
    VoltClient,
    VoltHTTPError,
    VoltPayloadError,
    VoltTransportError,
)
from voltboard.models import TaskDraft, TaskState

METRICS = {"used_cpus": 1, "total_cpus": 4, "used_mem": 256, "total_mem": 2048, "used_disk": 0, "total_disk": 10000}


def _client(handler) -> VoltClient:
    return VoltClient("http://volt:8080/", transport=httpx.MockTransport(handler))


async def test_get_metrics():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(200, json=METRICS)

    client = _client(handler)
    m = await client.get_metrics()
    await client.close()
    assert seen == [("GET", "/metrics")]
    assert m.total_cpus == 4
    assert m.used_mem == 256


async def test_metrics_path_configurable():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/metrics"
        return httpx.Response(200, json=METRICS)

    client = VoltClient("http://volt", metrics_path="/api/metrics", transport=httpx.MockTransport(handler))
    assert (await client.get_metrics()).total_disk == 10000
    await client.close()


async def test_list_tasks():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"size": 1, "tasks": [{"id": "abc", "cmd": "ls", "cpus": "0.1", "state": "TASK_STAGING"}]})

    client = _client(handler)
    tasks = await client.list_tasks()
    await client.close()
    assert tasks.size == 1
    assert tasks.tasks[0].state == TaskState.STAGING


async def test_create_task_request():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["content_type"] = request.headers["content-type"]
        captured["accept"] = request.headers["accept"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(202, text="OK")

    client = _client(handler)
    ack = await client.create_task(TaskDraft())
    await client.close()
    assert ack == "OK"
    assert captured["method"] == "POST"
    assert captured["path"] == "/tasks"
    assert captured["content_type"] == "application/json; charset=UTF-8"
    assert captured["accept"] == "application/json"
    assert captured["body"] == {"cpus": 0.1, "mem": 32, "disk": 0, "docker_image": "busybox", "cmd": "/bin/ls"}


async def test_create_task_with_files_returns_map():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["files"] == ["stdout"]
        return httpx.Response(200, json={"stdout": "hello\n"})

    client = _client(handler)
    files = await client.create_task(TaskDraft(files=("stdout",)))
    await client.close()
    assert files == {"stdout": "hello\n"}


async def test_kill_and_delete_paths():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.raw_path.decode()))
        return httpx.Response(200, text="OK")

    client = _client(handler)
    await client.kill_task("abc")
    await client.delete_task("a/b")
    await client.close()
    assert seen == [("PUT", "/tasks/abc/kill"), ("DELETE", "/tasks/a%2Fb")]


async def test_read_file_returns_text():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/tasks/abc/file/stdout"
        return httpx.Response(200, text="line 1\nline 2\n")

    client = _client(handler)
    assert await client.read_file("abc", "stdout") == "line 1\nline 2\n"
    await client.close()


async def test_http_error_carries_server_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"code": 500, "message": "No offers available"})

    client = _client(handler)
    with pytest.raises(VoltHTTPError) as exc_info:
        await client.kill_task("abc")
    await client.close()
    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "No offers available"


async def test_http_error_plain_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="404 page not found\n")

    client = _client(handler)
    with pytest.raises(VoltHTTPError) as exc_info:
        await client.read_file("abc", "nope")
    await client.close()
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "404 page not found"


async def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(VoltTransportError):
        await client.list_tasks()
    await client.close()


async def test_malformed_metrics():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"used_cpus": "lots"})

    client = _client(handler)
    with pytest.raises(VoltPayloadError):
        await client.get_metrics()
    await client.close()


@pytest.mark.parametrize("body", [{"error": "upstream"}, {}])
async def test_metrics_missing_fields(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    client = _client(handler)
    with pytest.raises(VoltPayloadError):
        await client.get_metrics()
    await client.close()


@pytest.mark.parametrize("body", [{}, {"message": "oops"}, 0, ""])
async def test_task_list_bad_shape(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    client = _client(handler)
    with pytest.raises(VoltPayloadError):
        await client.list_tasks()
    await client.close()


async def test_invalid_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    client = _client(handler)
    with pytest.raises(VoltPayloadError):
        await client.list_tasks()
    await client.close()


async def test_ping():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/_ping":
            return httpx.Response(200, text="OK")
        return httpx.Response(404)

    client = _client(handler)
    assert await client.ping() is True
    await client.close()

    down = _client(lambda request: httpx.Response(503))
    assert await down.ping() is False
    await down.close()
