"""Volt API 클라이언트 (httpx): metrics, tasks, files"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from voltboard.models import MetricsSnapshot, TaskCollection, TaskDraft

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"


class VoltAPIError(Exception):
    """Any failure talking to the Volt API."""


class VoltTransportError(VoltAPIError):
    """Server unreachable, connection reset, timeout."""


class VoltHTTPError(VoltAPIError):
    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.message = message or f"HTTP {status_code}"
        super().__init__(self.message)


class VoltPayloadError(VoltAPIError):
    """The response body was not what the endpoint promises."""


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _error_message(resp: httpx.Response) -> str:
    # Volt error bodies are {"code": ..., "message": ...}
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.text.strip()


class VoltClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        metrics_path: str = "/metrics",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.metrics_path = metrics_path
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise VoltTransportError(f"{method} {path} failed: {exc}") from exc
        if resp.is_error:
            raise VoltHTTPError(resp.status_code, _error_message(resp))
        return resp

    async def _json(self, path: str) -> Any:
        resp = await self._request("GET", path)
        try:
            return resp.json()
        except ValueError as exc:
            raise VoltPayloadError(f"GET {path} returned invalid JSON") from exc

    # ── Health ──

    async def ping(self) -> bool:
        try:
            resp = await self._request("GET", "/_ping")
        except VoltAPIError:
            return False
        return resp.text.strip() == "OK"

    # ── Reads ──

    async def get_metrics(self) -> MetricsSnapshot:
        data = await self._json(self.metrics_path)
        try:
            return MetricsSnapshot.model_validate(data)
        except ValidationError as exc:
            raise VoltPayloadError(f"Malformed metrics: {exc}") from exc

    async def list_tasks(self) -> TaskCollection:
        data = await self._json("/tasks")
        try:
            return TaskCollection.from_payload(data)
        except ValueError as exc:  # includes pydantic's ValidationError
            raise VoltPayloadError(f"Malformed task list: {exc}") from exc

    async def read_file(self, task_id: str, file_name: str) -> str:
        resp = await self._request("GET", f"/tasks/{_segment(task_id)}/file/{_segment(file_name)}")
        return resp.text

    # ── Mutations ──

    async def create_task(self, draft: TaskDraft) -> Any:
        """POST a draft. Returns the files map when the draft asked for files, else the ack text."""
        resp = await self._request(
            "POST",
            "/tasks",
            json=draft.to_payload(),
            headers={"Accept": "application/json", "Content-Type": JSON_CONTENT_TYPE},
        )
        if draft.files:
            try:
                return resp.json()
            except ValueError as exc:
                raise VoltPayloadError("POST /tasks returned invalid JSON") from exc
        return resp.text

    async def kill_task(self, task_id: str) -> str:
        resp = await self._request("PUT", f"/tasks/{_segment(task_id)}/kill")
        return resp.text

    async def delete_task(self, task_id: str) -> str:
        resp = await self._request("DELETE", f"/tasks/{_segment(task_id)}")
        return resp.text
