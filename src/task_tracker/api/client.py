# src/task_tracker/api/client.py

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any, TypeVar

import httpx

from ..core.errors import UnavailableError, error_for_status
from ..tasks.ae_colors import ColorChange, ReconcileResult
from ..tasks.task_models import Entity, EntityKind, Task, entity_from_api

logger = logging.getLogger(__name__)

T = TypeVar("T")


def make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _error_message(status: int, body: Any) -> str:
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {status}"


class BackendClient:
    """
    Async client for the task tracker REST API.

    Non-2xx responses are raised as BackendError subclasses (see core.errors);
    transport failures become UnavailableError with status 0. No retries.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout if timeout is not None else make_timeout(5.0, 20.0),
            transport=transport,
            headers={"content-type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings) -> BackendClient:
        return cls(
            settings.api_base_url,
            timeout=make_timeout(
                float(settings.api_connect_timeout_seconds),
                float(settings.api_read_timeout_seconds),
            ),
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---- low-level ----

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        try:
            res = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e.__class__.__name__)
            raise UnavailableError(0, f"Network error: {e.__class__.__name__}") from e

        content_type = res.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                body: Any = res.json()
            except ValueError:
                body = res.text
        else:
            body = res.text

        logger.debug("%s %s -> %s", method, path, res.status_code)

        if not res.is_success:
            raise error_for_status(res.status_code, _error_message(res.status_code, body), body)

        return body

    @staticmethod
    def _expect_list(body: Any, path: str) -> list[dict[str, Any]]:
        if not isinstance(body, list):
            raise UnavailableError(200, f"Unexpected response from {path}", body)
        return [row for row in body if isinstance(row, dict)]

    @staticmethod
    def _parse(parse: Callable[[dict[str, Any]], T], row: dict[str, Any], path: str) -> T:
        try:
            return parse(row)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed row from %s: %r", path, e)
            raise UnavailableError(200, f"Malformed response from {path}", row) from e

    @staticmethod
    def _expect_dict(body: Any, path: str) -> dict[str, Any]:
        if not isinstance(body, dict):
            raise UnavailableError(200, f"Unexpected response from {path}", body)
        return body

    # ---- reference data ----

    async def list_entities(self, kind: EntityKind) -> list[Entity]:
        path = f"/{kind.value}"
        rows = self._expect_list(await self._request("GET", path), path)
        return [self._parse(partial(entity_from_api, kind), r, path) for r in rows]

    async def create_entity(self, kind: EntityKind, name: str, color: str | None = None) -> Entity:
        path = f"/{kind.value}"
        payload: dict[str, Any] = {"name": name}
        if color:
            payload["color"] = color
        body = await self._request("POST", path, json=payload)
        return self._parse(partial(entity_from_api, kind), self._expect_dict(body, path), path)

    async def delete_entity(self, kind: EntityKind, entity_id: str) -> None:
        await self._request("DELETE", f"/{kind.value}", params={"id": entity_id})

    async def reconcile_ae_colors(self) -> ReconcileResult:
        path = "/aes/reconcile-colors"
        body = self._expect_dict(await self._request("POST", path), path)
        changes = [
            ColorChange(
                id=str(c.get("id")),
                name=None,
                previous=c.get("from"),
                color=str(c.get("to")),
            )
            for c in body.get("changes") or []
            if isinstance(c, dict)
        ]
        # {ok, changed, changes[]}: leftover conflicts are not reported here.
        return ReconcileResult(changes=changes)

    # ---- tasks ----

    async def list_tasks(self) -> list[Task]:
        rows = self._expect_list(await self._request("GET", "/tasks"), "/tasks")
        return [self._parse(Task.from_api, r, "/tasks") for r in rows]

    async def create_task(self, payload: dict[str, Any]) -> Task:
        body = await self._request("POST", "/tasks", json=payload)
        return self._parse(Task.from_api, self._expect_dict(body, "/tasks"), "/tasks")

    async def update_task(self, task_id: str, body: dict[str, Any]) -> Task:
        path = f"/tasks/{task_id}"
        res = await self._request("PATCH", path, json=body)
        return self._parse(Task.from_api, self._expect_dict(res, path), path)

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")
