# tests/test_api_client.py

from __future__ import annotations

import httpx
import pytest

from task_tracker.api.client import BackendClient
from task_tracker.core.errors import (
    ConflictError,
    NotFoundError,
    UnavailableError,
    ValidationError,
    friendly_error_message,
)
from task_tracker.tasks.task_models import AE, Account, EntityKind, TaskStatus

from .conftest import BASE_URL
from .fakes import FakeTrackerServer


@pytest.mark.asyncio
async def test_list_and_create_entities(server: FakeTrackerServer, backend: BackendClient) -> None:
    server.add_ae("Milo", color="#BFDBFE")
    server.add_account("Acme")

    created = await backend.create_entity(EntityKind.AE, "Ava")
    assert isinstance(created, AE)
    assert created.name == "Ava"

    aes = await backend.list_entities(EntityKind.AE)
    assert [a.name for a in aes] == ["Ava", "Milo"]
    assert aes[1].color == "#BFDBFE"

    accounts = await backend.list_entities(EntityKind.ACCOUNT)
    assert accounts == [Account(id=accounts[0].id, name="Acme")]
    assert server.calls[-1] == ("GET", "/accounts")


@pytest.mark.asyncio
async def test_duplicate_name_raises_conflict(server: FakeTrackerServer, backend: BackendClient) -> None:
    server.add_ae("Ava")
    with pytest.raises(ConflictError) as excinfo:
        await backend.create_entity(EntityKind.AE, "ava")
    assert excinfo.value.status == 409
    assert excinfo.value.count is None
    assert excinfo.value.message == "AE already exists"


@pytest.mark.asyncio
async def test_validation_error_carries_issues(backend: BackendClient) -> None:
    with pytest.raises(ValidationError) as excinfo:
        await backend.create_task({"title": "", "status": "BACKLOG"})
    err = excinfo.value
    assert err.issues[0]["path"] == ["title"]
    assert friendly_error_message(err) == "Validation error (title: title is required)"


@pytest.mark.asyncio
async def test_in_use_delete_reports_count(server: FakeTrackerServer, backend: BackendClient) -> None:
    server.add_task("T1", "Ava")
    server.add_task("T2", "Ava")
    ae_id = next(iter(server.aes))

    with pytest.raises(ConflictError) as excinfo:
        await backend.delete_entity(EntityKind.AE, ae_id)
    assert excinfo.value.count == 2
    assert "referenced by 2 tasks" in friendly_error_message(excinfo.value)


@pytest.mark.asyncio
async def test_missing_task_raises_not_found(backend: BackendClient) -> None:
    with pytest.raises(NotFoundError):
        await backend.update_task("nope", {"title": "x"})
    with pytest.raises(NotFoundError):
        await backend.delete_task("nope")


@pytest.mark.asyncio
async def test_server_and_network_failures_are_unavailable(
    server: FakeTrackerServer, backend: BackendClient
) -> None:
    server.fail.add(("GET", "/tasks"))
    with pytest.raises(UnavailableError) as excinfo:
        await backend.list_tasks()
    assert excinfo.value.status == 500
    assert excinfo.value.message == "Internal error"

    server.offline = True
    with pytest.raises(UnavailableError) as excinfo:
        await backend.list_tasks()
    assert excinfo.value.status == 0
    assert "unreachable" in friendly_error_message(excinfo.value)


@pytest.mark.asyncio
async def test_non_json_error_uses_status_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    async with BackendClient(BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(UnavailableError) as excinfo:
            await client.list_entities(EntityKind.ACCOUNT)
    assert excinfo.value.message == "HTTP 502"
    assert excinfo.value.body == "<html>bad gateway</html>"


@pytest.mark.asyncio
async def test_task_round_trip_uses_view_model(server: FakeTrackerServer, backend: BackendClient) -> None:
    ae_id = server.add_ae("Ava")
    created = await backend.create_task(
        {"title": "Prep deck", "ae_id": ae_id, "status": "IN_PROGRESS", "due_date": "2026-10-20"}
    )
    assert created.ae == "Ava"
    assert created.account == ""
    assert created.status is TaskStatus.IN_PROGRESS
    assert created.due_date == "2026-10-20"
    assert created.completed_at is None
    assert created.created_at

    listed = await backend.list_tasks()
    assert listed == [created]


@pytest.mark.asyncio
async def test_reconcile_endpoint_parses_changes(server: FakeTrackerServer, backend: BackendClient) -> None:
    server.add_ae("A")
    server.add_ae("B", color="#111")
    server.add_ae("C", color="#111")

    result = await backend.reconcile_ae_colors()
    assert result.changed == 2
    assert result.unresolved == []
    assert {c.previous for c in result.changes} == {None, "#111"}


@pytest.mark.asyncio
async def test_reconcile_response_carries_only_changes(server: FakeTrackerServer, backend: BackendClient) -> None:
    server.add_ae("A")
    result = await backend.reconcile_ae_colors()
    assert [c.name for c in result.changes] == [None]
    assert result.unresolved == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "rows"),
    [
        ("/tasks", [{"title": "no id"}]),
        ("/aes", [{"id": "ae-1"}]),
        ("/accounts", ["not a row", {"name": "no id"}]),
    ],
)
async def test_malformed_rows_are_unavailable(
    server: FakeTrackerServer, backend: BackendClient, path: str, rows: list
) -> None:
    server.canned[("GET", path)] = rows
    with pytest.raises(UnavailableError) as excinfo:
        if path == "/tasks":
            await backend.list_tasks()
        else:
            await backend.list_entities(EntityKind(path[1:]))
    assert excinfo.value.message == f"Malformed response from {path}"
