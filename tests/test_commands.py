# tests/test_commands.py

from __future__ import annotations

import pytest

from task_tracker.cli.commands import CommandRegistry, registry
from task_tracker.core.state import AppState
from task_tracker.tasks.task_models import ALL, TaskStatus

from .fakes import FakeTrackerServer


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    async def h2(state, args):
        called["h2"] += 1
        return "h2 " + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, '/a x "y z"') == "h2 x,y z"
    assert await reg.handle(state, "/AA") == "h2 "
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_help_lists_registered_commands(state: AppState) -> None:
    reply = await registry.handle(state, "/help") or ""
    for name in ("/list", "/add", "/done", "/ae", "/reconcile"):
        assert name in reply


@pytest.mark.asyncio
async def test_add_then_list(server: FakeTrackerServer, state: AppState) -> None:
    reply = await registry.handle(state, '/add "Prep QBR deck" ae=Ava account=Acme due=2099-01-20')
    assert reply is not None
    assert reply.startswith("Created [")
    assert "Prep QBR deck | Ava / Acme | Backlog | due 2099-01-20" in reply

    await registry.handle(state, "/add Send recap ae=Milo status=in-progress")

    listing = await registry.handle(state, "/list ae=Ava") or ""
    assert "Active (1):" in listing
    assert "Prep QBR deck" in listing
    assert "Send recap" not in listing
    assert state.filters.ae == "Ava"

    listing = await registry.handle(state, "/list reset") or ""
    assert "Active (2):" in listing
    assert state.filters.ae == ALL


@pytest.mark.asyncio
async def test_add_validation_error_is_reported(server: FakeTrackerServer, state: AppState) -> None:
    reply = await registry.handle(state, "/add Untitled")
    assert reply == "ae is required"
    assert server.count_calls("POST", "/tasks") == 0


@pytest.mark.asyncio
async def test_done_and_delete_by_id_prefix(server: FakeTrackerServer, state: AppState) -> None:
    task_id = server.add_task("Prep deck", "Ava")
    await state.provider.ensure_hydrated()

    reply = await registry.handle(state, f"/done {task_id[:8]}") or ""
    assert reply.startswith("Moved")
    assert server.tasks[task_id]["status"] == TaskStatus.DONE.value
    assert server.tasks[task_id]["completed_at"] is not None

    emitted: list[str] = []
    reply = await registry.handle(state, f"/rm {task_id[:8]}", emit=emitted.append) or ""
    assert reply.startswith("Deleted")
    assert emitted == ["Deleting 'Prep deck'..."]
    assert task_id not in server.tasks


@pytest.mark.asyncio
async def test_ae_rm_in_use_reports_reference_count(server: FakeTrackerServer, state: AppState) -> None:
    server.add_task("Prep deck", "Ava")

    reply = await registry.handle(state, "/ae rm Ava") or ""
    assert "referenced by 1 task." in reply
    assert "Ava" in (await registry.handle(state, "/aes") or "")


@pytest.mark.asyncio
async def test_account_add_and_rm(server: FakeTrackerServer, state: AppState) -> None:
    assert await registry.handle(state, "/account add Globex Corp") == "Account Globex Corp added."
    assert "Globex Corp" in (await registry.handle(state, "/accounts") or "")
    assert await registry.handle(state, "/account rm globex corp") == "Account globex corp deleted."
    assert await registry.handle(state, "/accounts") == "No accounts yet."


@pytest.mark.asyncio
async def test_backend_offline_gives_friendly_message(server: FakeTrackerServer, state: AppState) -> None:
    await state.provider.ensure_hydrated()
    server.offline = True

    reply = await registry.handle(state, "/account add Acme") or ""
    assert "unreachable" in reply


@pytest.mark.asyncio
async def test_reconcile_reports_palette_exhaustion(server: FakeTrackerServer, state: AppState) -> None:
    for i in range(11):
        server.add_ae(f"AE{i:02d}")

    reply = await registry.handle(state, "/reconcile") or ""
    assert reply == "AE colors reconciled: 10 changed. 1 AE(s) still share a color (palette exhausted)."
