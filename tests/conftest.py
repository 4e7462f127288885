# tests/conftest.py

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from task_tracker.api.client import BackendClient
from task_tracker.core.state import AppState
from task_tracker.data.provider import DataProvider

from .fakes import FakeTrackerServer

BASE_URL = "http://tracker.test/api"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the command handlers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="task-tracker-test",
        log_level="DEBUG",
        api_base_url=BASE_URL,
        api_connect_timeout_seconds=1.0,
        api_read_timeout_seconds=1.0,
        console_enabled=False,
        data_dir=tmp_path / "data",
    )


@pytest.fixture()
def server() -> FakeTrackerServer:
    return FakeTrackerServer()


@pytest_asyncio.fixture()
async def backend(server: FakeTrackerServer) -> AsyncIterator[BackendClient]:
    """
    Real BackendClient talking to the in-memory server.

    NOTE: the HTTP layer is not mocked away; requests go through httpx and
    the JSON round trip, only the socket is replaced by MockTransport.
    """
    client = BackendClient(BASE_URL, transport=server.transport)
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture()
def provider(backend: BackendClient) -> DataProvider:
    return DataProvider(backend)


@pytest.fixture()
def state(settings: SimpleNamespace, backend: BackendClient, provider: DataProvider) -> AppState:
    return AppState(settings=settings, backend=backend, provider=provider)
