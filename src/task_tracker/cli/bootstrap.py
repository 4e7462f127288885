# src/task_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root" of the console app:
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the REST client and the data provider into AppState.
"""

from __future__ import annotations

import logging

from ..api.client import BackendClient
from ..config import get_settings
from ..core.ports import TaskBackend
from ..core.state import AppState
from ..data.provider import DataProvider

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, backend: TaskBackend | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and backend injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if backend is None:
        backend = BackendClient.from_settings(settings)
        logger.info("Using backend at %s", settings.api_base_url)

    return AppState(
        settings=settings,
        backend=backend,
        provider=DataProvider(backend),
    )


async def close_state(state: AppState) -> None:
    aclose = getattr(state.backend, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.debug("Backend close failed.", exc_info=True)
