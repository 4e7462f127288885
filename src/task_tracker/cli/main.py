# src/task_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, hydrates the data provider, then runs
the console REPL until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import close_state, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        await state.provider.ensure_hydrated()
        snap = state.provider.get_snapshot()
        logger.info(
            "Loaded %d tasks, %d AEs, %d accounts.", len(snap.tasks), len(snap.aes), len(snap.accounts)
        )

        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled; nothing else to run.")
    finally:
        await close_state(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
