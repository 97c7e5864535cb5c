# src/taskgraph/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, connects and loads the entity store,
then runs the console until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import locale
import logging

from ..config import get_settings
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state
from .console import run_console_loop

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        if not await state.store.initialize():
            # The console still starts; /refresh can be used once the database is back.
            print(state.store.error or "Failed to load data.")
        await run_console_loop(state)
    finally:
        try:
            await state.store.close()
        except Exception:
            logger.debug("Gateway disconnect failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    try:
        # Alphabetical task sorting collates with the user's locale.
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logger.warning("Could not apply the system collation locale; using the default.")

    logger.info("Starting %s...", settings.app_name)
    if settings.uses_default_credentials:
        logger.warning(
            "Using the default Neo4j password; set TASKGRAPH_NEO4J_PASSWORD for anything but local use."
        )

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
