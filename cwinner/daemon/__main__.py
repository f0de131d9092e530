"""
cwinner.daemon.__main__ — Entry point for ``python -m cwinner.daemon``
======================================================================

Wiring:
1. Load .env (environment overrides).
2. Load config.yaml (intensities, audio, visuals, triggers).
3. Load the durable state file (defaults if missing or corrupt).
4. Build the EventProcessor (state + sessions) and the RenderCoordinator.
5. Bind the unix socket and serve until SIGINT / SIGTERM.

Run with::

    python -m cwinner.daemon
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from cwinner.config import load_config
from cwinner.constants import socket_path, state_path
from cwinner.daemon.server import READ_TIMEOUT_SECONDS, DaemonServer
from cwinner.services.event_service import EventProcessor
from cwinner.services.persistence import load_state
from cwinner.services.render import RenderCoordinator

logger = logging.getLogger("cwinner")


def _configure_logging() -> None:
    level_name = os.getenv("CWINNER_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def _read_timeout() -> float:
    raw = os.getenv("CWINNER_READ_TIMEOUT")
    if not raw:
        return READ_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid CWINNER_READ_TIMEOUT=%r", raw)
        return READ_TIMEOUT_SECONDS
    return value if value > 0 else READ_TIMEOUT_SECONDS


def main() -> None:
    """Bootstrap and run the cwinner daemon."""

    # 1. Environment overrides.
    load_dotenv()
    _configure_logging()

    # 2. Soft configuration.
    cfg = load_config()

    # 3. Durable state.
    state_file = state_path()
    state = load_state(state_file)

    # 4. Processor + render slot.
    processor = EventProcessor(state, cfg, state_file=state_file)
    server = DaemonServer(
        processor,
        cfg,
        path=socket_path(),
        coordinator=RenderCoordinator(),
        read_timeout=_read_timeout(),
    )

    # 5. Serve (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting cwinner daemon…")
    try:
        asyncio.run(server.run_until_signalled())
    except OSError as exc:
        logger.critical("Cannot bind %s: %s", server.path, exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
