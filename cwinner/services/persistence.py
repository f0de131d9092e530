"""
cwinner.services.persistence — State File I/O
==============================================

Loads the durable :class:`~cwinner.engine.state.State` once at startup and
writes it back after every processed event.

Writes are atomic: the JSON is written to a temporary file in the same
directory, fsynced, then renamed over the target, so a crash never leaves
a truncated state file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from cwinner.constants import state_path
from cwinner.engine.state import State

logger = logging.getLogger(__name__)


def load_state(path: str | Path | None = None) -> State:
    """Read the state file; any failure yields a fresh zero state."""
    state_file = Path(path) if path is not None else state_path()
    if not state_file.exists():
        logger.info("No state file at %s — starting fresh", state_file)
        return State()

    try:
        with open(state_file, encoding="utf-8") as fh:
            raw = json.load(fh)
        state = State.from_dict(raw)
    except (OSError, ValueError, TypeError):
        logger.warning("Could not load %s — starting fresh", state_file, exc_info=True)
        return State()

    logger.info(
        "State loaded — level %d (%s), %d XP, %d achievements",
        state.level, state.level_name, state.xp, len(state.achievements_unlocked),
    )
    return state


def save_state(state: State, path: str | Path | None = None) -> None:
    """Atomically write *state* as pretty JSON.

    Raises
    ------
    OSError
        If the directory or file cannot be written.  The caller decides
        whether that is fatal (the daemon logs and carries on).
    """
    state_file = Path(path) if path is not None else state_path()
    state_file.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{state_file.name}.", suffix=".tmp", dir=state_file.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(state.to_dict(), fh, indent=2)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, state_file)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
