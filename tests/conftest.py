"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest

from cwinner.config import CelebrationConfig
from cwinner.engine.events import Event, EventKind
from cwinner.engine.state import State


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    loop = asyncio.get_event_loop_policy().new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_event(
    kind: EventKind = EventKind.POST_TOOL_USE,
    *,
    tool: str | None = None,
    session_id: str = "sess-1",
    terminal_target: str = "/dev/null",
    **metadata,
) -> Event:
    """Build an Event the way the wire layer does (metadata → typed fields)."""
    return Event.from_metadata(
        kind,
        session_id,
        terminal_target=terminal_target,
        tool=tool,
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def cfg() -> CelebrationConfig:
    """Default configuration (routine off, milestone medium, breakthrough epic)."""
    return CelebrationConfig()


@pytest.fixture
def state() -> State:
    return State()


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point every per-user path at the test's tmp dir."""
    monkeypatch.setenv("CWINNER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CWINNER_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("CLAUDE_SESSION_ID", raising=False)
    return tmp_path


@pytest.fixture
def short_dir():
    """Short directory for unix sockets (sun_path is ~104 bytes)."""
    path = Path(tempfile.mkdtemp(prefix="cw", dir="/tmp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)
