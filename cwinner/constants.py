"""
cwinner.constants — Shared Constants & Helpers
===============================================

Single source of truth for the level table, milestone thresholds,
per-user file locations and the XP progress bar.
Import from here instead of duplicating in the engine, services and CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Level table: (XP required, display name), ascending
# ---------------------------------------------------------------------------
LEVELS: tuple[tuple[int, str], ...] = (
    (0, "Vibe Initiate"),
    (100, "Prompt Whisperer"),
    (500, "Vibe Architect"),
    (1500, "Flow State Master"),
    (5000, "Claude Sensei"),
    (10000, "Code Whisperer"),
    (20000, "Vibe Lord"),
    (35000, "Zen Master"),
    (50000, "Transcendent"),
    (75000, "Singularity"),
)

# Commit-streak lengths (days) that upgrade a commit celebration to Epic
STREAK_MILESTONES: tuple[int, ...] = (5, 10, 25, 100)

# Session lengths (minutes); the last one upgrades to Epic, the rest to Medium
SESSION_MILESTONES_MINUTES: tuple[int, ...] = (60, 180, 480)

# Tools whose completions carry a process exit status
COMMAND_TOOLS: frozenset[str] = frozenset({"Bash"})

# Render pacing
RENDER_COOLDOWN_SECONDS = 5.0
RENDER_SETTLE_SECONDS = 0.2


# ---------------------------------------------------------------------------
# Leveling
# ---------------------------------------------------------------------------
def level_for_xp(xp: int) -> tuple[int, str]:
    """Return ``(level, level_name)`` for *xp*.

    Scans the table from the top down for the first threshold ``<= xp``.
    Levels are 1-based.
    """
    for index in range(len(LEVELS) - 1, -1, -1):
        threshold, name = LEVELS[index]
        if xp >= threshold:
            return index + 1, name
    return 1, LEVELS[0][1]


def level_threshold(level: int) -> int | None:
    """XP required to reach *level*, or ``None`` past the top of the table."""
    if 1 <= level <= len(LEVELS):
        return LEVELS[level - 1][0]
    return None


def xp_progress(level: int, xp: int) -> tuple[int, int]:
    """Return ``(xp earned inside level, xp span of level)``.

    At the top level the span is reported equal to the progress so the
    bar renders full.
    """
    floor = level_threshold(level) or 0
    ceiling = level_threshold(level + 1)
    earned = max(0, xp - floor)
    if ceiling is None:
        return earned, earned
    return earned, ceiling - floor


def xp_bar(current: int, total: int, width: int) -> str:
    """Render a ``█``/``░`` bar of *width* cells for ``current / total``."""
    ratio = 1.0 if total <= 0 else current / total
    filled = min(width, max(0, round(ratio * width)))
    return "█" * filled + "░" * (width - filled)


# ---------------------------------------------------------------------------
# Per-user paths
# ---------------------------------------------------------------------------
def data_dir() -> Path:
    """Directory holding the state file and the socket."""
    override = os.getenv("CWINNER_DATA_DIR")
    if override:
        return Path(override)
    base = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / "cwinner"


def config_dir() -> Path:
    """Directory holding ``config.yaml`` and the ``sounds/`` packs."""
    override = os.getenv("CWINNER_CONFIG_DIR")
    if override:
        return Path(override)
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "cwinner"


def socket_path() -> Path:
    return data_dir() / "cwinner.sock"


def state_path() -> Path:
    return data_dir() / "state.json"


def config_path() -> Path:
    return config_dir() / "config.yaml"


def sounds_dir() -> Path:
    return config_dir() / "sounds"
