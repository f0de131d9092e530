"""
cwinner.services.terminal — ANSI Terminal Effects
==================================================

Low-level drawing on a terminal device given by path (e.g. ``/dev/pts/3``).

* Mini   — XP progress bar on the bottom row
* Medium — centered toast on the bottom row (longer with an achievement)
* Epic   — confetti then a bordered splash panel on the alternate screen

Every effect restores cursor position / screen mode in a ``finally`` so
the terminal is left as found even when a write fails half-way.
Callers are expected to hold the render slot from
:mod:`cwinner.services.render`.
"""

from __future__ import annotations

import logging
import os
import random
import time
from typing import TYPE_CHECKING, TextIO

from cwinner.constants import xp_bar, xp_progress
from cwinner.engine.celebration import Intensity

if TYPE_CHECKING:
    from cwinner.config import VisualConfig
    from cwinner.engine.state import State

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Escape sequences
# ---------------------------------------------------------------------------
SAVE_CURSOR = "\x1b7"
RESTORE_CURSOR = "\x1b8"
CLEAR_LINE = "\x1b[2K"
CLEAR_SCREEN = "\x1b[2J"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
ENTER_ALT_SCREEN = "\x1b[?1049h"
LEAVE_ALT_SCREEN = "\x1b[?1049l"
RESET = "\x1b[0m"

RED, GREEN, YELLOW, BLUE, MAGENTA, CYAN, WHITE = (f"\x1b[{n}m" for n in range(31, 38))

CONFETTI_CHARS = "✦★♦●*+#✿❋"
CONFETTI_COLORS = (RED, GREEN, YELLOW, BLUE, MAGENTA, CYAN, WHITE)
CONFETTI_FRAMES = 15
DEFAULT_SIZE = (80, 24)


def move_to(row: int, col: int) -> str:
    """Absolute cursor move, 1-based."""
    return f"\x1b[{row};{col}H"


# ---------------------------------------------------------------------------
# TTY helpers
# ---------------------------------------------------------------------------
def open_tty(tty_path: str) -> TextIO:
    """Open an existing tty for writing.  Never creates *tty_path*."""
    fd = os.open(tty_path, os.O_WRONLY | os.O_NOCTTY | os.O_APPEND)
    return os.fdopen(fd, "w", encoding="utf-8")


def tty_size(tty: TextIO) -> tuple[int, int]:
    """``(columns, rows)`` of *tty*, or 80x24 when it is not a terminal."""
    try:
        size = os.get_terminal_size(tty.fileno())
    except (OSError, ValueError):
        return DEFAULT_SIZE
    if size.columns <= 0 or size.lines <= 0:
        return DEFAULT_SIZE
    return size.columns, size.lines


def _emit(tty: TextIO, text: str) -> None:
    tty.write(text)
    tty.flush()


def _restore(tty: TextIO, text: str) -> None:
    """Write a restore sequence; the terminal may already be gone."""
    try:
        _emit(tty, text)
    except (OSError, ValueError):
        logger.debug("Terminal restore failed", exc_info=True)


def _sleep_ms(ms: int) -> None:
    if ms > 0:
        time.sleep(ms / 1000)


def progress_line(state: State, width: int = 15) -> str:
    earned, span = xp_progress(state.level, state.xp)
    return f" ⚡ {state.level_name} │ {xp_bar(earned, span, width)} │ {state.xp} XP "


# ---------------------------------------------------------------------------
# Mini: progress bar
# ---------------------------------------------------------------------------
def render_progress_bar(tty_path: str, state: State, duration_ms: int) -> None:
    with open_tty(tty_path) as tty:
        _, rows = tty_size(tty)
        clear = SAVE_CURSOR + move_to(rows, 1) + CLEAR_LINE + RESTORE_CURSOR
        try:
            _emit(
                tty,
                SAVE_CURSOR + move_to(rows, 1) + CLEAR_LINE
                + CYAN + progress_line(state, width=20) + RESET + RESTORE_CURSOR,
            )
            _sleep_ms(duration_ms)
        finally:
            _restore(tty, clear)


# ---------------------------------------------------------------------------
# Medium: centered toast
# ---------------------------------------------------------------------------
def toast_message(state: State, achievement: str | None) -> str:
    if achievement:
        return f" 🏆 {achievement} │ {state.level_name} │ {state.xp} XP "
    return progress_line(state)


def render_toast(
    tty_path: str, state: State, achievement: str | None, duration_ms: int,
) -> None:
    msg = toast_message(state, achievement)
    color = YELLOW if achievement else CYAN
    with open_tty(tty_path) as tty:
        cols, rows = tty_size(tty)
        col = max(1, (cols - len(msg)) // 2 + 1)
        clear = SAVE_CURSOR + move_to(rows, 1) + CLEAR_LINE + RESTORE_CURSOR
        try:
            _emit(
                tty,
                SAVE_CURSOR + move_to(rows, 1) + CLEAR_LINE
                + move_to(rows, col) + color + msg + RESET + RESTORE_CURSOR,
            )
            _sleep_ms(duration_ms)
        finally:
            _restore(tty, clear)


# ---------------------------------------------------------------------------
# Epic: confetti + splash on the alternate screen
# ---------------------------------------------------------------------------
def _confetti(tty: TextIO, cols: int, rows: int, duration_ms: int, rng: random.Random) -> None:
    frame_ms = duration_ms // CONFETTI_FRAMES
    usable_rows = max(1, rows - 2)
    for _ in range(CONFETTI_FRAMES):
        parts = []
        for _ in range(max(1, cols // 4)):
            parts.append(
                move_to(rng.randint(1, usable_rows), rng.randint(1, cols))
                + rng.choice(CONFETTI_COLORS) + rng.choice(CONFETTI_CHARS)
            )
        _emit(tty, "".join(parts))
        _sleep_ms(frame_ms)


def splash_lines(state: State, achievement: str, cols: int) -> list[str]:
    inner = max(10, cols - 2)
    info = f"Lvl {state.level} {state.level_name} ✦ {state.xp} XP"
    return [
        "╔" + "═" * inner + "╗",
        "║" + " " * inner + "║",
        "║" + achievement[:inner].center(inner) + "║",
        "║" + info[:inner].center(inner) + "║",
        "║" + " " * inner + "║",
        "╚" + "═" * inner + "╝",
    ]


def _splash(
    tty: TextIO, state: State, achievement: str, cols: int, rows: int, duration_ms: int,
) -> None:
    top = max(1, rows // 2 - 2)
    colors = (YELLOW, YELLOW, GREEN, CYAN, YELLOW, YELLOW)
    out = [CLEAR_SCREEN]
    for offset, (line, color) in enumerate(zip(splash_lines(state, achievement, cols), colors)):
        out.append(move_to(top + offset, 1) + color + line)
    out.append(RESET)
    _emit(tty, "".join(out))
    _sleep_ms(duration_ms)


def render_epic(
    tty_path: str,
    state: State,
    achievement: str | None,
    visual: VisualConfig,
    rng: random.Random | None = None,
) -> None:
    if not (visual.confetti or visual.splash_screen):
        return
    rng = rng or random.Random()
    with open_tty(tty_path) as tty:
        cols, rows = tty_size(tty)
        try:
            _emit(tty, ENTER_ALT_SCREEN + HIDE_CURSOR + CLEAR_SCREEN)
            if visual.confetti:
                _confetti(tty, cols, rows, visual.confetti_duration_ms, rng)
            if visual.splash_screen:
                _splash(
                    tty, state, achievement or "ACHIEVEMENT UNLOCKED!",
                    cols, rows, visual.splash_duration_ms,
                )
        finally:
            _restore(tty, RESET + SHOW_CURSOR + LEAVE_ALT_SCREEN)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
def render(
    tty_path: str,
    level: Intensity,
    state: State,
    achievement: str | None,
    visual: VisualConfig,
) -> None:
    """Draw the effect for *level*.  Raises ``OSError`` on terminal failure."""
    match level:
        case Intensity.OFF:
            return
        case Intensity.MINI:
            if visual.progress_bar:
                render_progress_bar(tty_path, state, visual.progress_bar_duration_ms)
        case Intensity.MEDIUM:
            duration = (
                visual.toast_achievement_duration_ms if achievement else visual.toast_duration_ms
            )
            render_toast(tty_path, state, achievement, duration)
        case Intensity.EPIC:
            render_epic(tty_path, state, achievement, visual)
