"""
cwinner.engine.celebration — Celebration Decision Pipeline
===========================================================

Pure decision functions.  No terminal I/O, no file I/O inside the engine.

Pipeline stages:
  Event → Custom Trigger → Breakthrough → Tool Class → Event Class → Intensity
  Intensity → (caller) Streak / Session / Session-End upgrades → final Intensity
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any

from cwinner.constants import COMMAND_TOOLS
from cwinner.engine.events import Event, EventKind

if TYPE_CHECKING:
    from cwinner.config import CelebrationConfig, XpConfig
    from cwinner.engine.state import State

logger = logging.getLogger(__name__)

__all__ = [
    "Intensity",
    "decide",
    "raise_to",
    "xp_for_event",
    "xp_for_intensity",
]


# ---------------------------------------------------------------------------
# Intensity: ordinal Off < Mini < Medium < Epic
# ---------------------------------------------------------------------------
class Intensity(enum.IntEnum):
    OFF = 0
    MINI = 1
    MEDIUM = 2
    EPIC = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: Any) -> Intensity:
        """Parse a config value (``"off"``, ``"Epic"``, ...).

        YAML 1.1 reads a bare ``off`` as ``False``, so that maps to OFF.
        """
        if isinstance(value, cls):
            return value
        if value is False:
            return cls.OFF
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown intensity: {value!r}")


def raise_to(current: Intensity, target: Intensity) -> Intensity:
    """Upgrade *current* to at least *target*; never lowers."""
    return max(current, target)


# ---------------------------------------------------------------------------
# Base decision
# ---------------------------------------------------------------------------
def _custom_trigger(event: Event, cfg: CelebrationConfig) -> Intensity | None:
    if event.command is None:
        return None
    for trigger in cfg.triggers:
        if trigger.matches(event.command):
            logger.debug("Custom trigger %r matched %r", trigger.name, event.command)
            return trigger.intensity
    return None


def decide(event: Event, state: State, cfg: CelebrationConfig) -> Intensity:
    """Decide the base celebration intensity for *event*.

    *state* must be the **pre-mutation** state: the breakthrough rule
    compares against the exit status recorded before this event.
    """
    intensity = cfg.intensity

    match event.kind:
        case EventKind.POST_TOOL_USE:
            override = _custom_trigger(event, cfg)
            if override is not None:
                return override

            if event.tool in COMMAND_TOOLS:
                exit_code = event.exit_code if event.exit_code is not None else -1
                prev_failed = (
                    state.last_command_exit is not None and state.last_command_exit != 0
                )
                if exit_code == 0 and prev_failed:
                    return intensity.breakthrough
                if exit_code == 0:
                    return intensity.routine
                return Intensity.OFF

            # File tools and any other tool: routine
            return intensity.routine

        case EventKind.TASK_COMPLETED | EventKind.GIT_COMMIT | EventKind.SESSION_END:
            return intensity.milestone

        case EventKind.GIT_PUSH:
            return intensity.breakthrough

        case EventKind.POST_TOOL_USE_FAILURE:
            return Intensity.OFF

        case EventKind.USER_DEFINED:
            return intensity.routine


# ---------------------------------------------------------------------------
# XP
# ---------------------------------------------------------------------------
def xp_for_intensity(level: Intensity, xp_cfg: XpConfig) -> int:
    match level:
        case Intensity.OFF:
            return 0
        case Intensity.MINI:
            return xp_cfg.mini
        case Intensity.MEDIUM:
            return xp_cfg.medium
        case Intensity.EPIC:
            return xp_cfg.epic


def xp_for_event(level: Intensity, state: State, xp_cfg: XpConfig) -> int:
    """XP for *level*, multiplied while the commit streak is long enough."""
    base = xp_for_intensity(level, xp_cfg)
    if base > 0 and state.commit_streak_days >= xp_cfg.streak_bonus_days:
        return base * xp_cfg.streak_multiplier
    return base
