"""
cwinner.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` once per process into an immutable, typed
snapshot.  Every section is optional: missing sections or fields take the
documented defaults, unknown fields are ignored, and an unreadable file
falls back to the full default configuration instead of failing startup.

Usage::

    from cwinner.config import load_config

    cfg = load_config()               # reads ~/.config/cwinner/config.yaml
    print(cfg.intensity.milestone)    # Intensity.MEDIUM
    print(cfg.audio.sound_pack)       # "default"

Example file::

    intensity:
      routine: off
      milestone: medium
      breakthrough: epic
    audio:
      enabled: true
      sound_pack: default
      volume: 0.8
    triggers:
      custom:
        - name: deploy
          pattern: "git push.*production"
          intensity: epic
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from cwinner.constants import config_path
from cwinner.engine.celebration import Intensity

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Typed sections
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class IntensityConfig:
    """Intensity per event class.  ``TaskCompleted`` uses ``milestone``."""

    routine: Intensity = Intensity.OFF
    milestone: Intensity = Intensity.MEDIUM
    breakthrough: Intensity = Intensity.EPIC


@dataclass(frozen=True, slots=True)
class AudioConfig:
    enabled: bool = True
    sound_pack: str = "default"
    volume: float = 0.8  # 0.0 – 1.0


@dataclass(frozen=True, slots=True)
class VisualConfig:
    """Visual toggles and durations (milliseconds)."""

    confetti: bool = True
    splash_screen: bool = True
    progress_bar: bool = True
    confetti_duration_ms: int = 1500
    splash_duration_ms: int = 2000
    toast_duration_ms: int = 1500
    toast_achievement_duration_ms: int = 2500
    progress_bar_duration_ms: int = 3000


@dataclass(frozen=True, slots=True)
class XpConfig:
    """XP awarded per base intensity, plus the streak bonus."""

    mini: int = 5
    medium: int = 25
    epic: int = 100
    streak_bonus_days: int = 5
    streak_multiplier: int = 2


@dataclass(frozen=True, slots=True)
class CustomTrigger:
    """A command pattern that forces a specific intensity."""

    name: str
    pattern: str
    intensity: Intensity

    def matches(self, command: str) -> bool:
        """True when *pattern* is a substring of, or a regex found in, *command*."""
        if not self.pattern:
            return False
        if self.pattern in command:
            return True
        try:
            return re.search(self.pattern, command) is not None
        except re.error:
            return False


@dataclass(frozen=True, slots=True)
class CelebrationConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    intensity: IntensityConfig = field(default_factory=IntensityConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    visual: VisualConfig = field(default_factory=VisualConfig)
    xp: XpConfig = field(default_factory=XpConfig)
    triggers: tuple[CustomTrigger, ...] = ()


# ---------------------------------------------------------------------------
# Field coercion: a bad value falls back to that field's default
# ---------------------------------------------------------------------------
def _section(raw: dict, name: str) -> dict:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Config section %r is not a mapping — using defaults", name)
        return {}
    return value


def _intensity(section: dict, key: str, default: Intensity) -> Intensity:
    if key not in section:
        return default
    try:
        return Intensity.parse(section[key])
    except ValueError:
        logger.warning("Invalid intensity %r for %r — using %s", section[key], key, default.label)
        return default


def _bool(section: dict, key: str, default: bool) -> bool:
    value = section.get(key, default)
    return value if isinstance(value, bool) else default


def _int(section: dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return default
    return value


def _parse_triggers(raw: dict) -> tuple[CustomTrigger, ...]:
    custom = _section(raw, "triggers").get("custom") or []
    if not isinstance(custom, list):
        return ()

    triggers: list[CustomTrigger] = []
    for item in custom:
        if not isinstance(item, dict) or not item.get("pattern"):
            logger.warning("Skipping malformed custom trigger: %r", item)
            continue
        try:
            intensity = Intensity.parse(item.get("intensity", "medium"))
        except ValueError:
            logger.warning("Skipping custom trigger with bad intensity: %r", item)
            continue
        triggers.append(CustomTrigger(
            name=str(item.get("name") or item["pattern"]),
            pattern=str(item["pattern"]),
            intensity=intensity,
        ))
    return tuple(triggers)


def parse_config(raw: Any) -> CelebrationConfig:
    """Build a :class:`CelebrationConfig` from an already-parsed document."""
    if not isinstance(raw, dict):
        return CelebrationConfig()

    defaults_i, defaults_a, defaults_v, defaults_x = (
        IntensityConfig(), AudioConfig(), VisualConfig(), XpConfig(),
    )

    ints = _section(raw, "intensity")
    intensity = IntensityConfig(
        routine=_intensity(ints, "routine", defaults_i.routine),
        milestone=_intensity(ints, "milestone", defaults_i.milestone),
        breakthrough=_intensity(ints, "breakthrough", defaults_i.breakthrough),
    )

    aud = _section(raw, "audio")
    volume = aud.get("volume", defaults_a.volume)
    if isinstance(volume, bool) or not isinstance(volume, (int, float)):
        volume = defaults_a.volume
    audio = AudioConfig(
        enabled=_bool(aud, "enabled", defaults_a.enabled),
        sound_pack=str(aud.get("sound_pack") or defaults_a.sound_pack),
        volume=min(1.0, max(0.0, float(volume))),
    )

    vis = _section(raw, "visual")
    visual = VisualConfig(
        confetti=_bool(vis, "confetti", defaults_v.confetti),
        splash_screen=_bool(vis, "splash_screen", defaults_v.splash_screen),
        progress_bar=_bool(vis, "progress_bar", defaults_v.progress_bar),
        confetti_duration_ms=_int(vis, "confetti_duration_ms", defaults_v.confetti_duration_ms),
        splash_duration_ms=_int(vis, "splash_duration_ms", defaults_v.splash_duration_ms),
        toast_duration_ms=_int(vis, "toast_duration_ms", defaults_v.toast_duration_ms),
        toast_achievement_duration_ms=_int(
            vis, "toast_achievement_duration_ms", defaults_v.toast_achievement_duration_ms,
        ),
        progress_bar_duration_ms=_int(
            vis, "progress_bar_duration_ms", defaults_v.progress_bar_duration_ms,
        ),
    )

    xps = _section(raw, "xp")
    xp = XpConfig(
        mini=_int(xps, "mini", defaults_x.mini),
        medium=_int(xps, "medium", defaults_x.medium),
        epic=_int(xps, "epic", defaults_x.epic),
        streak_bonus_days=_int(xps, "streak_bonus_days", defaults_x.streak_bonus_days),
        streak_multiplier=_int(xps, "streak_multiplier", defaults_x.streak_multiplier),
    )

    return CelebrationConfig(
        intensity=intensity,
        audio=audio,
        visual=visual,
        xp=xp,
        triggers=_parse_triggers(raw),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> CelebrationConfig:
    """Read *path* and return a :class:`CelebrationConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the per-user config directory.

    Never raises: a missing file yields the defaults silently, an
    unreadable or unparseable one yields the defaults with a warning.
    """
    config_file = Path(path) if path is not None else config_path()
    if not config_file.exists():
        logger.info("No config at %s — using defaults", config_file)
        return CelebrationConfig()

    try:
        with open(config_file, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        logger.warning("Could not read %s — using default configuration", config_file, exc_info=True)
        return CelebrationConfig()

    return parse_config(raw)
