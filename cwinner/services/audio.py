"""
cwinner.services.audio — Sound Selection & Playback
====================================================

Maps a celebration (intensity + achievement/streak context) to a
:class:`SoundKind`, finds the file in the configured sound pack and hands
it to whichever command-line player is installed.  Playback is a detached
subprocess; nothing here waits for it or reports failure upward.
"""

from __future__ import annotations

import enum
import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from cwinner.constants import sounds_dir
from cwinner.engine.celebration import Intensity
from cwinner.services.sounds import ensure_sound_file

if TYPE_CHECKING:
    from cwinner.config import AudioConfig

logger = logging.getLogger(__name__)

SOUND_EXTENSIONS = ("ogg", "wav", "mp3")

# Preference order per platform
MAC_PLAYERS = ("afplay",)
LINUX_PLAYERS = ("pw-play", "paplay", "aplay", "mpg123", "mpg321")


class SoundKind(enum.StrEnum):
    MINI = "mini"
    MILESTONE = "milestone"
    EPIC = "epic"
    FANFARE = "fanfare"
    STREAK = "streak"


def celebration_to_sound(
    level: Intensity,
    *,
    has_achievement: bool = False,
    leveled_up: bool = False,
    streak_milestone: bool = False,
) -> SoundKind | None:
    """Pick the sound for a celebration, or None for silence.

    A level-up upgrades the cue one step: Mini plays the milestone chime and
    Epic plays the fanfare.
    """
    if level == Intensity.OFF:
        return None
    if streak_milestone:
        return SoundKind.STREAK
    match level:
        case Intensity.EPIC:
            return SoundKind.FANFARE if has_achievement or leveled_up else SoundKind.EPIC
        case Intensity.MEDIUM:
            return SoundKind.MILESTONE
        case _:
            return SoundKind.MILESTONE if leveled_up else SoundKind.MINI


# ---------------------------------------------------------------------------
# Player detection
# ---------------------------------------------------------------------------
def detect_player() -> str | None:
    """Name of the first available player binary, or None."""
    candidates = MAC_PLAYERS if sys.platform == "darwin" else LINUX_PLAYERS
    for name in candidates:
        if shutil.which(name):
            return name
    return None


def player_command(player: str, path: Path, volume: float) -> list[str]:
    """Argv for *player*; volume is passed where the player supports it."""
    match player:
        case "afplay":
            return ["afplay", "-v", f"{volume:.2f}", str(path)]
        case "pw-play":
            return ["pw-play", f"--volume={volume:.2f}", str(path)]
        case "paplay":
            return ["paplay", f"--volume={int(volume * 65536)}", str(path)]
        case "aplay":
            return ["aplay", "-q", str(path)]
        case "mpg123" | "mpg321":
            return [player, "-q", "-f", str(int(volume * 32768)), str(path)]
        case _:
            return [player, str(path)]


# ---------------------------------------------------------------------------
# File lookup
# ---------------------------------------------------------------------------
def find_sound_file(
    kind: SoundKind, sound_pack: str, base_dir: str | Path | None = None,
) -> Path | None:
    """``<base>/<pack>/<kind>.{ogg,wav,mp3}``, else a generated WAV."""
    pack_dir = Path(base_dir if base_dir is not None else sounds_dir()) / sound_pack
    for ext in SOUND_EXTENSIONS:
        candidate = pack_dir / f"{kind.value}.{ext}"
        if candidate.exists():
            return candidate
    try:
        return ensure_sound_file(kind)
    except OSError:
        logger.debug("Could not generate fallback sound %s", kind, exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------
def play_sound(kind: SoundKind, audio: AudioConfig) -> bool:
    """Start playback of *kind*; returns True if a player was spawned."""
    player = detect_player()
    if player is None:
        logger.debug("No audio player available")
        return False

    path = find_sound_file(kind, audio.sound_pack)
    if path is None:
        return False

    try:
        subprocess.Popen(
            player_command(player, path, audio.volume),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError:
        logger.debug("Failed to spawn %s", player, exc_info=True)
        return False
    return True
