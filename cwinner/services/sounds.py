"""
cwinner.services.sounds — Built-in Tone Generator
==================================================

Synthesizes the default sound pack: one sine tone with a linear fade-out
per :class:`~cwinner.services.audio.SoundKind`, written as 16-bit mono
PCM WAV.  Used when a configured pack lacks a file and by
``cwinner sounds extract``.
"""

from __future__ import annotations

import array
import io
import logging
import math
import sys
import tempfile
import wave
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cwinner.services.audio import SoundKind

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
AMPLITUDE = 0.95

# (frequency Hz, duration s)
TONES: dict[str, tuple[float, float]] = {
    "mini": (880.0, 0.3),         # A5, short blip
    "milestone": (523.25, 0.8),   # C5, chime
    "epic": (659.25, 1.2),        # E5
    "fanfare": (783.99, 1.5),     # G5
    "streak": (1046.5, 1.5),      # C6
}


def generate_wav(kind: SoundKind) -> bytes:
    """Return a complete WAV file for *kind*."""
    freq, duration = TONES[kind.value]
    count = int(SAMPLE_RATE * duration)
    samples = array.array("h")
    for i in range(count):
        t = i / SAMPLE_RATE
        envelope = 1.0 - t / duration
        samples.append(int(envelope * AMPLITUDE * 32767 * math.sin(2 * math.pi * freq * t)))
    if sys.byteorder == "big":
        samples.byteswap()

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(samples.tobytes())
    return buf.getvalue()


def extract_all_sounds(dest: str | Path) -> list[Path]:
    """Write every built-in tone into *dest*, skipping existing files."""
    from cwinner.services.audio import SoundKind  # circular import

    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for kind in SoundKind:
        path = dest / f"{kind.value}.wav"
        if not path.exists():
            path.write_bytes(generate_wav(kind))
            written.append(path)
    logger.info("Extracted %d sound(s) into %s", len(written), dest)
    return written


def ensure_sound_file(kind: SoundKind) -> Path:
    """Path to a generated WAV for *kind* in the temp dir, creating it once."""
    tmp_dir = Path(tempfile.gettempdir()) / "cwinner"
    tmp_dir.mkdir(parents=True, exist_ok=True)
    path = tmp_dir / f"{kind.value}.wav"
    if not path.exists():
        path.write_bytes(generate_wav(kind))
    return path
