"""
cwinner.services.render — Render Slot & Celebration Dispatch
=============================================================

Serializes and rate-limits every terminal effect system-wide, whichever
session or terminal it targets.

- One render at a time: a request while another render runs is dropped.
- A cooldown (5 s) counted from the end of the previous render: a request
  arriving sooner is dropped.  No queueing, no retry.
- The lock only guards the slot bookkeeping; the terminal write happens
  outside it, while the slot is held.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from cwinner.constants import RENDER_COOLDOWN_SECONDS, RENDER_SETTLE_SECONDS
from cwinner.engine.celebration import Intensity
from cwinner.services import audio, terminal

if TYPE_CHECKING:
    from cwinner.config import CelebrationConfig
    from cwinner.services.event_service import EventOutcome

logger = logging.getLogger(__name__)


class RenderSlot:
    """Token proving the holder owns the terminal until released."""

    __slots__ = ("acquired_at", "released")

    def __init__(self, acquired_at: float) -> None:
        self.acquired_at = acquired_at
        self.released = False


class RenderCoordinator:
    """Process-wide render lock plus inter-render cooldown."""

    def __init__(
        self,
        cooldown: float = RENDER_COOLDOWN_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown = cooldown
        self._clock = clock
        self._lock = threading.Lock()
        self._active: RenderSlot | None = None
        self._last_finished: float | None = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    def try_acquire(self) -> RenderSlot | None:
        """Claim the render slot, or return None if busy / cooling down."""
        now = self._clock()
        with self._lock:
            if self._active is not None:
                logger.debug("Render skipped — another render in progress")
                return None
            if self._last_finished is not None and now - self._last_finished < self.cooldown:
                logger.debug("Render skipped — cooldown")
                return None
            self._active = RenderSlot(now)
            return self._active

    def release(self, slot: RenderSlot) -> None:
        """Free the slot and start the cooldown.  Idempotent."""
        with self._lock:
            if slot.released or slot is not self._active:
                return
            slot.released = True
            self._active = None
            self._last_finished = self._clock()
        logger.debug("Render slot held %.2fs", self._last_finished - slot.acquired_at)


# ---------------------------------------------------------------------------
# Celebration dispatch (runs on a worker thread, never awaited by handlers)
# ---------------------------------------------------------------------------
def celebrate(
    outcome: EventOutcome,
    cfg: CelebrationConfig,
    coordinator: RenderCoordinator,
    *,
    settle: float = RENDER_SETTLE_SECONDS,
) -> bool:
    """Play sound and draw the effect for *outcome*.  True if the slot was claimed.

    Waits *settle* seconds first so the producing tool finishes its own
    terminal output.  All failures are swallowed.
    """
    if outcome.intensity == Intensity.OFF:
        return False

    if settle > 0:
        time.sleep(settle)

    slot = coordinator.try_acquire()
    if slot is None:
        logger.info("Celebration %s skipped (cooldown)", outcome.intensity.label)
        return False

    try:
        logger.info("Rendering %s on %s", outcome.intensity.label, outcome.terminal_target)
        if cfg.audio.enabled:
            sound = audio.celebration_to_sound(
                outcome.intensity,
                has_achievement=bool(outcome.achievements),
                leveled_up=outcome.leveled_up,
                streak_milestone=outcome.streak_milestone is not None,
            )
            if sound is not None:
                audio.play_sound(sound, cfg.audio)
        terminal.render(
            outcome.terminal_target,
            outcome.intensity,
            outcome.snapshot,
            outcome.achievement_name,
            cfg.visual,
        )
    except Exception:
        logger.debug("Celebration failed", exc_info=True)
    finally:
        coordinator.release(slot)
    return True
