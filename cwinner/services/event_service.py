"""
cwinner.services.event_service — Event Processing & State Mutation
===================================================================

Owns the one process-wide :class:`State` and :class:`SessionTracker`
behind a single mutex.  For each event the critical section:

1. Snapshots the previous command exit status
2. Decides the base intensity (pre-mutation state)
3. Awards XP and recomputes the level
4. Updates commit / streak / session / tool / exit-status counters
5. Applies the streak, session-duration and session-end upgrades
6. Evaluates and records newly unlocked achievements
7. Persists the state file

Rendering and audio never run while the lock is held; the caller gets an
:class:`EventOutcome` carrying a state snapshot for that purpose.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from cwinner.config import CelebrationConfig
from cwinner.constants import COMMAND_TOOLS
from cwinner.engine.achievements import REGISTRY, Achievement, check_achievements
from cwinner.engine.celebration import Intensity, decide, raise_to, xp_for_event
from cwinner.engine.events import Event, EventKind
from cwinner.engine.state import State
from cwinner.services.persistence import save_state
from cwinner.services.sessions import SessionTracker

logger = logging.getLogger(__name__)


@dataclass
class EventOutcome:
    """What the critical section decided for one event."""

    intensity: Intensity
    snapshot: State
    terminal_target: str = "/dev/null"
    xp_awarded: int = 0
    leveled_up: bool = False
    streak_milestone: int | None = None
    achievements: list[Achievement] = field(default_factory=list)

    @property
    def achievement_name(self) -> str | None:
        """Display name of the first newly unlocked achievement."""
        return self.achievements[0].name if self.achievements else None


class EventProcessor:
    """Single owned state container shared by every connection task.

    Thread-safe: all public methods serialize on one :class:`threading.Lock`,
    so they can be called from ``asyncio.to_thread`` workers.
    """

    def __init__(
        self,
        state: State,
        cfg: CelebrationConfig,
        *,
        state_file: str | Path | None = None,
        sessions: SessionTracker | None = None,
        persist: bool = True,
    ) -> None:
        self.cfg = cfg
        self.state_file = state_file
        self.persist = persist
        self._state = state
        self._sessions = sessions if sessions is not None else SessionTracker()
        self._lock = threading.Lock()
        self._persist_failing = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def process(
        self,
        event: Event,
        *,
        now: datetime | None = None,
        today: date | None = None,
    ) -> EventOutcome:
        """Apply *event* to the shared state and decide its celebration."""
        now = now or datetime.now(UTC)
        today = today or date.today()

        with self._lock:
            outcome = self._apply(event, now, today)
            self._save()

        logger.info(
            "event=%s tool=%s level=%s achievement=%s streak_milestone=%s",
            event.kind, event.tool, outcome.intensity.label,
            outcome.achievement_name, outcome.streak_milestone,
        )
        return outcome

    def _apply(self, event: Event, now: datetime, today: date) -> EventOutcome:
        state = self._state
        sessions = self._sessions
        cfg = self.cfg

        previous_exit = state.last_command_exit
        sessions.touch(event.session_id, now)

        # Base decision reads the pre-mutation state
        level = decide(event, state, cfg)

        xp = xp_for_event(level, state, cfg.xp)
        leveled_up = state.add_xp(xp) if xp > 0 else False

        streak_milestone = None
        if event.kind == EventKind.GIT_COMMIT:
            result = state.record_commit(today)
            sessions.record_commit(event.session_id, now)
            if result.streak_milestone is not None:
                streak_milestone = result.streak_milestone
                level = raise_to(level, Intensity.EPIC)

        if event.tool:
            state.record_tool_use(event.tool)

        if event.tool in COMMAND_TOOLS:
            if event.kind == EventKind.POST_TOOL_USE and event.exit_code is not None:
                state.last_command_exit = event.exit_code
            elif event.kind == EventKind.POST_TOOL_USE_FAILURE:
                state.last_command_exit = event.exit_code if event.exit_code else 1

        top_milestone = sessions.milestones[-1] if sessions.milestones else None
        for minutes in sessions.crossed_milestones(event.session_id, now):
            target = Intensity.EPIC if minutes == top_milestone else Intensity.MEDIUM
            logger.info("Session %s passed %d minutes", event.session_id, minutes)
            level = raise_to(level, target)

        if event.kind == EventKind.SESSION_END:
            state.sessions_total += 1
            ended = sessions.end(event.session_id)
            if ended is not None and ended.commits_in_session >= 1:
                level = raise_to(level, Intensity.EPIC)

        newly_unlocked = check_achievements(state, event, previous_exit)
        for achievement in newly_unlocked:
            state.unlock_achievement(achievement.id)

        state.last_event_at = now

        return EventOutcome(
            intensity=level,
            snapshot=state.snapshot(),
            terminal_target=event.terminal_target,
            xp_awarded=xp,
            leveled_up=leveled_up,
            streak_milestone=streak_milestone,
            achievements=newly_unlocked,
        )

    def _save(self) -> None:
        if not self.persist:
            return
        try:
            save_state(self._state, self.state_file)
        except OSError:
            if not self._persist_failing:
                logger.exception("Could not persist state — keeping it in memory")
            self._persist_failing = True
            return
        if self._persist_failing:
            logger.info("State persistence resumed")
            self._persist_failing = False

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------
    def snapshot(self) -> State:
        with self._lock:
            return self._state.snapshot()

    def status(self) -> dict[str, Any]:
        """Minimal liveness payload for the ``status`` command."""
        with self._lock:
            s = self._state
            return {
                "running": True,
                "xp": s.xp,
                "level": s.level,
                "level_name": s.level_name,
                "commit_streak_days": s.commit_streak_days,
                "commits_total": s.commits_total,
                "active_sessions": len(self._sessions),
            }

    def stats(self) -> dict[str, Any]:
        """Full durable state plus unlock status of every achievement."""
        with self._lock:
            data = self._state.to_dict()
            unlocked = set(self._state.achievements_unlocked)
        data["achievements"] = [
            {
                "id": a.id,
                "name": a.name,
                "description": a.description,
                "unlocked": a.id in unlocked,
            }
            for a in REGISTRY
        ]
        data["achievements_total"] = len(REGISTRY)
        return data
