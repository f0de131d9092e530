"""
cwinner.services.sessions — Ephemeral Session Tracker
======================================================

Per-session bookkeeping that is deliberately never persisted: when the
session started, how many commits it saw and which duration milestones
have already been celebrated.  A daemon restart forgets sessions but not
progress.  Sessions whose producer vanished without a ``SessionEnd`` are
dropped once they have been idle longer than the top duration milestone.

Not thread-safe on its own; callers hold the event-processing lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from cwinner.constants import SESSION_MILESTONES_MINUTES

logger = logging.getLogger(__name__)


@dataclass
class SessionInfo:
    started_at: datetime
    last_seen_at: datetime | None = None
    commits_in_session: int = 0
    duration_milestones_fired: set[int] = field(default_factory=set)


class SessionTracker:
    """Map of ``session_id`` → :class:`SessionInfo`."""

    def __init__(
        self,
        milestones: tuple[int, ...] = SESSION_MILESTONES_MINUTES,
        *,
        idle_minutes: int | None = None,
    ) -> None:
        self.milestones = tuple(sorted(milestones))
        if idle_minutes is None:
            idle_minutes = max(self.milestones, default=max(SESSION_MILESTONES_MINUTES))
        self.idle_limit = timedelta(minutes=idle_minutes)
        self._sessions: dict[str, SessionInfo] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def touch(self, session_id: str, now: datetime) -> SessionInfo:
        """Return the session, creating it on first sight.

        Other sessions idle past :attr:`idle_limit` are forgotten.
        """
        self._prune_idle(session_id, now)
        info = self._sessions.get(session_id)
        if info is None:
            info = SessionInfo(started_at=now)
            self._sessions[session_id] = info
            logger.debug("Session %s started", session_id)
        info.last_seen_at = now
        return info

    def _prune_idle(self, keep: str, now: datetime) -> None:
        stale = [
            sid for sid, info in self._sessions.items()
            if sid != keep and now - (info.last_seen_at or info.started_at) > self.idle_limit
        ]
        for sid in stale:
            del self._sessions[sid]
            logger.debug("Session %s dropped after idling past %s", sid, self.idle_limit)

    def record_commit(self, session_id: str, now: datetime) -> int:
        """Count a commit for the session.  Returns the session's total."""
        info = self.touch(session_id, now)
        info.commits_in_session += 1
        return info.commits_in_session

    def crossed_milestones(self, session_id: str, now: datetime) -> list[int]:
        """Duration milestones (minutes) reached for the first time at *now*.

        Each milestone is reported at most once per session.
        """
        info = self.touch(session_id, now)
        elapsed_minutes = (now - info.started_at).total_seconds() / 60
        crossed = [
            m for m in self.milestones
            if elapsed_minutes >= m and m not in info.duration_milestones_fired
        ]
        info.duration_milestones_fired.update(crossed)
        return crossed

    def end(self, session_id: str) -> SessionInfo | None:
        """Forget the session and return its final info (None if unseen)."""
        info = self._sessions.pop(session_id, None)
        if info is not None:
            logger.debug(
                "Session %s ended after %d commit(s)", session_id, info.commits_in_session,
            )
        return info
