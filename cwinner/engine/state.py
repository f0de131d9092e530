"""
cwinner.engine.state — Durable Progress State
==============================================

The singleton progress record: XP, level, commit streak, unlocked
achievements, tools used and the last observed command exit status.

Pure in-memory behaviour only.  Loading and saving live in
:mod:`cwinner.services.persistence`; mutation happens exclusively inside
the critical section of :class:`cwinner.services.event_service.EventProcessor`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from cwinner.constants import LEVELS, STREAK_MILESTONES, level_for_xp

__all__ = ["CommitResult", "State"]


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of :meth:`State.record_commit`."""

    first_today: bool
    streak_milestone: int | None = None  # set when the streak just landed on one


@dataclass
class State:
    """Cumulative progress.  ``level``/``level_name`` are caches of ``xp``."""

    xp: int = 0
    level: int = 1
    level_name: str = LEVELS[0][1]
    commits_total: int = 0
    commit_streak_days: int = 0
    last_commit_date: date | None = None
    sessions_total: int = 0
    achievements_unlocked: list[str] = field(default_factory=list)
    tools_used: set[str] = field(default_factory=set)
    last_event_at: datetime | None = None
    last_command_exit: int | None = None

    # ------------------------------------------------------------------
    # XP / level
    # ------------------------------------------------------------------
    def add_xp(self, amount: int) -> bool:
        """Add *amount* XP and recompute the level.  Returns True on level-up."""
        if amount < 0:
            raise ValueError("XP never decreases")
        old_level = self.level
        self.xp += amount
        self.level, self.level_name = level_for_xp(self.xp)
        return self.level > old_level

    # ------------------------------------------------------------------
    # Commits / streak
    # ------------------------------------------------------------------
    def record_commit(self, today: date | None = None) -> CommitResult:
        """Count a commit and advance the daily streak.

        * previous commit yesterday → streak + 1
        * previous commit today     → streak unchanged
        * gap of 2+ days or none    → streak reset to 1
        """
        today = today or date.today()
        self.commits_total += 1

        first_today = self.last_commit_date != today
        old_streak = self.commit_streak_days
        if first_today:
            if self.last_commit_date == today - timedelta(days=1):
                self.commit_streak_days += 1
            else:
                self.commit_streak_days = 1
            self.last_commit_date = today

        milestone = None
        if self.commit_streak_days != old_streak and self.commit_streak_days in STREAK_MILESTONES:
            milestone = self.commit_streak_days
        return CommitResult(first_today=first_today, streak_milestone=milestone)

    # ------------------------------------------------------------------
    # Tools / achievements
    # ------------------------------------------------------------------
    def record_tool_use(self, tool: str) -> bool:
        """Add *tool* to the used set.  Returns True when it is new."""
        if tool in self.tools_used:
            return False
        self.tools_used.add(tool)
        return True

    def unlock_achievement(self, achievement_id: str) -> bool:
        """Append *achievement_id* once.  Returns True when newly unlocked."""
        if achievement_id in self.achievements_unlocked:
            return False
        self.achievements_unlocked.append(achievement_id)
        return True

    def snapshot(self) -> State:
        """Deep copy, safe to hand to a render thread."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # JSON mapping
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "xp": self.xp,
            "level": self.level,
            "level_name": self.level_name,
            "commits_total": self.commits_total,
            "commit_streak_days": self.commit_streak_days,
            "last_commit_date": (
                self.last_commit_date.isoformat() if self.last_commit_date else None
            ),
            "sessions_total": self.sessions_total,
            "achievements_unlocked": list(self.achievements_unlocked),
            "tools_used": sorted(self.tools_used),
            "last_event_at": self.last_event_at.isoformat() if self.last_event_at else None,
            "last_command_exit": self.last_command_exit,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> State:
        """Rebuild a State from :meth:`to_dict` output.

        ``level`` is re-derived from ``xp`` rather than trusted.
        Raises ``ValueError``/``TypeError`` on a malformed document.
        """
        if not isinstance(raw, dict):
            raise TypeError("state document must be a JSON object")

        xp = int(raw.get("xp", 0))
        if xp < 0:
            raise ValueError("negative xp")
        level, level_name = level_for_xp(xp)

        unlocked: list[str] = []
        for achievement_id in raw.get("achievements_unlocked") or []:
            if str(achievement_id) not in unlocked:
                unlocked.append(str(achievement_id))

        last_commit = raw.get("last_commit_date")
        last_event = raw.get("last_event_at")
        last_exit = raw.get("last_command_exit")

        return cls(
            xp=xp,
            level=level,
            level_name=level_name,
            commits_total=int(raw.get("commits_total", 0)),
            commit_streak_days=int(raw.get("commit_streak_days", 0)),
            last_commit_date=date.fromisoformat(last_commit) if last_commit else None,
            sessions_total=int(raw.get("sessions_total", 0)),
            achievements_unlocked=unlocked,
            tools_used={str(t) for t in raw.get("tools_used") or []},
            last_event_at=datetime.fromisoformat(last_event) if last_event else None,
            last_command_exit=int(last_exit) if last_exit is not None else None,
        )
