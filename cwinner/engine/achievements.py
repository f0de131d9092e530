"""
cwinner.engine.achievements — Achievement Check Pipeline
=========================================================

Static, ordered registry of achievements.  Each entry pairs display data
with a pure predicate that receives an :class:`AchievementContext`.
Registry order is the tie-break: the first newly unlocked entry labels
the event's celebration.

This module is pure calculation with no I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from cwinner.constants import COMMAND_TOOLS
from cwinner.engine.events import Event, EventKind
from cwinner.engine.state import State

logger = logging.getLogger(__name__)

__all__ = [
    "REGISTRY",
    "Achievement",
    "AchievementContext",
    "check_achievements",
]


# ---------------------------------------------------------------------------
# Achievement Context: passed to every predicate
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AchievementContext:
    """Inputs to a predicate.

    Parameters
    ----------
    state : Progress state *after* this event's counters were applied.
    event : The event being processed.
    previous_exit : ``last_command_exit`` as it was *before* this event.
    """

    state: State
    event: Event
    previous_exit: int | None = None


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    name: str
    description: str
    predicate: Callable[[AchievementContext], bool]


# ---------------------------------------------------------------------------
# Predicate builders
# ---------------------------------------------------------------------------
def _commits(n: int) -> Callable[[AchievementContext], bool]:
    return lambda ctx: ctx.state.commits_total >= n


def _streak(n: int) -> Callable[[AchievementContext], bool]:
    return lambda ctx: ctx.state.commit_streak_days >= n


def _level(n: int) -> Callable[[AchievementContext], bool]:
    return lambda ctx: ctx.state.level >= n


def _tool_count(n: int) -> Callable[[AchievementContext], bool]:
    return lambda ctx: len(ctx.state.tools_used) >= n


def _used(tool: str) -> Callable[[AchievementContext], bool]:
    return lambda ctx: tool in ctx.state.tools_used


def _used_prefix(prefix: str) -> Callable[[AchievementContext], bool]:
    return lambda ctx: any(t.startswith(prefix) for t in ctx.state.tools_used)


def _first_push(ctx: AchievementContext) -> bool:
    return ctx.event.kind == EventKind.GIT_PUSH


def _recovered(ctx: AchievementContext) -> bool:
    """A command tool succeeded right after one that failed."""
    return (
        ctx.event.kind == EventKind.POST_TOOL_USE
        and ctx.event.tool in COMMAND_TOOLS
        and ctx.event.exit_code == 0
        and ctx.previous_exit is not None
        and ctx.previous_exit != 0
    )


# ---------------------------------------------------------------------------
# Registry: fixed order
# ---------------------------------------------------------------------------
REGISTRY: tuple[Achievement, ...] = (
    # Commits
    Achievement("first_commit", "First Commit", "Made your first git commit", _commits(1)),
    Achievement("commit_10", "Getting Committed", "10 commits total", _commits(10)),
    Achievement("commit_50", "Commit Machine", "50 commits total", _commits(50)),
    Achievement("commit_100", "Centurion", "100 commits total", _commits(100)),
    # Streaks
    Achievement("streak_5", "On a Roll", "5-day commit streak", _streak(5)),
    Achievement("streak_10", "Unstoppable", "10-day commit streak", _streak(10)),
    Achievement("streak_25", "Dedicated", "25-day commit streak", _streak(25)),
    # Push
    Achievement("first_push", "Shipped It", "First git push", _first_push),
    # Breakthrough
    Achievement("test_whisperer", "Test Whisperer", "Fixed a failing bash command", _recovered),
    # Tools
    Achievement("tool_explorer", "Tool Explorer", "Used 5 different tools", _tool_count(5)),
    Achievement("tool_master", "Tool Master", "Used 10 different tools", _tool_count(10)),
    # Levels
    Achievement("level_2", "Prompt Whisperer", "Reached level 2", _level(2)),
    Achievement("level_3", "Vibe Architect", "Reached level 3", _level(3)),
    Achievement("level_4", "Flow State Master", "Reached level 4", _level(4)),
    Achievement("level_5", "Claude Sensei", "Reached level 5", _level(5)),
    # Agent basics
    Achievement("first_subagent", "Delegator", "Spawned a subagent with Task tool", _used("Task")),
    Achievement("web_surfer", "Web Surfer", "Used WebSearch", _used("WebSearch")),
    Achievement("researcher", "Deep Researcher", "Used WebFetch", _used("WebFetch")),
    Achievement("mcp_pioneer", "MCP Pioneer", "Used an MCP tool", _used_prefix("mcp__")),
    # Agent advanced
    Achievement("notebook_scientist", "Data Scientist", "Used NotebookEdit", _used("NotebookEdit")),
    Achievement("todo_master", "Organized", "Used TodoWrite", _used("TodoWrite")),
    Achievement("first_skill", "Skilled Up", "Invoked a skill or slash command", _used("Skill")),
    Achievement("first_team", "Team Player", "Created an agent team", _used("TeamCreate")),
    Achievement(
        "team_communicator", "Team Lead", "Sent a message to a teammate", _used("SendMessage"),
    ),
)


# ---------------------------------------------------------------------------
# Main check function
# ---------------------------------------------------------------------------
def check_achievements(
    state: State,
    event: Event,
    previous_exit: int | None = None,
) -> list[Achievement]:
    """Return achievements newly earned by *event*, in registry order.

    Parameters
    ----------
    state : State after this event's counters (XP, commits, tools, exit
        status) were applied, but before any unlock was written.
    event : The event being processed.
    previous_exit : Command exit status recorded before this event.

    Already-unlocked achievements are never returned again.
    """
    ctx = AchievementContext(state=state, event=event, previous_exit=previous_exit)
    already = set(state.achievements_unlocked)
    newly_earned: list[Achievement] = []

    for achievement in REGISTRY:
        if achievement.id in already:
            continue
        if achievement.predicate(ctx):
            newly_earned.append(achievement)
            logger.info("Achievement triggered: %s (%s)", achievement.name, achievement.id)

    return newly_earned
