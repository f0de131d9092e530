"""
cwinner.engine.events — EventKind and Event
============================================

The universal event envelope.  Every hook invocation is normalized into an
:class:`Event` before the decision pipeline sees it.  The open metadata
map stays at the boundary; the few fields the engine reasons about
(``exit_code``, ``command``) are extracted into typed attributes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

__all__ = ["Event", "EventKind", "extract_command", "extract_exit_code"]


class EventKind(enum.StrEnum):
    """Closed set of lifecycle events accepted on the wire."""
    POST_TOOL_USE = "PostToolUse"
    POST_TOOL_USE_FAILURE = "PostToolUseFailure"
    TASK_COMPLETED = "TaskCompleted"
    SESSION_END = "SessionEnd"
    GIT_COMMIT = "GitCommit"
    GIT_PUSH = "GitPush"
    USER_DEFINED = "UserDefined"


# ---------------------------------------------------------------------------
# Metadata extraction
# ---------------------------------------------------------------------------
def extract_exit_code(metadata: dict[str, Any]) -> int | None:
    """Integer ``exit_code`` from *metadata*, or ``None`` when absent/invalid."""
    value = metadata.get("exit_code")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def extract_command(metadata: dict[str, Any]) -> str | None:
    value = metadata.get("command")
    return value if isinstance(value, str) else None


# ---------------------------------------------------------------------------
# Event: immutable, consumed once, never persisted
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Event:
    """Normalized event from the tool-use environment or git hooks."""

    kind: EventKind
    session_id: str
    terminal_target: str = "/dev/null"
    tool: str | None = None
    exit_code: int | None = None
    command: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_metadata(
        cls,
        kind: EventKind,
        session_id: str,
        *,
        terminal_target: str = "/dev/null",
        tool: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Event:
        """Build an Event, pulling the typed fields out of *metadata*."""
        meta = dict(metadata or {})
        return cls(
            kind=kind,
            session_id=session_id,
            terminal_target=terminal_target,
            tool=tool,
            exit_code=extract_exit_code(meta),
            command=extract_command(meta),
            metadata=meta,
        )
