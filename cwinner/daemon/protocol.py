"""
cwinner.daemon.protocol — Wire Models
======================================

One UTF-8 JSON document per connection, newline-terminated.  Two shapes:

* **command** — ``{"cmd": "status"}`` / ``{"cmd": "stats"}``; the daemon
  replies synchronously with a :class:`DaemonResponse`.
* **event** — ``{"event": "GitCommit", "tool": null, "session_id": "...",
  "tty_path": "/dev/pts/3", "metadata": {...}}``; fire-and-forget.

Unknown fields are ignored.  Anything that validates as neither shape is
rejected with :class:`ProtocolError`.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from cwinner.engine.events import Event, EventKind

__all__ = [
    "DaemonCommand",
    "DaemonResponse",
    "EventMessage",
    "ProtocolError",
    "StatsCommand",
    "StatusCommand",
    "parse_message",
]


class ProtocolError(ValueError):
    """Raised when a line is neither a valid command nor a valid event."""


class StatusCommand(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    cmd: Literal["status"]


class StatsCommand(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    cmd: Literal["stats"]


DaemonCommand = Annotated[StatusCommand | StatsCommand, Field(discriminator="cmd")]
_command_adapter: TypeAdapter[StatusCommand | StatsCommand] = TypeAdapter(DaemonCommand)


class EventMessage(BaseModel):
    """Inbound event as it appears on the wire."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    event: EventKind
    tool: str | None = None
    session_id: str
    tty_path: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_event(self) -> Event:
        """Extract typed fields; the open metadata map stops here."""
        return Event.from_metadata(
            self.event,
            self.session_id,
            terminal_target=self.tty_path,
            tool=self.tool,
            metadata=self.metadata,
        )


class DaemonResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    data: dict[str, Any] = Field(default_factory=dict)

    def to_line(self) -> bytes:
        return (self.model_dump_json() + "\n").encode("utf-8")


def parse_message(line: bytes | str) -> StatusCommand | StatsCommand | EventMessage:
    """Classify and validate one inbound line.

    Raises
    ------
    ProtocolError
        Malformed UTF-8 / JSON, or a document matching neither shape.
    """
    try:
        text = line.decode("utf-8") if isinstance(line, bytes) else line
        raw = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"not a JSON document: {exc}") from exc

    if not isinstance(raw, dict):
        raise ProtocolError("message must be a JSON object")

    try:
        if "cmd" in raw:
            return _command_adapter.validate_python(raw)
        return EventMessage.model_validate(raw)
    except ValidationError as exc:
        raise ProtocolError(str(exc)) from exc
