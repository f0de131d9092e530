"""
cwinner.client — Socket Client & Hook Translation
==================================================

Everything a short-lived ``cwinner`` invocation needs to talk to the daemon:

- :func:`build_hook_event` turns a tool-host hook payload (JSON on stdin)
  into a wire event message.
- :func:`detect_tty` finds the terminal the session runs in, climbing the
  process tree because hook processes have their standard fds redirected.
- :func:`send_message` / :func:`query` write one JSON line to the socket.
- :func:`try_start_daemon` spawns a detached daemon when none is listening.

Failures here are never fatal to the caller: a hook must not break the tool
that triggered it.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import Any

from cwinner.constants import socket_path
from cwinner.engine.events import EventKind

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 1.0
DAEMON_START_WAIT_SECONDS = 1.0
DAEMON_START_POLL_SECONDS = 0.05
MAX_TTY_WALK = 10

# CLI spelling → wire event kind
HOOK_EVENTS: dict[str, EventKind] = {
    "post-tool-use": EventKind.POST_TOOL_USE,
    "post-tool-use-failure": EventKind.POST_TOOL_USE_FAILURE,
    "task-completed": EventKind.TASK_COMPLETED,
    "session-end": EventKind.SESSION_END,
    "git-commit": EventKind.GIT_COMMIT,
    "git-push": EventKind.GIT_PUSH,
    "user-defined": EventKind.USER_DEFINED,
}


class DaemonUnavailable(ConnectionError):
    """The daemon socket could not be reached."""


# ---------------------------------------------------------------------------
# Hook payload → event message
# ---------------------------------------------------------------------------
def _payload_exit_code(payload: dict[str, Any]) -> int | None:
    response = payload.get("tool_response")
    if not isinstance(response, dict):
        return None
    value = response.get("exit_code")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def build_hook_event(
    kind: EventKind,
    payload: dict[str, Any],
    *,
    tty_path: str,
    session_id: str | None = None,
) -> dict[str, Any]:
    """Wire message for one hook invocation.

    A successful ``PostToolUse`` payload usually carries no exit status
    (failures arrive as ``PostToolUseFailure``), so it defaults to 0.
    """
    tool = payload.get("tool_name")
    if not isinstance(tool, str):
        tool = None

    metadata: dict[str, Any] = {}
    exit_code = _payload_exit_code(payload)
    if exit_code is None and kind == EventKind.POST_TOOL_USE:
        exit_code = 0
    if exit_code is not None:
        metadata["exit_code"] = exit_code

    tool_input = payload.get("tool_input")
    if isinstance(tool_input, dict) and isinstance(tool_input.get("command"), str):
        metadata["command"] = tool_input["command"]

    if session_id is None:
        session_id = os.getenv("CLAUDE_SESSION_ID") or payload.get("session_id") or "unknown"

    return {
        "event": kind.value,
        "tool": tool,
        "session_id": str(session_id),
        "tty_path": tty_path,
        "metadata": metadata,
    }


# ---------------------------------------------------------------------------
# TTY detection
# ---------------------------------------------------------------------------
def _parent_pid(pid: str, proc: Path) -> str | None:
    try:
        stat = (proc / pid / "stat").read_text()
    except OSError:
        return None
    # The command name may contain spaces or parens; fields resume after ") ".
    fields = stat.rsplit(") ", 1)[-1].split()
    return fields[1] if len(fields) > 1 else None


def detect_tty(*, pid: int | None = None, proc: str | Path = "/proc") -> str:
    """Terminal device of the nearest ancestor with one, else a fallback."""
    proc = Path(proc)
    current = str(pid if pid is not None else os.getpid())
    if proc.is_dir():
        for _ in range(MAX_TTY_WALK):
            for fd in (0, 1, 2):
                try:
                    target = os.readlink(proc / current / "fd" / str(fd))
                except OSError:
                    continue
                if target.startswith("/dev/pts/"):
                    return target
            parent = _parent_pid(current, proc)
            if parent is None or parent in ("0", "1") or parent == current:
                break
            current = parent

    if os.path.exists("/dev/tty"):
        return "/dev/tty"
    return "/dev/null"


# ---------------------------------------------------------------------------
# Socket I/O
# ---------------------------------------------------------------------------
def _connect(path: Path, timeout: float) -> socket.socket:
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(str(path))
    except OSError as exc:
        sock.close()
        raise DaemonUnavailable(f"cannot connect to {path}: {exc}") from exc
    return sock


def send_message(
    message: dict[str, Any],
    *,
    path: str | Path | None = None,
    timeout: float = CONNECT_TIMEOUT_SECONDS,
) -> None:
    """Fire-and-forget: write one JSON line and close."""
    target = Path(path) if path is not None else socket_path()
    line = (json.dumps(message) + "\n").encode("utf-8")
    with _connect(target, timeout) as sock:
        sock.sendall(line)


def query(
    cmd: str,
    *,
    path: str | Path | None = None,
    timeout: float = CONNECT_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """Send ``{"cmd": cmd}`` and return the decoded reply.

    Raises
    ------
    DaemonUnavailable
        Socket missing, refused, or the daemon closed without replying.
    """
    target = Path(path) if path is not None else socket_path()
    with _connect(target, timeout) as sock:
        sock.sendall((json.dumps({"cmd": cmd}) + "\n").encode("utf-8"))
        chunks: list[bytes] = []
        try:
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
                if chunk.endswith(b"\n"):
                    break
        except OSError as exc:
            raise DaemonUnavailable(f"no reply from {target}: {exc}") from exc

    raw = b"".join(chunks).strip()
    if not raw:
        raise DaemonUnavailable(f"daemon at {target} closed without replying")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DaemonUnavailable(f"unreadable reply from {target}") from exc


def try_start_daemon(path: str | Path | None = None) -> bool:
    """Spawn ``python -m cwinner.daemon`` detached and wait for its socket."""
    target = Path(path) if path is not None else socket_path()
    try:
        subprocess.Popen(
            [sys.executable, "-m", "cwinner.daemon"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError:
        logger.debug("Failed to spawn daemon", exc_info=True)
        return False

    deadline = time.monotonic() + DAEMON_START_WAIT_SECONDS
    while time.monotonic() < deadline:
        time.sleep(DAEMON_START_POLL_SECONDS)
        try:
            with _connect(target, DAEMON_START_POLL_SECONDS):
                return True
        except DaemonUnavailable:
            continue
    return False


def send_hook_event(message: dict[str, Any], *, path: str | Path | None = None) -> bool:
    """Deliver *message*, starting the daemon once if it is not listening."""
    try:
        send_message(message, path=path)
        return True
    except DaemonUnavailable:
        logger.debug("Daemon not reachable, trying to start it")

    if not try_start_daemon(path):
        return False
    try:
        send_message(message, path=path)
    except DaemonUnavailable:
        return False
    return True
