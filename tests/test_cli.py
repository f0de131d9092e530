"""
tests/test_cli.py — Client Helpers and ``cwinner`` Subcommands
===============================================================

Hook payload translation, TTY detection against a fake ``/proc`` tree,
and the CLI commands with the daemon either mocked or absent.
"""

from __future__ import annotations

import io
import json
import os
from unittest.mock import patch

import pytest

from cwinner import cli
from cwinner.client import (
    DaemonUnavailable,
    build_hook_event,
    detect_tty,
    query,
    send_hook_event,
)
from cwinner.engine.events import EventKind
from cwinner.engine.state import State
from cwinner.services.persistence import save_state


# ---------------------------------------------------------------------------
# Hook payload translation
# ---------------------------------------------------------------------------
class TestBuildHookEvent:
    def test_post_tool_use_defaults_exit_zero(self):
        payload = {"tool_name": "Bash", "tool_input": {"command": "pytest -q"}}
        msg = build_hook_event(EventKind.POST_TOOL_USE, payload, tty_path="/dev/pts/1")
        assert msg == {
            "event": "PostToolUse",
            "tool": "Bash",
            "session_id": "unknown",
            "tty_path": "/dev/pts/1",
            "metadata": {"exit_code": 0, "command": "pytest -q"},
        }

    def test_explicit_exit_code_kept(self):
        payload = {"tool_name": "Bash", "tool_response": {"exit_code": 2}}
        msg = build_hook_event(EventKind.POST_TOOL_USE, payload, tty_path="/dev/null")
        assert msg["metadata"]["exit_code"] == 2

    def test_failure_without_exit_code(self):
        msg = build_hook_event(
            EventKind.POST_TOOL_USE_FAILURE, {"tool_name": "Bash"}, tty_path="/dev/null",
        )
        assert "exit_code" not in msg["metadata"]

    def test_session_from_env(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_SESSION_ID", "env-session")
        msg = build_hook_event(
            EventKind.SESSION_END, {"session_id": "payload-session"}, tty_path="/dev/null",
        )
        assert msg["session_id"] == "env-session"

    def test_session_from_payload(self):
        msg = build_hook_event(
            EventKind.SESSION_END, {"session_id": "payload-session"}, tty_path="/dev/null",
        )
        assert msg["session_id"] == "payload-session"

    def test_garbage_fields_ignored(self):
        payload = {"tool_name": 42, "tool_input": "rm -rf", "tool_response": []}
        msg = build_hook_event(EventKind.TASK_COMPLETED, payload, tty_path="/dev/null")
        assert msg["tool"] is None
        assert msg["metadata"] == {}


# ---------------------------------------------------------------------------
# TTY detection
# ---------------------------------------------------------------------------
def _fake_proc(root, pid: int, ppid: int, fds: dict[int, str]) -> None:
    proc_dir = root / str(pid)
    (proc_dir / "fd").mkdir(parents=True)
    (proc_dir / "stat").write_text(f"{pid} (some (odd) name) S {ppid} 1 1 0\n")
    for fd, target in fds.items():
        os.symlink(target, proc_dir / "fd" / str(fd))


class TestDetectTty:
    def test_walks_up_to_ancestor_with_pts(self, tmp_path):
        _fake_proc(tmp_path, 300, 200, {0: "pipe:[1]", 1: "/tmp/log"})
        _fake_proc(tmp_path, 200, 100, {0: "/dev/null"})
        _fake_proc(tmp_path, 100, 1, {2: "/dev/pts/7"})
        assert detect_tty(pid=300, proc=tmp_path) == "/dev/pts/7"

    def test_falls_back_when_no_pts(self, tmp_path):
        _fake_proc(tmp_path, 300, 1, {0: "/dev/null"})
        assert detect_tty(pid=300, proc=tmp_path) in ("/dev/tty", "/dev/null")

    def test_missing_proc(self, tmp_path):
        assert detect_tty(pid=1234, proc=tmp_path / "absent") in ("/dev/tty", "/dev/null")


# ---------------------------------------------------------------------------
# Socket client
# ---------------------------------------------------------------------------
class TestClient:
    def test_query_without_daemon(self, short_dir):
        with pytest.raises(DaemonUnavailable):
            query("status", path=short_dir / "missing.sock")

    def test_hook_event_starts_daemon_once(self, short_dir):
        path = short_dir / "missing.sock"
        with patch("cwinner.client.try_start_daemon", return_value=False) as start:
            assert send_hook_event({"event": "GitPush"}, path=path) is False
        start.assert_called_once()


# ---------------------------------------------------------------------------
# CLI commands
# ---------------------------------------------------------------------------
class TestCommands:
    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_status_falls_back_to_state_file(self, capsys):
        save_state(State(commits_total=3, commit_streak_days=2))
        assert cli.main(["status"]) == 0
        out = capsys.readouterr().out
        assert "not running" in out
        assert "Total commits: 3" in out

    def test_status_json_from_daemon(self, capsys):
        reply = {"ok": True, "data": {"running": True, "xp": 5}}
        with patch("cwinner.cli.query", return_value=reply):
            cli.main(["status", "--json"])
        assert json.loads(capsys.readouterr().out) == {"running": True, "xp": 5}

    def test_stats_lists_locked_and_unlocked(self, capsys):
        state = State(commits_total=1, achievements_unlocked=["first_commit"])
        state.add_xp(120)
        save_state(state)
        assert cli.main(["stats"]) == 0
        out = capsys.readouterr().out
        assert "Achievements (1/24):" in out
        assert "✓ First Commit" in out
        assert "Locked (23):" in out
        assert "→ 500" in out

    def test_statusline(self, capsys):
        state = State()
        state.add_xp(300)
        save_state(state)
        cli.main(["statusline"])
        out = capsys.readouterr().out
        assert out.startswith("⚡ Prompt Whisperer [")
        assert out.endswith("300 XP")

    def test_hook_sends_event(self, monkeypatch):
        payload = {"tool_name": "Bash", "tool_input": {"command": "make"}}
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(payload)))
        with patch("cwinner.cli.send_hook_event", return_value=True) as send, \
                patch("cwinner.cli.detect_tty", return_value="/dev/pts/2"):
            assert cli.main(["hook", "post-tool-use"]) == 0
        message = send.call_args.args[0]
        assert message["event"] == "PostToolUse"
        assert message["tty_path"] == "/dev/pts/2"
        assert message["metadata"]["command"] == "make"

    def test_hook_never_fails(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("not json"))
        with patch("cwinner.cli.send_hook_event", return_value=False), \
                patch("cwinner.cli.detect_tty", return_value="/dev/null"):
            assert cli.main(["hook", "session-end"]) == 0

    def test_sounds_extract_and_list(self, isolated_dirs, capsys):
        assert cli.main(["sounds", "extract"]) == 0
        assert (isolated_dirs / "config" / "sounds" / "default" / "epic.wav").exists()
        assert cli.main(["sounds"]) == 0
        assert "default" in capsys.readouterr().out
