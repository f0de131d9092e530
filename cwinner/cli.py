"""
cwinner.cli — ``cwinner`` Console Entry Point
==============================================

Subcommands::

    cwinner daemon                 run the daemon in the foreground
    cwinner status                 level, XP and streak (daemon or state file)
    cwinner stats                  full progress plus the achievement list
    cwinner statusline             one-line XP bar for a status bar
    cwinner hook <event>           forward a hook payload from stdin
    cwinner sounds list|extract    inspect / write the built-in sound pack

``status`` and ``stats`` ask the running daemon first and fall back to
reading the state file directly when it is not reachable.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from cwinner import __version__
from cwinner.client import (
    HOOK_EVENTS,
    DaemonUnavailable,
    build_hook_event,
    detect_tty,
    query,
    send_hook_event,
)
from cwinner.config import CelebrationConfig
from cwinner.constants import level_threshold, sounds_dir, xp_bar, xp_progress
from cwinner.services.event_service import EventProcessor
from cwinner.services.persistence import load_state

logger = logging.getLogger(__name__)

STATS_BAR_WIDTH = 20
STATUSLINE_BAR_WIDTH = 8


# ---------------------------------------------------------------------------
# Data sources
# ---------------------------------------------------------------------------
def _offline_processor() -> EventProcessor:
    return EventProcessor(load_state(), CelebrationConfig(), persist=False)


def _fetch(cmd: str) -> tuple[dict[str, Any], bool]:
    """``(data, live)`` — from the daemon if reachable, else the state file."""
    try:
        reply = query(cmd)
    except DaemonUnavailable:
        reply = None
    if reply and reply.get("ok"):
        return reply.get("data", {}), True

    processor = _offline_processor()
    data = processor.status() if cmd == "status" else processor.stats()
    if cmd == "status":
        data["running"] = False
    return data, False


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def cmd_daemon(args: argparse.Namespace) -> int:
    from cwinner.daemon.__main__ import main as daemon_main

    daemon_main()
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    data, live = _fetch("status")
    if args.json:
        print(json.dumps(data, indent=2))
        return 0
    print("cwinner status:")
    print(f"  Daemon: {'running' if live else 'not running'}")
    print(f"  Level:  {data['level']} ({data['level_name']})")
    print(f"  XP:     {data['xp']}")
    print(f"  Streak: {data['commit_streak_days']} days")
    print(f"  Total commits: {data['commits_total']}")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    data, _ = _fetch("stats")
    if args.json:
        print(json.dumps(data, indent=2))
        return 0

    level, xp = data["level"], data["xp"]
    earned, span = xp_progress(level, xp)
    bar = xp_bar(earned, span, STATS_BAR_WIDTH)
    next_xp = level_threshold(level + 1)

    print("Stats:")
    if next_xp is None:
        print(f"  XP:      {xp} [{bar}] MAX")
    else:
        print(f"  XP:      {xp} [{bar}] → {next_xp}")
    print(f"  Level:   {level} — {data['level_name']}")
    print(f"  Commits: {data['commits_total']} │ Streak: {data['commit_streak_days']} days")
    print(f"  Sessions: {data.get('sessions_total', 0)}")
    print(f"  Tools used: {len(data.get('tools_used', []))}")
    print()

    achievements = data.get("achievements", [])
    unlocked = [a for a in achievements if a["unlocked"]]
    locked = [a for a in achievements if not a["unlocked"]]
    if not unlocked:
        print("Achievements: none yet")
    else:
        print(f"Achievements ({len(unlocked)}/{data.get('achievements_total', len(achievements))}):")
        for a in unlocked:
            print(f"  ✓ {a['name']} — {a['description']}")
    if locked:
        print()
        print(f"Locked ({len(locked)}):")
        for a in locked:
            print(f"  ○ {a['name']} — {a['description']}")
    return 0


def cmd_statusline(args: argparse.Namespace) -> int:
    state = load_state()
    earned, span = xp_progress(state.level, state.xp)
    bar = xp_bar(earned, span, STATUSLINE_BAR_WIDTH)
    suffix = " MAX" if level_threshold(state.level + 1) is None else ""
    sys.stdout.write(f"⚡ {state.level_name} [{bar}] {state.xp} XP{suffix}")
    return 0


def cmd_hook(args: argparse.Namespace) -> int:
    raw = sys.stdin.read()
    try:
        payload = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    message = build_hook_event(HOOK_EVENTS[args.event], payload, tty_path=detect_tty())
    if not send_hook_event(message):
        logger.debug("Hook event %s dropped, daemon unavailable", args.event)
    # A hook never fails its caller.
    return 0


def cmd_sounds(args: argparse.Namespace) -> int:
    from cwinner.services.audio import SoundKind, detect_player
    from cwinner.services.sounds import extract_all_sounds

    if args.sounds_cmd == "extract":
        dest = sounds_dir() / args.pack
        written = extract_all_sounds(dest)
        print(f"Wrote {len(written)} sound(s) to {dest}")
        return 0

    base = sounds_dir()
    packs = sorted(p.name for p in base.iterdir() if p.is_dir()) if base.is_dir() else []
    if packs:
        print(f"Sound packs in {base}:")
        for name in packs:
            print(f"  {name}")
    else:
        print(f"No sound packs in {base} (built-in tones are used)")
    print(f"Sound kinds: {', '.join(k.value for k in SoundKind)}")
    print(f"Player: {detect_player() or 'none found'}")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cwinner", description="cwinner: celebrations for coding-agent sessions",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("daemon", help="Run the daemon in the foreground")

    status_parser = subparsers.add_parser("status", help="Show level, XP and streak")
    status_parser.add_argument("--json", action="store_true", help="Raw JSON output")

    stats_parser = subparsers.add_parser("stats", help="Show progress and achievements")
    stats_parser.add_argument("--json", action="store_true", help="Raw JSON output")

    subparsers.add_parser("statusline", help="Print a one-line XP bar")

    hook_parser = subparsers.add_parser("hook", help="Forward a hook payload from stdin")
    hook_parser.add_argument("event", choices=sorted(HOOK_EVENTS), help="Hook event")

    sounds_parser = subparsers.add_parser("sounds", help="Sound pack utilities")
    sounds_sub = sounds_parser.add_subparsers(dest="sounds_cmd")
    sounds_sub.add_parser("list", help="List installed sound packs")
    extract_parser = sounds_sub.add_parser("extract", help="Write the built-in tones")
    extract_parser.add_argument("--pack", default="default", help="Target pack name")

    return parser


COMMANDS = {
    "daemon": cmd_daemon,
    "status": cmd_status,
    "stats": cmd_stats,
    "statusline": cmd_statusline,
    "hook": cmd_hook,
    "sounds": cmd_sounds,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1
    if args.command == "sounds" and args.sounds_cmd is None:
        args.sounds_cmd = "list"
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
