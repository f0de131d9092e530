"""
cwinner — Celebration Daemon for Coding-Agent Sessions
=======================================================
Receives lifecycle events from a tool-use environment (edits, commands,
task completions, git actions), keeps durable progress (XP, levels,
streaks, achievements) and decides per event whether and how loudly to
celebrate — without ever blocking the caller.

Package layout::

    cwinner/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level table, milestones, per-user paths
    ├── cli.py             # `cwinner` console entry point
    ├── client.py          # Socket client + hook payload translation
    ├── engine/
    │   ├── events.py      # EventKind + Event dataclass
    │   ├── state.py       # Durable State entity (XP, streaks, tools)
    │   ├── celebration.py # Intensity decision + upgrades + XP
    │   └── achievements.py # Static achievement registry + checker
    ├── services/
    │   ├── persistence.py # Atomic JSON state file
    │   ├── sessions.py    # Ephemeral per-session bookkeeping
    │   ├── event_service.py # The single state critical section
    │   ├── render.py      # Render lock + cooldown + celebrate()
    │   ├── terminal.py    # ANSI terminal effects
    │   ├── audio.py       # Sound selection + playback
    │   └── sounds.py      # Built-in WAV tones
    └── daemon/
        ├── protocol.py    # pydantic wire models
        ├── server.py      # asyncio unix-socket server
        └── __main__.py    # `python -m cwinner.daemon`
"""

__version__ = "0.1.0"
