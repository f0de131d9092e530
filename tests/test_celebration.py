"""
tests/test_celebration.py — Unit Tests for the Intensity Decision
==================================================================

Tests the pure decision pipeline (no I/O): custom triggers, breakthrough
detection, per-event-class intensities and XP awards.
"""

from __future__ import annotations

import pytest

from conftest import make_event

from cwinner.config import CelebrationConfig, CustomTrigger, IntensityConfig, XpConfig
from cwinner.engine.celebration import (
    Intensity,
    decide,
    raise_to,
    xp_for_event,
    xp_for_intensity,
)
from cwinner.engine.events import EventKind
from cwinner.engine.state import State


def _cfg(**intensity) -> CelebrationConfig:
    return CelebrationConfig(intensity=IntensityConfig(**intensity))


# ---------------------------------------------------------------------------
# Intensity ordering & parsing
# ---------------------------------------------------------------------------
class TestIntensity:
    def test_ordering(self):
        assert Intensity.OFF < Intensity.MINI < Intensity.MEDIUM < Intensity.EPIC

    @pytest.mark.parametrize("raw, expected", [
        ("off", Intensity.OFF),
        ("Mini", Intensity.MINI),
        (" MEDIUM ", Intensity.MEDIUM),
        ("epic", Intensity.EPIC),
        (False, Intensity.OFF),
        (Intensity.EPIC, Intensity.EPIC),
    ])
    def test_parse(self, raw, expected):
        assert Intensity.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["loud", 3, None, True])
    def test_parse_rejects(self, raw):
        with pytest.raises(ValueError):
            Intensity.parse(raw)

    def test_raise_to_never_lowers(self):
        assert raise_to(Intensity.MINI, Intensity.EPIC) is Intensity.EPIC
        assert raise_to(Intensity.EPIC, Intensity.MEDIUM) is Intensity.EPIC
        assert raise_to(Intensity.MEDIUM, Intensity.MEDIUM) is Intensity.MEDIUM


# ---------------------------------------------------------------------------
# Tool-use decisions
# ---------------------------------------------------------------------------
class TestToolUse:
    def test_successful_command_is_routine(self, cfg, state):
        event = make_event(tool="Bash", exit_code=0)
        assert decide(event, state, cfg) is Intensity.OFF
        assert decide(event, state, _cfg(routine=Intensity.MINI)) is Intensity.MINI

    def test_failed_command_is_off(self, state):
        event = make_event(tool="Bash", exit_code=2)
        assert decide(event, state, _cfg(routine=Intensity.MINI)) is Intensity.OFF

    def test_missing_exit_code_is_off(self, state):
        event = make_event(tool="Bash")
        assert decide(event, state, _cfg(routine=Intensity.MINI)) is Intensity.OFF

    def test_file_tools_are_routine(self, state):
        cfg = _cfg(routine=Intensity.MINI)
        for tool in ("Read", "Write", "Edit", "Glob"):
            assert decide(make_event(tool=tool), state, cfg) is Intensity.MINI

    def test_breakthrough_after_failure(self, cfg):
        state = State(last_command_exit=1)
        event = make_event(tool="Bash", exit_code=0)
        assert decide(event, state, cfg) is Intensity.EPIC

    def test_breakthrough_ignores_routine_setting(self):
        state = State(last_command_exit=127)
        cfg = _cfg(routine=Intensity.OFF, breakthrough=Intensity.MEDIUM)
        assert decide(make_event(tool="Bash", exit_code=0), state, cfg) is Intensity.MEDIUM

    def test_first_ever_success_is_not_breakthrough(self, cfg, state):
        assert state.last_command_exit is None
        assert decide(make_event(tool="Bash", exit_code=0), state, cfg) is Intensity.OFF

    def test_success_after_success_is_routine(self, cfg):
        state = State(last_command_exit=0)
        assert decide(make_event(tool="Bash", exit_code=0), state, cfg) is Intensity.OFF

    def test_non_command_tool_never_breakthrough(self, cfg):
        state = State(last_command_exit=1)
        assert decide(make_event(tool="Edit", exit_code=0), state, cfg) is Intensity.OFF

    def test_failure_event_is_off(self):
        cfg = _cfg(routine=Intensity.EPIC)
        event = make_event(EventKind.POST_TOOL_USE_FAILURE, tool="Bash", exit_code=1)
        assert decide(event, State(), cfg) is Intensity.OFF


# ---------------------------------------------------------------------------
# Custom triggers
# ---------------------------------------------------------------------------
class TestCustomTriggers:
    @pytest.fixture
    def cfg(self) -> CelebrationConfig:
        return CelebrationConfig(triggers=(
            CustomTrigger("deploy", "deploy --prod", Intensity.EPIC),
            CustomTrigger("tests", r"pytest\s+-x", Intensity.MEDIUM),
        ))

    def test_substring_match_overrides(self, cfg, state):
        event = make_event(tool="Bash", exit_code=0, command="make deploy --prod now")
        assert decide(event, state, cfg) is Intensity.EPIC

    def test_regex_match(self, cfg, state):
        event = make_event(tool="Bash", exit_code=0, command="pytest   -x tests/")
        assert decide(event, state, cfg) is Intensity.MEDIUM

    def test_override_wins_over_failure(self, cfg, state):
        event = make_event(tool="Bash", exit_code=1, command="deploy --prod")
        assert decide(event, state, cfg) is Intensity.EPIC

    def test_first_matching_trigger_wins(self, state):
        cfg = CelebrationConfig(triggers=(
            CustomTrigger("a", "git", Intensity.MINI),
            CustomTrigger("b", "git push", Intensity.EPIC),
        ))
        event = make_event(tool="Bash", exit_code=0, command="git push")
        assert decide(event, state, cfg) is Intensity.MINI

    def test_no_command_no_match(self, cfg, state):
        assert decide(make_event(tool="Bash", exit_code=0), state, cfg) is Intensity.OFF

    def test_invalid_regex_falls_back_to_substring(self):
        trigger = CustomTrigger("bad", "[oops", Intensity.EPIC)
        assert trigger.matches("echo [oops") is True
        assert trigger.matches("echo fine") is False

    def test_empty_pattern_never_matches(self):
        assert CustomTrigger("empty", "", Intensity.EPIC).matches("anything") is False


# ---------------------------------------------------------------------------
# Event classes
# ---------------------------------------------------------------------------
class TestEventClasses:
    @pytest.mark.parametrize("kind", [
        EventKind.TASK_COMPLETED, EventKind.GIT_COMMIT, EventKind.SESSION_END,
    ])
    def test_milestones(self, cfg, state, kind):
        assert decide(make_event(kind), state, cfg) is Intensity.MEDIUM

    def test_push_is_breakthrough(self, cfg, state):
        assert decide(make_event(EventKind.GIT_PUSH), state, cfg) is Intensity.EPIC

    def test_user_defined_is_routine(self, state):
        cfg = _cfg(routine=Intensity.MINI)
        assert decide(make_event(EventKind.USER_DEFINED), state, cfg) is Intensity.MINI

    def test_configured_milestone_respected(self, state):
        cfg = _cfg(milestone=Intensity.EPIC)
        assert decide(make_event(EventKind.GIT_COMMIT), state, cfg) is Intensity.EPIC


# ---------------------------------------------------------------------------
# XP
# ---------------------------------------------------------------------------
class TestXp:
    def test_xp_per_intensity(self):
        xp = XpConfig()
        assert [xp_for_intensity(i, xp) for i in Intensity] == [0, 5, 25, 100]

    def test_streak_bonus(self):
        xp = XpConfig()
        assert xp_for_event(Intensity.MEDIUM, State(commit_streak_days=4), xp) == 25
        assert xp_for_event(Intensity.MEDIUM, State(commit_streak_days=5), xp) == 50

    def test_no_bonus_on_zero(self):
        assert xp_for_event(Intensity.OFF, State(commit_streak_days=30), XpConfig()) == 0
