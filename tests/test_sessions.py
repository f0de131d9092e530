"""
tests/test_sessions.py — Unit Tests for the Session Tracker
============================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from cwinner.services.sessions import SessionTracker

T0 = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class TestLifecycle:
    def test_touch_creates_once(self):
        tracker = SessionTracker()
        first = tracker.touch("a", T0)
        again = tracker.touch("a", T0 + timedelta(minutes=5))
        assert first is again
        assert first.started_at == T0
        assert first.last_seen_at == T0 + timedelta(minutes=5)
        assert len(tracker) == 1

    def test_commits_counted_per_session(self):
        tracker = SessionTracker()
        tracker.record_commit("a", T0)
        assert tracker.record_commit("a", T0) == 2
        assert tracker.record_commit("b", T0) == 1

    def test_end_forgets_session(self):
        tracker = SessionTracker()
        tracker.record_commit("a", T0)
        info = tracker.end("a")
        assert info.commits_in_session == 1
        assert len(tracker) == 0
        assert tracker.end("a") is None


class TestDurationMilestones:
    def test_nothing_before_first_threshold(self):
        tracker = SessionTracker()
        tracker.touch("a", T0)
        assert tracker.crossed_milestones("a", T0 + timedelta(minutes=59)) == []

    def test_each_fires_once(self):
        tracker = SessionTracker()
        tracker.touch("a", T0)
        assert tracker.crossed_milestones("a", T0 + timedelta(minutes=61)) == [60]
        assert tracker.crossed_milestones("a", T0 + timedelta(minutes=90)) == []
        assert tracker.crossed_milestones("a", T0 + timedelta(minutes=181)) == [180]

    def test_gap_reports_all_crossed(self):
        tracker = SessionTracker()
        tracker.touch("a", T0)
        assert tracker.crossed_milestones("a", T0 + timedelta(hours=9)) == [60, 180, 480]

    def test_custom_milestones_sorted(self):
        tracker = SessionTracker(milestones=(30, 10))
        assert tracker.milestones == (10, 30)

    def test_unseen_session_starts_now(self):
        tracker = SessionTracker()
        assert tracker.crossed_milestones("new", T0) == []
        assert tracker.touch("new", T0 + timedelta(minutes=1)).started_at == T0


class TestIdleSessions:
    def test_abandoned_session_dropped_on_next_touch(self):
        tracker = SessionTracker()
        tracker.record_commit("crashed", T0)
        tracker.touch("live", T0 + timedelta(minutes=481))
        assert len(tracker) == 1
        assert tracker.end("crashed") is None

    def test_recently_seen_session_kept(self):
        tracker = SessionTracker()
        tracker.touch("a", T0)
        tracker.touch("a", T0 + timedelta(minutes=300))
        tracker.touch("b", T0 + timedelta(minutes=600))
        assert len(tracker) == 2

    def test_idle_limit_follows_top_milestone(self):
        assert SessionTracker(milestones=(10, 30)).idle_limit == timedelta(minutes=30)
        assert SessionTracker(idle_minutes=5).idle_limit == timedelta(minutes=5)

    def test_returning_session_not_dropped_by_its_own_touch(self):
        tracker = SessionTracker()
        tracker.record_commit("a", T0)
        assert tracker.record_commit("a", T0 + timedelta(hours=10)) == 2
