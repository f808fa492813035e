"""Tests for practice statistics and streaks (unit-level, no DB dependency)."""

import pytest
import sys
import os
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tempo.services.practice_stats import (
    aggregate,
    compute_streak,
    session_duration,
    to_practice_day,
)

UTC = timezone.utc
NOW = datetime(2024, 5, 10, 12, 0, tzinfo=UTC)
TODAY = date(2024, 5, 10)


def _segment(duration=60, analysis=None):
    return SimpleNamespace(duration=duration, analysis=analysis)


def _session(when, total_duration=None, segments=None, analysis=None, created_at=None):
    return SimpleNamespace(
        date=when,
        created_at=created_at or when,
        total_duration=total_duration,
        segments=segments or [],
        analysis=analysis,
    )


class TestSessionDuration:
    """Per-session duration with segment fallback."""

    def test_total_duration_wins(self):
        s = _session(NOW, total_duration=500, segments=[_segment(60)])
        assert session_duration(s) == 500

    def test_zero_total_is_not_a_fallback(self):
        s = _session(NOW, total_duration=0, segments=[_segment(60)])
        assert session_duration(s) == 0

    def test_falls_back_to_segment_sum(self):
        s = _session(NOW, segments=[_segment(60), _segment(90)])
        assert session_duration(s) == 150

    def test_missing_segment_durations_count_as_zero(self):
        s = _session(NOW, segments=[_segment(None), _segment(45)])
        assert session_duration(s) == 45

    def test_no_segments_no_total(self):
        assert session_duration(_session(NOW)) == 0


class TestStreak:
    """Consecutive practice days ending today or yesterday."""

    def _days_ago(self, *days):
        return [NOW - timedelta(days=d) for d in days]

    def test_empty(self):
        assert compute_streak([], TODAY, UTC) == 0

    def test_today_only(self):
        assert compute_streak(self._days_ago(0), TODAY, UTC) == 1

    def test_three_consecutive_days(self):
        assert compute_streak(self._days_ago(0, 1, 2), TODAY, UTC) == 3

    def test_yesterday_keeps_streak_alive(self):
        assert compute_streak(self._days_ago(1, 2), TODAY, UTC) == 2

    def test_two_days_ago_breaks_streak(self):
        assert compute_streak(self._days_ago(2, 3, 4), TODAY, UTC) == 0

    def test_gap_stops_counting(self):
        assert compute_streak(self._days_ago(0, 2, 3), TODAY, UTC) == 1

    def test_same_day_counts_once(self):
        timestamps = [NOW, NOW - timedelta(hours=3), NOW - timedelta(hours=6)]
        assert compute_streak(timestamps, TODAY, UTC) == 1

    def test_order_does_not_matter(self):
        assert compute_streak(self._days_ago(2, 0, 1), TODAY, UTC) == 3

    def test_none_timestamps_ignored(self):
        assert compute_streak([None, NOW], TODAY, UTC) == 1

    def test_naive_timestamps_are_utc(self):
        naive = datetime(2024, 5, 10, 1, 0)
        assert to_practice_day(naive, UTC) == TODAY
        assert compute_streak([naive], TODAY, UTC) == 1

    def test_days_bucketed_in_given_zone(self):
        """23:30 UTC on the 9th is already the 10th two hours east."""
        late = datetime(2024, 5, 9, 23, 30, tzinfo=UTC)
        plus_two = timezone(timedelta(hours=2))
        today = date(2024, 5, 11)
        assert compute_streak([late], today, plus_two) == 1
        assert compute_streak([late], today, UTC) == 0


class TestAggregate:
    """Summary statistics over a student's sessions."""

    def test_two_session_scenario(self):
        sessions = [
            _session(NOW - timedelta(hours=1), total_duration=600),
            _session(NOW - timedelta(days=8), total_duration=300),
        ]
        stats = aggregate(sessions, now=NOW, tz=UTC)
        assert stats.total_sessions == 2
        assert stats.total_practice_time == 900
        assert stats.total_minutes == 15
        assert stats.sessions_this_week == 1
        assert stats.streak == 1
        assert stats.average_session_duration == 450

    def test_no_sessions(self):
        stats = aggregate([], now=NOW, tz=UTC)
        assert stats.total_sessions == 0
        assert stats.total_practice_time == 0
        assert stats.average_session_duration == 0
        assert stats.streak == 0

    def test_average_uses_floor_division(self):
        sessions = [_session(NOW, total_duration=100), _session(NOW, total_duration=101)]
        assert aggregate(sessions, now=NOW, tz=UTC).average_session_duration == 100

    def test_minutes_floor(self):
        assert aggregate([_session(NOW, total_duration=119)], now=NOW, tz=UTC).total_minutes == 1

    def test_segment_fallback_per_session(self):
        sessions = [
            _session(NOW, total_duration=None, segments=[_segment(120), _segment(30)]),
            _session(NOW, total_duration=50, segments=[_segment(999)]),
        ]
        stats = aggregate(sessions, now=NOW, tz=UTC)
        assert stats.total_practice_time == 200
        assert stats.total_segments == 3

    def test_week_window_is_inclusive_of_start(self):
        sessions = [
            _session(NOW - timedelta(days=7)),
            _session(NOW - timedelta(days=7, seconds=1)),
            _session(NOW + timedelta(seconds=1)),
        ]
        assert aggregate(sessions, now=NOW, tz=UTC).sessions_this_week == 1

    def test_analysis_granularity(self):
        sessions = [
            _session(NOW, analysis=object(), segments=[_segment(analysis=object()), _segment()]),
            _session(NOW, segments=[_segment(analysis=object()), _segment(analysis=object())]),
        ]
        assert aggregate(sessions, now=NOW, tz=UTC).analyzed_count == 1
        assert aggregate(sessions, now=NOW, tz=UTC, analysis_granularity="segment").analyzed_count == 3

    def test_timestamp_field_selects_bucket(self):
        sessions = [_session(NOW - timedelta(days=20), created_at=NOW)]
        assert aggregate(sessions, now=NOW, tz=UTC).sessions_this_week == 0
        by_created = aggregate(sessions, now=NOW, tz=UTC, timestamp_field="created_at")
        assert by_created.sessions_this_week == 1
        assert by_created.streak == 1

    def test_idempotent(self):
        sessions = [
            _session(NOW - timedelta(days=d), total_duration=60 * d) for d in range(5)
        ]
        assert aggregate(sessions, now=NOW, tz=UTC) == aggregate(sessions, now=NOW, tz=UTC)

    def test_naive_now_treated_as_utc(self):
        sessions = [_session(NOW - timedelta(hours=1), total_duration=60)]
        naive_now = NOW.replace(tzinfo=None)
        assert aggregate(sessions, now=naive_now, tz=UTC) == aggregate(sessions, now=NOW, tz=UTC)

    @pytest.mark.parametrize("field", ["date", "created_at"])
    def test_accepts_generators(self, field):
        gen = (_session(NOW, total_duration=30) for _ in range(3))
        stats = aggregate(gen, now=NOW, tz=UTC, timestamp_field=field)
        assert stats.total_sessions == 3
        assert stats.total_practice_time == 90
