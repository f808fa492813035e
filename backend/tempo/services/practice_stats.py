"""Practice statistics and streak calculation.

Pure reductions over a single student's already-fetched practice sessions.
Callers decide which sessions to pass in (usually COMPLETED ones) and which
timestamp to bucket on; nothing here filters or queries.

Usage:
    from tempo.services.practice_stats import aggregate

    stats = aggregate(sessions, analysis_granularity="segment")
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from tempo.schemas.stats import PracticeStats

WEEK = timedelta(days=7)


def as_utc(ts: datetime) -> datetime:
    # Stored timestamps come back naive from SQLite; they are written in UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def to_practice_day(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of ``ts`` in ``tz`` (system local zone when None)."""
    return as_utc(ts).astimezone(tz).date()


def session_duration(session) -> int:
    """Seconds practiced in one session.

    ``total_duration`` wins when set; otherwise the segment durations are
    summed. Missing numbers count as zero.
    """
    if session.total_duration is not None:
        return session.total_duration
    return sum(seg.duration or 0 for seg in (session.segments or []))


def compute_streak(timestamps: Iterable[datetime], today: date, tz: Optional[tzinfo] = None) -> int:
    """Count consecutive practice days ending today, or yesterday.

    A day without practice today does not break the streak yet: counting
    starts from yesterday instead. Anything older than yesterday yields 0.
    """
    practice_days = {to_practice_day(ts, tz) for ts in timestamps if ts is not None}
    if not practice_days:
        return 0

    cursor = today
    if cursor not in practice_days:
        cursor -= timedelta(days=1)

    streak = 0
    while cursor in practice_days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def aggregate(
    sessions,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    timestamp_field: str = "date",
    analysis_granularity: str = "session",
) -> PracticeStats:
    """Reduce a student's sessions into summary statistics.

    Args:
        sessions:             practice sessions of one student, segments loaded.
        now:                  reference instant (defaults to current UTC time).
        tz:                   zone used to bucket calendar days.
        timestamp_field:      "date" or "created_at"; used for the weekly count
                              and the streak.
        analysis_granularity: "session" counts analyzed sessions, "segment"
                              counts analyzed segments.
    """
    sessions = list(sessions)
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    week_start = now - WEEK

    timestamps = [getattr(s, timestamp_field) for s in sessions]
    total_sessions = len(sessions)
    total_practice_time = sum(session_duration(s) for s in sessions)
    total_segments = sum(len(s.segments or []) for s in sessions)

    if analysis_granularity == "segment":
        analyzed_count = sum(
            1 for s in sessions for seg in (s.segments or []) if seg.analysis is not None
        )
    else:
        analyzed_count = sum(1 for s in sessions if s.analysis is not None)

    sessions_this_week = sum(
        1 for ts in timestamps if ts is not None and week_start <= as_utc(ts) <= now
    )

    return PracticeStats(
        total_sessions=total_sessions,
        total_practice_time=total_practice_time,
        total_minutes=total_practice_time // 60,
        total_segments=total_segments,
        analyzed_count=analyzed_count,
        average_session_duration=total_practice_time // total_sessions if total_sessions > 0 else 0,
        sessions_this_week=sessions_this_week,
        streak=compute_streak(timestamps, to_practice_day(now, tz), tz),
    )
