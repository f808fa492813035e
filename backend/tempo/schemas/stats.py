"""Practice statistics schemas."""

from typing import Optional

from pydantic import BaseModel

from tempo.schemas.practice import SessionResponse, StudentSummary


class PracticeStats(BaseModel):
    total_sessions: int = 0
    total_practice_time: int = 0  # seconds
    total_minutes: int = 0
    total_segments: int = 0
    analyzed_count: int = 0
    average_session_duration: int = 0  # seconds
    sessions_this_week: int = 0
    streak: int = 0  # consecutive practice days


class StudentStatsResponse(BaseModel):
    student: StudentSummary
    stats: PracticeStats
    sessions: list[SessionResponse]


class StreakResponse(BaseModel):
    student_id: str
    streak: int
    total_sessions: int


class SuggestionsResponse(BaseModel):
    student_id: str
    suggestions: str
    based_on_sessions: int
    generated_at: Optional[str] = None
