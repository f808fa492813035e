"""SQLAlchemy ORM models."""

from tempo.models.user import User, UserRole
from tempo.models.piece import Piece
from tempo.models.practice_session import PracticeSession, SessionStatus
from tempo.models.practice_segment import PracticeSegment, SegmentType
from tempo.models.practice_analysis import PracticeAnalysis

__all__ = [
    "User",
    "UserRole",
    "Piece",
    "PracticeSession",
    "SessionStatus",
    "PracticeSegment",
    "SegmentType",
    "PracticeAnalysis",
]
