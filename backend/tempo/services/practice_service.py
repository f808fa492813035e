"""Practice service — lookups and queries shared by the routers."""

from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from tempo.models.piece import Piece
from tempo.models.practice_segment import PracticeSegment
from tempo.models.practice_session import PracticeSession, SessionStatus
from tempo.models.user import User, UserRole


def session_load_options() -> tuple:
    """Eager loads needed to render a session with its segments."""
    return (
        selectinload(PracticeSession.student),
        selectinload(PracticeSession.analysis),
        selectinload(PracticeSession.segments).selectinload(PracticeSegment.piece),
        selectinload(PracticeSession.segments).selectinload(PracticeSegment.analysis),
    )


def load_session(db: Session, session_id: str) -> PracticeSession:
    session = (
        db.query(PracticeSession)
        .options(*session_load_options())
        .filter(PracticeSession.id == session_id)
        .first()
    )
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def load_segment(db: Session, segment_id: str) -> PracticeSegment:
    segment = db.query(PracticeSegment).filter(PracticeSegment.id == segment_id).first()
    if not segment:
        raise HTTPException(status_code=404, detail="Segment not found")
    return segment


def load_student(db: Session, student_id: str) -> User:
    student = (
        db.query(User)
        .filter(User.id == student_id, User.role == UserRole.STUDENT.value)
        .first()
    )
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def load_piece(db: Session, piece_id: str) -> Piece:
    piece = db.query(Piece).filter(Piece.id == piece_id).first()
    if not piece:
        raise HTTPException(status_code=404, detail="Piece not found")
    return piece


def active_session_for(db: Session, student_id: str) -> Optional[PracticeSession]:
    return (
        db.query(PracticeSession)
        .filter(
            PracticeSession.student_id == student_id,
            PracticeSession.status == SessionStatus.ACTIVE.value,
        )
        .order_by(PracticeSession.date.desc())
        .first()
    )


def completed_sessions_for(db: Session, student_id: str, limit: Optional[int] = None) -> list[PracticeSession]:
    """A student's COMPLETED sessions, newest first, with segments loaded.

    This is the input set for statistics and streaks.
    """
    query = (
        db.query(PracticeSession)
        .options(*session_load_options())
        .filter(
            PracticeSession.student_id == student_id,
            PracticeSession.status == SessionStatus.COMPLETED.value,
        )
        .order_by(PracticeSession.date.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()
