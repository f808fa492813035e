"""Teachers router — recent practice across a teacher's students."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tempo.config import settings
from tempo.database import get_db
from tempo.middleware.auth import require_teacher
from tempo.models.practice_session import PracticeSession, SessionStatus
from tempo.models.user import User
from tempo.schemas.practice import SessionListResponse, session_to_response
from tempo.services.practice_service import session_load_options

router = APIRouter(prefix="/api/teachers", tags=["teachers"])


@router.get("/sessions", response_model=SessionListResponse)
def list_recent_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Most recent completed sessions from all of the teacher's students."""
    sessions = (
        db.query(PracticeSession)
        .join(User, PracticeSession.student_id == User.id)
        .options(*session_load_options())
        .filter(
            User.teacher_id == current_user.id,
            PracticeSession.status == SessionStatus.COMPLETED.value,
        )
        .order_by(PracticeSession.created_at.desc())
        .limit(settings.TEACHER_SESSIONS_LIMIT)
        .all()
    )
    return SessionListResponse(sessions=[session_to_response(s) for s in sessions])
