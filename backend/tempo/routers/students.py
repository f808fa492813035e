"""Students router — roster, invites, statistics and streaks."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from tempo.config import settings
from tempo.database import get_db
from tempo.middleware.auth import (
    create_access_token,
    generate_invite_token,
    get_current_user,
    hash_password,
    require_teacher,
    set_auth_cookie,
)
from tempo.middleware.rate_limit import limiter
from tempo.models.practice_session import PracticeSession
from tempo.models.user import User, UserRole
from tempo.schemas.auth import AuthResponse, MessageResponse, user_to_response
from tempo.schemas.practice import session_to_response, student_to_summary
from tempo.schemas.stats import StreakResponse, StudentStatsResponse
from tempo.schemas.students import (
    AcceptInviteRequest,
    InvitedStudent,
    InviteInfoResponse,
    InviteResponse,
    InviteStudentRequest,
    RosterEntry,
    RosterResponse,
)
from tempo.services.access import require_student_management
from tempo.services.audio_storage import delete_audio
from tempo.services.practice_service import completed_sessions_for, load_student
from tempo.services.practice_stats import aggregate, as_utc, compute_streak, to_practice_day

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/students", tags=["students"])


def _pending_invite_or_error(db: Session, token: str) -> User:
    """Resolve an invite token to its not-yet-activated student."""
    user = db.query(User).filter(User.invite_token == token).first()
    if not user:
        raise HTTPException(status_code=404, detail="Invalid or expired invite token")
    if user.invite_expires_at and as_utc(user.invite_expires_at) < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=410,
            detail="This invite has expired. Please request a new one from your teacher.",
        )
    if user.password_hash:
        raise HTTPException(
            status_code=409,
            detail="This invite has already been accepted. Please login instead.",
        )
    return user


@router.get("", response_model=RosterResponse)
def list_students(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """List the current teacher's students with their session counts."""
    rows = (
        db.query(User, func.count(PracticeSession.id))
        .outerjoin(PracticeSession, PracticeSession.student_id == User.id)
        .filter(User.teacher_id == current_user.id)
        .group_by(User.id)
        .order_by(User.created_at.desc())
        .all()
    )
    return RosterResponse(
        students=[
            RosterEntry(
                id=s.id,
                email=s.email,
                name=s.name,
                created_at=s.created_at.isoformat(),
                invite_pending=s.is_invite_pending,
                session_count=count,
            )
            for s, count in rows
        ]
    )


@router.post("/invite", response_model=InviteResponse, status_code=201)
def invite_student(
    req: InviteStudentRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Create a pending student account and return its invite link."""
    email = req.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    invite_token = generate_invite_token()
    expires_at = datetime.now(timezone.utc) + timedelta(days=settings.INVITE_EXPIRE_DAYS)
    student = User(
        email=email,
        name=req.name,
        role=UserRole.STUDENT.value,
        teacher_id=current_user.id,
        invite_token=invite_token,
        invite_expires_at=expires_at,
        password_hash="",  # set when the student accepts
    )
    db.add(student)
    db.commit()
    db.refresh(student)

    app_url = settings.APP_URL or request.headers.get("origin") or str(request.base_url)
    return InviteResponse(
        student=InvitedStudent(id=student.id, email=student.email, name=student.name),
        invite_url=f"{app_url.rstrip('/')}/invite/{invite_token}",
        invite_token=invite_token,
        expires_at=expires_at.isoformat(),
    )


@router.get("/invite-info", response_model=InviteInfoResponse)
def invite_info(token: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """Public: show who an invite is for before it is accepted."""
    user = _pending_invite_or_error(db, token)
    return InviteInfoResponse(name=user.name, email=user.email)


@router.post("/accept-invite", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def accept_invite(
    request: Request,
    req: AcceptInviteRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    """Public: set a password for an invited student and log them in."""
    user = _pending_invite_or_error(db, req.token)

    user.password_hash = hash_password(req.password)
    user.invite_token = None
    user.invite_expires_at = None
    db.commit()
    db.refresh(user)

    token = create_access_token(user)
    set_auth_cookie(response, token)
    return AuthResponse(user=user_to_response(user), token=token, message="Account activated successfully")


@router.get("/streak", response_model=StreakResponse)
def get_streak(
    student_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Current practice streak.

    Students always get their own; teachers must name one of their students.
    Counted over COMPLETED sessions by session ``date``, like the stats view.
    """
    if current_user.role == UserRole.TEACHER.value:
        if not student_id:
            raise HTTPException(status_code=400, detail="student_id is required for teachers")
        student = load_student(db, student_id)
        require_student_management(current_user, student)
    else:
        student = current_user

    sessions = completed_sessions_for(db, student.id)
    today = to_practice_day(datetime.now(timezone.utc))
    return StreakResponse(
        student_id=student.id,
        streak=compute_streak((s.date for s in sessions), today),
        total_sessions=len(sessions),
    )


@router.get("/{student_id}/stats", response_model=StudentStatsResponse)
def get_student_stats(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Aggregated practice statistics for one of the teacher's students.

    Input set: the student's COMPLETED sessions; weekly count and streak are
    bucketed on session ``date``; analyzed count is per segment.
    """
    student = load_student(db, student_id)
    require_student_management(current_user, student)

    sessions = completed_sessions_for(db, student.id)
    stats = aggregate(sessions, timestamp_field="date", analysis_granularity="segment")

    return StudentStatsResponse(
        student=student_to_summary(student),
        stats=stats,
        sessions=[session_to_response(s) for s in sessions],
    )


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Remove a student; their sessions, segments, pieces and analyses go too."""
    student = load_student(db, student_id)
    require_student_management(current_user, student)

    audio_refs = []
    for session in student.practice_sessions:
        audio_refs.extend([session.audio_file_path, session.teacher_feedback_audio])
        for segment in session.segments:
            audio_refs.extend([segment.audio_url, segment.teacher_feedback_audio])

    db.delete(student)
    db.commit()

    for ref in filter(None, audio_refs):
        await delete_audio(ref)
    logger.info("Teacher %s removed student %s", current_user.id, student_id)

    return MessageResponse(message="Student removed successfully")
