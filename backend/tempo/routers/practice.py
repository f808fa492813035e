"""Practice router — recording sessions, segments, teacher feedback and audio."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tempo.config import settings
from tempo.database import get_db
from tempo.middleware.auth import get_current_user, require_student, require_teacher
from tempo.models.practice_segment import PracticeSegment
from tempo.models.practice_session import PracticeSession, SessionStatus
from tempo.models.user import User, UserRole
from tempo.schemas.auth import MessageResponse
from tempo.schemas.practice import (
    SegmentCreate,
    SegmentFeedbackRequest,
    SegmentResponse,
    SessionCreate,
    SessionFeedbackRequest,
    SessionListResponse,
    SessionResponse,
    StartSessionResponse,
    segment_to_response,
    session_to_response,
)
from tempo.schemas.stats import SuggestionsResponse
from tempo.services.access import (
    Action,
    require_segment_access,
    require_session_access,
    require_student_management,
)
from tempo.services.audio_storage import (
    decode_audio_payload,
    delete_audio,
    feedback_audio_path,
    read_audio,
    save_audio,
    segment_audio_path,
    session_audio_path,
)
from tempo.services.practice_analysis import get_practice_suggestions
from tempo.services.practice_service import (
    active_session_for,
    completed_sessions_for,
    load_piece,
    load_segment,
    load_session,
    load_student,
    session_load_options,
)
from tempo.services.practice_stats import session_duration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/practice", tags=["practice"])


def _decode_or_400(data: str) -> bytes:
    try:
        return decode_audio_payload(data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _store_feedback_audio(target_id: str, data: Optional[str], file_name: Optional[str]) -> Optional[str]:
    if not data:
        return None
    return await save_audio(_decode_or_400(data), feedback_audio_path(target_id, file_name))


async def _commit_or_discard(db: Session, *audio_refs: Optional[str]) -> None:
    """Commit; on failure remove the audio stored for this request and re-raise."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        for ref in filter(None, audio_refs):
            await delete_audio(ref)
        raise


async def _discard_replaced(old_ref: Optional[str], new_ref: Optional[str]) -> None:
    # Local feedback files are overwritten in place and keep the same ref
    if old_ref and old_ref != new_ref:
        await delete_audio(old_ref)


def _resolve_student(db: Session, caller: User, student_id: Optional[str]) -> User:
    """Students act on themselves; teachers must name one of their students."""
    if caller.role == UserRole.TEACHER.value:
        if not student_id:
            raise HTTPException(status_code=400, detail="student_id is required for teachers")
        student = load_student(db, student_id)
        require_student_management(caller, student)
        return student
    return caller


# ── Segmented sessions ───────────────────────────────────────────────────────

@router.post("/session/start", response_model=StartSessionResponse, status_code=201)
def start_session(
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Start a practice session, or return the one already in progress."""
    active = active_session_for(db, current_user.id)
    if active:
        response.status_code = 200
        return StartSessionResponse(session_id=active.id, message="Active session found")

    session = PracticeSession(
        student_id=current_user.id,
        status=SessionStatus.ACTIVE.value,
        total_duration=0,
        date=datetime.now(timezone.utc),
    )
    db.add(session)
    db.commit()
    return StartSessionResponse(session_id=session.id, message="Practice session started")


@router.get("/session/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """A session with its segments in recording order."""
    session = load_session(db, session_id)
    require_session_access(current_user, session, detail="Not authorized to view this session")
    return session_to_response(session)


@router.patch("/session/{session_id}/end", response_model=SessionResponse)
def end_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    session = load_session(db, session_id)
    require_session_access(current_user, session, Action.OWNER_WRITE, detail="Not authorized to end this session")
    if session.status == SessionStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Session is already completed")

    session.status = SessionStatus.COMPLETED.value
    session.total_duration = sum(seg.duration or 0 for seg in session.segments)
    db.commit()
    db.refresh(session)
    return session_to_response(session)


@router.post("/session/{session_id}/segment", response_model=SegmentResponse, status_code=201)
async def add_segment(
    session_id: str,
    req: SegmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Upload one recorded segment into an active session."""
    session = load_session(db, session_id)
    require_session_access(
        current_user, session, Action.OWNER_WRITE, detail="Not authorized to add segments to this session"
    )
    if session.status != SessionStatus.ACTIVE.value:
        raise HTTPException(status_code=400, detail="Session is not active")

    if req.piece_id:
        piece = load_piece(db, req.piece_id)
        if piece.student_id != current_user.id:
            raise HTTPException(status_code=404, detail="Piece not found")

    audio = _decode_or_400(req.audio_data)
    audio_url = await save_audio(audio, segment_audio_path(current_user.id, session.id, req.file_name))

    segment = PracticeSegment(
        session_id=session.id,
        piece_id=req.piece_id or None,
        title=req.title,
        type=req.type.value,
        notes=req.notes,
        audio_url=audio_url,
        duration=req.duration,
        metronome_bpm=req.metronome_bpm,
        reference_video_url=str(req.reference_video_url) if req.reference_video_url else None,
        recorded_at=datetime.now(timezone.utc),
    )
    db.add(segment)
    session.total_duration = (session.total_duration or 0) + req.duration
    await _commit_or_discard(db, audio_url)
    db.refresh(segment)
    return segment_to_response(segment)


# ── Single-recording sessions ────────────────────────────────────────────────

@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_recorded_session(
    req: SessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Upload a complete practice recording as one finished session."""
    audio = _decode_or_400(req.audio_data)
    session_id = str(uuid.uuid4())
    audio_path = await save_audio(audio, session_audio_path(current_user.id, session_id, req.file_name))

    now = datetime.now(timezone.utc)
    session = PracticeSession(
        id=session_id,
        student_id=current_user.id,
        title=req.title,
        description=req.description,
        date=now,
        status=SessionStatus.COMPLETED.value,
        total_duration=req.duration,
        audio_file_path=audio_path,
        audio_file_size=len(audio),
    )
    db.add(session)
    await _commit_or_discard(db, audio_path)
    return session_to_response(load_session(db, session_id))


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(
    student_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Students see their own sessions; teachers one student's or the latest across all."""
    query = db.query(PracticeSession).options(*session_load_options())

    if current_user.role == UserRole.TEACHER.value and not student_id:
        query = (
            query.join(User, PracticeSession.student_id == User.id)
            .filter(User.teacher_id == current_user.id)
            .order_by(PracticeSession.created_at.desc())
            .limit(settings.RECENT_SESSIONS_LIMIT)
        )
    else:
        student = _resolve_student(db, current_user, student_id)
        query = query.filter(PracticeSession.student_id == student.id).order_by(PracticeSession.created_at.desc())

    return SessionListResponse(sessions=[session_to_response(s) for s in query.all()])


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_recorded_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = load_session(db, session_id)
    require_session_access(current_user, session, detail="Not authorized to view this session")
    return session_to_response(session)


@router.delete("/sessions/{session_id}", response_model=MessageResponse)
async def delete_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The owning student or their teacher may delete a session."""
    session = load_session(db, session_id)
    require_session_access(current_user, session, detail="Not authorized to delete this session")

    audio_refs = [session.audio_file_path, session.teacher_feedback_audio]
    for segment in session.segments:
        audio_refs.extend([segment.audio_url, segment.teacher_feedback_audio])

    db.delete(session)
    db.commit()

    # The row is gone either way; leftover files are only logged
    for ref in filter(None, audio_refs):
        await delete_audio(ref)

    return MessageResponse(message="Session deleted successfully")


@router.post("/sessions/{session_id}/feedback", response_model=SessionResponse)
async def give_session_feedback(
    session_id: str,
    req: SessionFeedbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    if not req.feedback and not req.audio_data:
        raise HTTPException(status_code=400, detail="Please provide either text or audio feedback")

    session = load_session(db, session_id)
    require_session_access(
        current_user, session, Action.SUPERVISOR_WRITE, detail="Not authorized to give feedback on this session"
    )

    old_audio = session.teacher_feedback_audio
    new_audio = await _store_feedback_audio(session.id, req.audio_data, req.file_name)
    session.teacher_feedback = req.feedback or None
    session.teacher_feedback_audio = new_audio
    session.teacher_feedback_at = datetime.now(timezone.utc)
    await _commit_or_discard(db, new_audio if new_audio != old_audio else None)
    await _discard_replaced(old_audio, new_audio)
    db.refresh(session)
    return session_to_response(session)


@router.get("/sessions/{session_id}/audio")
async def stream_session_audio(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = load_session(db, session_id)
    require_session_access(current_user, session, detail="Not authorized to access this audio")
    if not session.audio_file_path:
        raise HTTPException(status_code=404, detail="Audio file not found")

    data, content_type = await read_audio(session.audio_file_path)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Accept-Ranges": "bytes", "Cache-Control": "private, max-age=3600"},
    )


# ── Segment feedback ─────────────────────────────────────────────────────────

@router.post("/segments/{segment_id}/feedback", response_model=SegmentResponse)
async def give_segment_feedback(
    segment_id: str,
    req: SegmentFeedbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    if not req.text_feedback and not req.audio_feedback_data:
        raise HTTPException(status_code=400, detail="Please provide either text or audio feedback")

    segment = load_segment(db, segment_id)
    require_segment_access(
        current_user, segment, Action.SUPERVISOR_WRITE, detail="Not authorized to give feedback on this segment"
    )

    old_audio = segment.teacher_feedback_audio
    new_audio = await _store_feedback_audio(segment.id, req.audio_feedback_data, req.audio_feedback_file_name)
    segment.teacher_feedback_text = req.text_feedback or None
    segment.teacher_feedback_audio = new_audio
    segment.teacher_feedback_at = datetime.now(timezone.utc)
    await _commit_or_discard(db, new_audio if new_audio != old_audio else None)
    await _discard_replaced(old_audio, new_audio)
    db.refresh(segment)
    return segment_to_response(segment)


# ── Suggestions ──────────────────────────────────────────────────────────────

@router.get("/suggestions", response_model=SuggestionsResponse)
async def practice_suggestions(
    student_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """AI suggestions based on the student's most recent completed sessions."""
    student = _resolve_student(db, current_user, student_id)
    sessions = completed_sessions_for(db, student.id, limit=settings.SUGGESTION_SESSIONS)
    text = await get_practice_suggestions(
        [{"title": s.title or "Practice session", "duration": session_duration(s)} for s in sessions]
    )
    return SuggestionsResponse(
        student_id=student.id,
        suggestions=text,
        based_on_sessions=len(sessions),
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
