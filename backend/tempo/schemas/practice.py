"""Practice session, segment, piece and analysis schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, HttpUrl

from tempo.models.practice_segment import SegmentType


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ── AI analysis ──────────────────────────────────────────────────────────────

class PieceIdentified(BaseModel):
    name: str
    composer: Optional[str] = None
    duration: int = 0  # seconds
    time_spent: str = ""  # human-readable m:ss


class TimeBreakdown(BaseModel):
    warmup: Optional[int] = None
    technique: Optional[int] = None
    scales: Optional[int] = None
    repertoire: Optional[int] = None
    sight_reading: Optional[int] = None
    other: Optional[int] = None


class Suggestion(BaseModel):
    timestamp: Optional[str] = None
    issue: str
    suggestion: str
    priority: Literal["high", "medium", "low"] = "medium"


class AnalysisResult(BaseModel):
    overall_feedback: str = "Great practice session!"
    pieces_identified: list[PieceIdentified] = []
    time_breakdown: TimeBreakdown = TimeBreakdown()
    suggestions: list[Suggestion] = []
    strengths: list[str] = ["Completed practice session"]
    areas_for_improvement: list[str] = []
    overall_score: int = 7


class AnalysisResponse(AnalysisResult):
    id: str
    session_id: Optional[str] = None
    segment_id: Optional[str] = None
    created_at: str


# ── Pieces ───────────────────────────────────────────────────────────────────

class PieceCreate(BaseModel):
    name: str = Field(min_length=1)
    composer: Optional[str] = None
    difficulty: Optional[str] = None
    target_bpm: Optional[int] = Field(default=None, gt=0)
    default_reference_video_url: Optional[HttpUrl] = None
    notes: Optional[str] = None


class PieceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    composer: Optional[str] = None
    difficulty: Optional[str] = None
    target_bpm: Optional[int] = Field(default=None, gt=0)
    default_reference_video_url: Optional[HttpUrl] = None
    notes: Optional[str] = None


class PieceSummary(BaseModel):
    id: str
    name: str
    composer: Optional[str] = None


class PieceResponse(PieceSummary):
    student_id: str
    difficulty: Optional[str] = None
    target_bpm: Optional[int] = None
    default_reference_video_url: Optional[str] = None
    notes: Optional[str] = None
    date_started: str


class PieceListResponse(BaseModel):
    pieces: list[PieceResponse]


# ── Segments ─────────────────────────────────────────────────────────────────

class SegmentCreate(BaseModel):
    title: str = Field(min_length=1)
    type: SegmentType
    piece_id: Optional[str] = None
    notes: Optional[str] = None
    audio_data: str  # base64, optionally a data: URL
    file_name: str
    duration: int = Field(gt=0)
    metronome_bpm: Optional[int] = Field(default=None, gt=0)
    reference_video_url: Optional[HttpUrl] = None


class SegmentFeedbackRequest(BaseModel):
    text_feedback: Optional[str] = None
    audio_feedback_data: Optional[str] = None
    audio_feedback_file_name: Optional[str] = None


class SegmentResponse(BaseModel):
    id: str
    session_id: str
    piece: Optional[PieceSummary] = None
    title: str
    type: str
    notes: Optional[str] = None
    audio_url: str
    duration: int
    metronome_bpm: Optional[int] = None
    reference_video_url: Optional[str] = None
    recorded_at: str
    teacher_feedback_text: Optional[str] = None
    teacher_feedback_audio: Optional[str] = None
    teacher_feedback_at: Optional[str] = None
    analysis: Optional[AnalysisResponse] = None


# ── Sessions ─────────────────────────────────────────────────────────────────

class SessionCreate(BaseModel):
    """Single-recording session uploaded in one request."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    duration: int = Field(ge=1)
    audio_data: str
    file_name: str


class SessionFeedbackRequest(BaseModel):
    feedback: Optional[str] = None
    audio_data: Optional[str] = None
    file_name: Optional[str] = None


class StartSessionResponse(BaseModel):
    session_id: str
    message: str


class StudentSummary(BaseModel):
    id: str
    name: str
    email: str
    created_at: Optional[str] = None


class SessionResponse(BaseModel):
    id: str
    student_id: str
    student: Optional[StudentSummary] = None
    title: Optional[str] = None
    description: Optional[str] = None
    date: str
    status: str
    total_duration: int
    audio_file_path: Optional[str] = None
    audio_file_size: Optional[int] = None
    teacher_feedback: Optional[str] = None
    teacher_feedback_audio: Optional[str] = None
    teacher_feedback_at: Optional[str] = None
    created_at: str
    analysis: Optional[AnalysisResponse] = None
    segments: list[SegmentResponse] = []


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]


# ── ORM → response converters ────────────────────────────────────────────────

def analysis_to_response(analysis) -> Optional[AnalysisResponse]:
    if analysis is None:
        return None
    return AnalysisResponse(
        id=analysis.id,
        session_id=analysis.session_id,
        segment_id=analysis.segment_id,
        overall_feedback=analysis.overall_feedback,
        pieces_identified=analysis.pieces_identified or [],
        time_breakdown=analysis.time_breakdown or {},
        suggestions=analysis.suggestions or [],
        strengths=analysis.strengths or [],
        areas_for_improvement=analysis.areas_for_improvement or [],
        overall_score=analysis.overall_score,
        created_at=analysis.created_at.isoformat(),
    )


def piece_to_response(piece) -> PieceResponse:
    return PieceResponse(
        id=piece.id,
        student_id=piece.student_id,
        name=piece.name,
        composer=piece.composer,
        difficulty=piece.difficulty,
        target_bpm=piece.target_bpm,
        default_reference_video_url=piece.default_reference_video_url,
        notes=piece.notes,
        date_started=piece.date_started.isoformat(),
    )


def segment_to_response(segment) -> SegmentResponse:
    piece = segment.piece
    return SegmentResponse(
        id=segment.id,
        session_id=segment.session_id,
        piece=PieceSummary(id=piece.id, name=piece.name, composer=piece.composer) if piece else None,
        title=segment.title,
        type=segment.type,
        notes=segment.notes,
        audio_url=segment.audio_url,
        duration=segment.duration,
        metronome_bpm=segment.metronome_bpm,
        reference_video_url=segment.reference_video_url,
        recorded_at=segment.recorded_at.isoformat(),
        teacher_feedback_text=segment.teacher_feedback_text,
        teacher_feedback_audio=segment.teacher_feedback_audio,
        teacher_feedback_at=_iso(segment.teacher_feedback_at),
        analysis=analysis_to_response(segment.analysis),
    )


def student_to_summary(student) -> StudentSummary:
    return StudentSummary(
        id=student.id,
        name=student.name,
        email=student.email,
        created_at=_iso(student.created_at),
    )


def session_to_response(session, include_segments: bool = True) -> SessionResponse:
    # Imported here to keep schemas importable from the stats service
    from tempo.services.practice_stats import session_duration

    segments = sorted(session.segments, key=lambda s: s.recorded_at) if include_segments else []
    return SessionResponse(
        id=session.id,
        student_id=session.student_id,
        student=student_to_summary(session.student) if session.student else None,
        title=session.title,
        description=session.description,
        date=session.date.isoformat(),
        status=session.status,
        total_duration=session_duration(session),
        audio_file_path=session.audio_file_path,
        audio_file_size=session.audio_file_size,
        teacher_feedback=session.teacher_feedback,
        teacher_feedback_audio=session.teacher_feedback_audio,
        teacher_feedback_at=_iso(session.teacher_feedback_at),
        created_at=session.created_at.isoformat(),
        analysis=analysis_to_response(session.analysis),
        segments=[segment_to_response(s) for s in segments],
    )
