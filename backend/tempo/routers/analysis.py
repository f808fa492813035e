"""Analysis router — AI feedback for sessions and segments."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tempo.config import settings
from tempo.database import get_db
from tempo.middleware.auth import get_current_user
from tempo.middleware.rate_limit import limiter
from tempo.models.practice_analysis import PracticeAnalysis
from tempo.models.user import User
from tempo.schemas.practice import AnalysisResponse, AnalysisResult, analysis_to_response
from tempo.services.access import require_segment_access, require_session_access
from tempo.services.practice_analysis import analyze_practice
from tempo.services.practice_service import load_segment, load_session
from tempo.services.practice_stats import session_duration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _analysis_row(result: AnalysisResult, **target) -> PracticeAnalysis:
    data = result.model_dump()
    return PracticeAnalysis(
        overall_feedback=data["overall_feedback"],
        pieces_identified=data["pieces_identified"],
        time_breakdown=data["time_breakdown"],
        suggestions=data["suggestions"],
        strengths=data["strengths"],
        areas_for_improvement=data["areas_for_improvement"],
        overall_score=data["overall_score"],
        **target,
    )


def _persist(db: Session, row: PracticeAnalysis, **lookup) -> PracticeAnalysis:
    """Insert an analysis; if a concurrent request won, return its row instead."""
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.query(PracticeAnalysis).filter_by(**lookup).first()
        if existing is None:
            raise
        return existing
    db.refresh(row)
    return row


@router.post("/segment/{segment_id}", response_model=AnalysisResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_ANALYSIS)
async def analyze_segment(
    request: Request,
    segment_id: str,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Analyze one segment, or return its existing analysis."""
    segment = load_segment(db, segment_id)
    require_segment_access(current_user, segment, detail="Not authorized to analyze this segment")

    if segment.analysis:
        response.status_code = 200
        return analysis_to_response(segment.analysis)

    result = await analyze_practice(segment.audio_url, segment.title or "Practice segment", segment.duration or 0)
    row = _persist(db, _analysis_row(result, segment_id=segment.id), segment_id=segment.id)
    logger.info("Stored analysis %s for segment %s", row.id, segment.id)
    return analysis_to_response(row)


@router.get("/segment/{segment_id}", response_model=AnalysisResponse)
def get_segment_analysis(
    segment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    segment = load_segment(db, segment_id)
    require_segment_access(current_user, segment, detail="Not authorized to view this analysis")
    if not segment.analysis:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return analysis_to_response(segment.analysis)


@router.post("/{session_id}", response_model=AnalysisResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_ANALYSIS)
async def analyze_session(
    request: Request,
    session_id: str,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Analyze a whole session, or return its existing analysis.

    Single-recording sessions send their own audio; segmented sessions send
    the first segment's as a reference.
    """
    session = load_session(db, session_id)
    require_session_access(current_user, session, detail="Not authorized to analyze this session")

    if session.analysis:
        response.status_code = 200
        return analysis_to_response(session.analysis)

    audio_ref = session.audio_file_path
    if not audio_ref and session.segments:
        audio_ref = session.segments[0].audio_url
    if not audio_ref:
        raise HTTPException(status_code=400, detail="Session has no recorded audio to analyze")

    result = await analyze_practice(audio_ref, session.title or "Practice session", session_duration(session))
    row = _persist(db, _analysis_row(result, session_id=session.id), session_id=session.id)
    logger.info("Stored analysis %s for session %s", row.id, session.id)
    return analysis_to_response(row)


@router.get("/{session_id}", response_model=AnalysisResponse)
def get_session_analysis(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = load_session(db, session_id)
    require_session_access(current_user, session, detail="Not authorized to view this analysis")
    if not session.analysis:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return analysis_to_response(session.analysis)
