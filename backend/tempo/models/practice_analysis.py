"""Practice analysis model — AI feedback for a session or a segment."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from tempo.database import Base


class PracticeAnalysis(Base):
    __tablename__ = "practice_analyses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Exactly one of session_id / segment_id is set
    session_id = Column(String(36), ForeignKey("practice_sessions.id"), unique=True, nullable=True)
    segment_id = Column(String(36), ForeignKey("practice_segments.id"), unique=True, nullable=True)

    overall_feedback = Column(Text, nullable=False)
    pieces_identified = Column(JSON, nullable=False, default=list)
    time_breakdown = Column(JSON, nullable=False, default=dict)
    suggestions = Column(JSON, nullable=False, default=list)
    strengths = Column(JSON, nullable=False, default=list)
    areas_for_improvement = Column(JSON, nullable=False, default=list)
    overall_score = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    session = relationship("PracticeSession", back_populates="analysis")
    segment = relationship("PracticeSegment", back_populates="analysis")
