"""Practice segment model — a single recording inside a segmented session."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from tempo.database import Base


class SegmentType(str, enum.Enum):
    PIECE = "PIECE"
    WARMUP = "WARMUP"
    TECHNIQUE = "TECHNIQUE"
    SIGHTREADING = "SIGHTREADING"
    OTHER = "OTHER"


class PracticeSegment(Base):
    __tablename__ = "practice_segments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("practice_sessions.id"), nullable=False, index=True)
    piece_id = Column(String(36), ForeignKey("pieces.id"), nullable=True)
    title = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default=SegmentType.OTHER.value)
    notes = Column(Text, nullable=True)
    audio_url = Column(String(1024), nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # seconds
    metronome_bpm = Column(Integer, nullable=True)
    reference_video_url = Column(String(1024), nullable=True)
    recorded_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    teacher_feedback_text = Column(Text, nullable=True)
    teacher_feedback_audio = Column(String(1024), nullable=True)
    teacher_feedback_at = Column(DateTime, nullable=True)

    # Relationships
    session = relationship("PracticeSession", back_populates="segments")
    piece = relationship("Piece", back_populates="segments")
    analysis = relationship(
        "PracticeAnalysis", back_populates="segment", uselist=False, cascade="all, delete-orphan"
    )
