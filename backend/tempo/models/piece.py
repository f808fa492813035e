"""Piece model — a student's repertoire item."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from tempo.database import Base


class Piece(Base):
    __tablename__ = "pieces"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    composer = Column(String(255), nullable=True)
    difficulty = Column(String(50), nullable=True)
    target_bpm = Column(Integer, nullable=True)
    default_reference_video_url = Column(String(1024), nullable=True)
    notes = Column(Text, nullable=True)
    date_started = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    student = relationship("User", back_populates="pieces")
    segments = relationship("PracticeSegment", back_populates="piece")
