"""Practice session model — one sitting of practice by a student.

A session is either segmented (started, filled with recorded segments, then
ended) or a single recording uploaded in one go with a title and duration.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from tempo.database import Base


class SessionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class PracticeSession(Base):
    __tablename__ = "practice_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    status = Column(String(20), nullable=False, default=SessionStatus.ACTIVE.value)  # ACTIVE | COMPLETED
    total_duration = Column(Integer, nullable=True)  # seconds

    # Single-recording sessions
    audio_file_path = Column(String(1024), nullable=True)
    audio_file_size = Column(Integer, nullable=True)

    teacher_feedback = Column(Text, nullable=True)
    teacher_feedback_audio = Column(String(1024), nullable=True)
    teacher_feedback_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    student = relationship("User", back_populates="practice_sessions")
    segments = relationship(
        "PracticeSegment",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="PracticeSegment.recorded_at",
    )
    analysis = relationship(
        "PracticeAnalysis", back_populates="session", uselist=False, cascade="all, delete-orphan"
    )
