"""User model — teachers and the students they invite."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from tempo.database import Base


class UserRole(str, enum.Enum):
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    # Empty until an invited student accepts the invite
    password_hash = Column(String(255), nullable=False, default="")
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.TEACHER.value)  # TEACHER | STUDENT
    teacher_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    invite_token = Column(String(64), unique=True, nullable=True, index=True)
    invite_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    teacher = relationship("User", back_populates="students", remote_side=[id])
    students = relationship("User", back_populates="teacher")
    practice_sessions = relationship(
        "PracticeSession", back_populates="student", cascade="all, delete-orphan"
    )
    pieces = relationship("Piece", back_populates="student", cascade="all, delete-orphan")

    @property
    def is_invite_pending(self) -> bool:
        return self.invite_token is not None and not self.password_hash
