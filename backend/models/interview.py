"""Interview model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text

from backend.database import Base

INTERVIEW_TYPES = ('behavioral', 'fullstack', 'frontend', 'backend', 'dsa')
INTERVIEW_STATUSES = ('upcoming', 'ongoing', 'completed', 'cancelled')
INTERVIEW_RESULTS = ('passed', 'failed', 'pending')
DEFAULT_DURATION_MINUTES = 60


class Interview(Base):
    """Represents a scheduled mock interview owned by a student."""
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM, 24h
    interviewer = Column(String, nullable=False)
    interviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(String, default='upcoming', nullable=False)
    feedback = Column(Text, nullable=True)
    score = Column(Integer, nullable=True)
    result = Column(String, default='pending', nullable=False)
    resources = Column(JSON, default=list)
    questions = Column(JSON, default=list)
    meeting_link = Column(String, nullable=True)
    recording_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    duration = Column(Integer, default=DEFAULT_DURATION_MINUTES)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
