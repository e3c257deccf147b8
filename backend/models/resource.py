"""Learning resource model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from backend.database import Base

RESOURCE_CATEGORIES = ('frontend', 'backend', 'fullstack', 'behavioral', 'dsa', 'system-design')
RESOURCE_TYPES = ('article', 'video', 'tutorial', 'blog', 'book', 'course', 'practice')
DIFFICULTIES = ('beginner', 'intermediate', 'advanced')
QUESTION_DIFFICULTIES = ('easy', 'medium', 'hard')


class Resource(Base):
    """Represents an article, video or question bank students prepare with."""
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    category = Column(String, nullable=False)
    type = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    url = Column(String, nullable=True)
    author = Column(String, nullable=True)
    difficulty = Column(String, default='intermediate', nullable=False)
    tags = Column(JSON, default=list)
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_premium = Column(Boolean, default=False, nullable=False)
    estimated_time = Column(Integer, nullable=True)  # minutes
    questions = Column(JSON, default=list)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
