"""User model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String

from backend.database import Base

ROLES = ('student', 'interviewer', 'admin')


class User(Base):
    """Represents an application account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default='student', nullable=False)  # student/interviewer/admin
    is_active = Column(Boolean, default=True, nullable=False)
    contact = Column(String, nullable=True)
    dob = Column(Date, nullable=True)
    profile_picture = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
