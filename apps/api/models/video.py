"""Uploaded video model."""

from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text
import uuid

from database import Base, utcnow


class Video(Base):
    """Video whose media and thumbnail live in the remote media store."""

    __tablename__ = "videos"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Owner references are not constrained; deleting a user leaves them dangling.
    owner_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    video_file = Column(String, nullable=False)
    thumbnail = Column(String, nullable=False)
    duration = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
