"""Tweet model."""

from sqlalchemy import Column, String, DateTime, Text
import uuid

from database import Base, utcnow


class Tweet(Base):
    """Short text post."""

    __tablename__ = "tweets"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
