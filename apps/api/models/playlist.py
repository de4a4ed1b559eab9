"""Playlist model and its ordered video membership."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
import uuid

from database import Base, utcnow


class Playlist(Base):
    """Named, owned list of videos."""

    __tablename__ = "playlists"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class PlaylistVideo(Base):
    """One entry of a playlist. Duplicates are allowed; ``id`` gives the order."""

    __tablename__ = "playlist_videos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    playlist_id = Column(String, ForeignKey("playlists.id"), nullable=False, index=True)
    video_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
