"""User (identity) model."""

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import validates
import uuid

from database import Base, utcnow


USER_ROLES = ("user", "admin", "owner")


class User(Base):
    """Registered account. Password is stored as a bcrypt hash."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=False)
    avatar = Column(String, nullable=False, default="")
    cover_image = Column(String, nullable=False, default="")
    password = Column(String, nullable=False)
    refresh_token = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")
    watch_history = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @validates("role")
    def _validate_role(self, _key, value):
        if value not in USER_ROLES:
            raise ValueError(f"Unknown role: {value}")
        return value
