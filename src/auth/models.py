"""
Authentication Models

The resolved caller identity plus the auth tables written by the web
application's sign-in adapter. These are added to the main database
alongside the search models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import relationship

from src.database.models import Base


@dataclass(frozen=True)
class UserSession:
    """
    Identity of the caller for one request.

    Every field is optional: a presence-only cookie check yields a session
    with no identity at all.
    """
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None

    @property
    def is_identified(self) -> bool:
        return self.user_id is not None


class User(Base):
    """Signed-in user record"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(Text)
    email = Column(String(255), unique=True, nullable=False)
    email_verified = Column(DateTime)
    image = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    sessions = relationship("SessionRecord", back_populates="user", cascade="all, delete-orphan")

    def to_session(self) -> UserSession:
        return UserSession(user_id=self.id, email=self.email, name=self.name, image=self.image)

    def __repr__(self):
        return f"<User {self.email}>"


class SessionRecord(Base):
    """Database-backed login session keyed by the session cookie value"""
    __tablename__ = "sessions"

    session_token = Column(Text, primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("sessions_user_id_idx", "user_id"),
    )
