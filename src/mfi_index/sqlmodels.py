"""SQLAlchemy models for local SQLite session storage.

Only the authentication session is persisted. Raw metrics are always fetched
live from the MFI API and derived scores are recomputed on every call.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class StoredSession(Base):
    """The persisted auth token and user profile, one row per session key."""

    __tablename__ = "stored_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    user_json: Mapped[str] = mapped_column(Text, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
