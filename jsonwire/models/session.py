"""
JSONWire — Session SQLAlchemy Model
=====================================

What:  ORM model of the `sessions` table used by SQLStore.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Queried by jsonwire.sessions.sql_store.SQLStore.

Table Design Rationale:
    - UUID primary key: session ids cannot be guessed or enumerated
    - data: JSON object {key: {"val": ..., "once": bool}}
    - ttl: idle lifetime in milliseconds, per session
    - last_used: refreshed on every read and write
    - expires_at: last_used + ttl, kept in sync by the store so expiry checks
      and garbage collection are plain indexed comparisons on any database

Index on expires_at:
    Both the validity check (expires_at >= now) and the garbage collector
    (expires_at < now) are range scans on this column.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from jsonwire.database import Base


class SessionRecord(Base):
    """One stored session."""

    __tablename__ = "sessions"

    # Why generic Uuid: native UUID on PostgreSQL, CHAR(32) on SQLite
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Session id handed to the client",
    )

    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Session contents: key → {val, once}",
    )

    ttl: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Idle lifetime in milliseconds",
    )

    # Why timezone=True: all timestamps are stored in UTC
    last_used: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        comment="Last read or write (UTC)",
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="last_used + ttl (UTC)",
    )

    __table_args__ = (
        Index("idx_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<SessionRecord(id={self.id}, expires_at='{self.expires_at}')>"
