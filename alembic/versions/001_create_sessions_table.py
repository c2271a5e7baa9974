"""Create sessions table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `sessions` table used by jsonwire.sessions.sql_store.SQLStore.
How:   Portable column types (generic Uuid and JSON), so the same migration
       runs on PostgreSQL and SQLite.

Rollback: downgrade() drops the table; every active session is lost and
users have to log in again.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the sessions table and its expiry index (see jsonwire/models/session.py)."""
    op.create_table(
        "sessions",

        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Session id handed to the client",
        ),

        sa.Column(
            "data",
            sa.JSON(),
            nullable=False,
            comment="Session contents: key → {val, once}",
        ),

        sa.Column(
            "ttl",
            sa.Integer(),
            nullable=False,
            comment="Idle lifetime in milliseconds",
        ),

        sa.Column(
            "last_used",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Last read or write (UTC)",
        ),

        sa.Column(
            "expires_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="last_used + ttl (UTC)",
        ),

        sa.PrimaryKeyConstraint("id"),
    )

    # Validity checks and garbage collection are range scans on expires_at
    op.create_index("idx_sessions_expires_at", "sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_index("idx_sessions_expires_at", table_name="sessions")
    op.drop_table("sessions")
