"""Create users, journal_entries, entry_likes and comments tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema for the shared journal.
How:   Portable column types (sa.Uuid, TIMESTAMP WITH TIME ZONE) so the same
       migration runs on PostgreSQL and SQLite.

Rollback: downgrade() drops all four tables (all journal data is lost).
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
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(150), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(150), nullable=False),
        # NULL when the user registered without an email
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        # Message text, or "/uploads/<file>" for media entries
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "timestamp",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "type IN ('text', 'image', 'video', 'voice')",
            name="ck_journal_entries_type",
        ),
    )
    op.create_index("ix_journal_entries_author_id", "journal_entries", ["author_id"])
    # Feed query: ORDER BY timestamp DESC
    op.create_index("idx_journal_entries_timestamp", "journal_entries", ["timestamp"])

    op.create_table(
        "entry_likes",
        sa.Column("entry_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        # One like per (entry, user)
        sa.PrimaryKeyConstraint("entry_id", "user_id"),
        sa.ForeignKeyConstraint(["entry_id"], ["journal_entries.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entry_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "timestamp",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        # Display order within the entry, renumbered on removal
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["entry_id"], ["journal_entries.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_comments_entry_id", "comments", ["entry_id"])


def downgrade() -> None:
    op.drop_index("ix_comments_entry_id", table_name="comments")
    op.drop_table("comments")
    op.drop_table("entry_likes")
    op.drop_index("idx_journal_entries_timestamp", table_name="journal_entries")
    op.drop_index("ix_journal_entries_author_id", table_name="journal_entries")
    op.drop_table("journal_entries")
    op.drop_table("users")
