"""
CoupleJournal Backend - Journal Entry SQLAlchemy Models
=========================================================

What:  ORM models for `journal_entries`, `entry_likes` and `comments`.
Who:   Used by EntryService for CRUD operations and by Alembic.

Table Design:
    journal_entries
        - type: one of text/image/video/voice (check constraint)
        - content: literal message for text, "/uploads/<file>" otherwise
        - timestamp: indexed for the newest-first feed
    entry_likes
        - composite primary key (entry_id, user_id): a user likes an entry
          at most once
    comments
        - position: display order within the entry, maintained by
          SQLAlchemy's ordering_list; removing a comment renumbers the rest

Relationships are loaded with `selectin` so a single `select(JournalEntry)`
brings back authors, likes and comments (lazy loading is not available
under asyncio).
"""

import enum
import uuid
from datetime import datetime
from typing import List

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from couplejournal.database import Base
from couplejournal.models.user import User, utcnow


class EntryType(str, enum.Enum):
    """Kinds of journal entries. Only `text` stores its content inline."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    VOICE = "voice"

    @property
    def has_file(self) -> bool:
        return self is not EntryType.TEXT


# ── Likes association table ───────────────────────────────────────────────
entry_likes = Table(
    "entry_likes",
    Base.metadata,
    Column(
        "entry_id",
        Uuid,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class JournalEntry(Base):
    """
    A single post in the shared feed.

    Lifecycle:
        1. Created by POST /api/entries (type and timestamp never change)
        2. likes / comments mutated by their dedicated endpoints
        3. Deleted by its owner; the backing upload is removed with it
    """

    __tablename__ = "journal_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(16), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    author: Mapped[User] = relationship(lazy="selectin")

    liked_by: Mapped[List[User]] = relationship(
        secondary=entry_likes,
        lazy="selectin",
    )

    comments: Mapped[List["Comment"]] = relationship(
        back_populates="entry",
        order_by="Comment.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('text', 'image', 'video', 'voice')",
            name="ck_journal_entries_type",
        ),
        Index("idx_journal_entries_timestamp", "timestamp"),
    )

    @property
    def entry_type(self) -> EntryType:
        return EntryType(self.type)

    def __repr__(self) -> str:
        return f"<JournalEntry(id={self.id}, type='{self.type}', author_id={self.author_id})>"


class Comment(Base):
    """A comment appended to a journal entry."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    entry_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    entry: Mapped[JournalEntry] = relationship(back_populates="comments")

    author: Mapped[User] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, entry_id={self.entry_id}, position={self.position})>"
