"""
CoupleJournal Backend - User SQLAlchemy Model
===============================================

What:  ORM model representing the `users` table (the credential store).
Who:   Used by UserService, the auth guard, and Alembic.

Table Design:
    - UUID primary key
    - username: unique constraint `uq_users_username`
    - email: nullable, unique constraint `uq_users_email`. NULLs never
      collide in a unique constraint, so many users may omit an email.
      Blank emails are stored as NULL by UserService.
    - password_hash: passlib hash; never serialized
    - is_active: deactivated users cannot authenticate
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, UniqueConstraint, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from couplejournal.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered journal author.

    Lifecycle:
        Created by register; only `is_active` ever changes (internal
        deactivation); never deleted.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(String(150), nullable=False)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    display_name: Mapped[str] = mapped_column(String(150), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Uniqueness is enforced by the database; UserService maps violations of
    # these named constraints back to ConflictError
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', active={self.is_active})>"
