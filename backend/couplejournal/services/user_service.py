"""
CoupleJournal Backend - User Service
======================================

What:  Account registration, credential lookup and user retrieval.
How:   Stateless; every method receives the request's AsyncSession. Changes
       are flushed, never committed: get_db_session commits once the route
       returns.
Who:   Called by the auth routes and by the auth guard (get_current_user).

Uniqueness:
    Username and email are checked up front for a friendly message, and the
    unique constraints in the users table back that up when two
    registrations race. An IntegrityError on flush is mapped to the same
    ConflictError the pre-check raises.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from couplejournal import security
from couplejournal.config import settings
from couplejournal.exceptions import ConflictError, DatabaseError, ValidationError
from couplejournal.models.user import User
from couplejournal.schemas.user import (
    LoginRequest,
    RegisterRequest,
    normalize_email,
    validate_login,
    validate_registration,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid login credentials"

# PostgreSQL names the violated constraint; SQLite names the column. Constraint
# names are checked first because PostgreSQL also echoes the duplicate value.
_UNIQUE_MARKERS = (
    ("uq_users_email", "email"),
    ("uq_users_username", "username"),
    ("users.email", "email"),
    ("users.username", "username"),
)


def _conflicting_field(error: IntegrityError) -> Optional[str]:
    detail = str(error.orig).lower()
    for marker, field in _UNIQUE_MARKERS:
        if marker in detail:
            return field
    return None


class UserService:
    """
    Business logic for user accounts.

    Responsibilities:
        - create_user(): validate, hash, insert
        - authenticate(): username-or-email plus password check
        - find_by_credential() / get_by_id(): lookups
        - deactivate(): soft-disable an account (tokens stop working)
    """

    async def create_user(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
        display_name: Optional[str],
        email: Optional[str] = None,
    ) -> User:
        """
        Register a new account.

        Raises:
            ValidationError: missing fields or password too short
            ConflictError: username or email already taken
            DatabaseError: unexpected failure on insert
        """
        request = RegisterRequest(
            username=username,
            password=password,
            display_name=display_name,
            email=email,
        )
        problem = validate_registration(request, settings.min_password_length)
        if problem:
            raise ValidationError(message=problem)

        username = username.strip()
        email = normalize_email(email)

        if await self._exists(db, User.username == username):
            raise ConflictError("username")
        if email is not None and await self._exists(db, User.email == email):
            raise ConflictError("email")

        user = User(
            username=username,
            password_hash=security.hash_password(password),
            display_name=display_name.strip(),
            email=email,
        )
        db.add(user)

        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            field = _conflicting_field(e)
            if field:
                raise ConflictError(field)
            logger.error("Integrity error creating user %s: %s", username, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("User registered: %s (%s)", user.username, user.id)
        return user

    async def authenticate(
        self,
        db: AsyncSession,
        identifier: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Resolve a login attempt to a user.

        `identifier` matches either the username or the email. Unknown user,
        deactivated user and wrong password all give the same message.

        Raises:
            ValidationError: missing fields or invalid credentials
        """
        problem = validate_login(LoginRequest(username=identifier, password=password))
        if problem:
            raise ValidationError(message=problem)

        user = await self.find_by_credential(db, identifier.strip())
        if user is None or not self.verify_password(user, password):
            logger.info("Failed login for %r", identifier)
            raise ValidationError(message=INVALID_CREDENTIALS)

        logger.info("User logged in: %s", user.username)
        return user

    async def find_by_credential(self, db: AsyncSession, identifier: str) -> Optional[User]:
        """Active user whose username or email equals `identifier`."""
        result = await db.execute(
            select(User).where(
                or_(User.username == identifier, User.email == identifier),
                User.is_active.is_(True),
            )
        )
        return result.scalars().first()

    def verify_password(self, user: User, plaintext: str) -> bool:
        return security.verify_password(plaintext, user.password_hash)

    async def get_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        return await db.get(User, user_id)

    async def deactivate(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        """Disable an account. Existing tokens are rejected from then on."""
        user = await self.get_by_id(db, user_id)
        if user is None:
            return None
        user.is_active = False
        await db.flush()
        logger.info("User deactivated: %s", user.username)
        return user

    async def _exists(self, db: AsyncSession, condition) -> bool:
        result = await db.execute(select(User.id).where(condition).limit(1))
        return result.first() is not None


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
