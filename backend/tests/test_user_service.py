"""
CoupleJournal Backend - User Service Unit Tests
=================================================

What:  Registration rules, uniqueness, login lookup and deactivation.
How:   Real in-memory SQLite database per test (see conftest.database).
"""

import uuid

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.exc import IntegrityError

from couplejournal.exceptions import ConflictError, ValidationError
from couplejournal.services.user_service import UserService


class TestCreateUser:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_creates_user_with_hashed_password(self, db_session):
        user = await self.service.create_user(db_session, "alice", "secret1", "Alice")

        assert isinstance(user.id, uuid.UUID)
        assert user.username == "alice"
        assert user.display_name == "Alice"
        assert user.is_active is True
        assert user.password_hash != "secret1"
        assert self.service.verify_password(user, "secret1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,password,display_name",
        [
            (None, "secret1", "Alice"),
            ("alice", None, "Alice"),
            ("alice", "secret1", ""),
            ("", "", ""),
            ("   ", "secret1", "Alice"),
            ("alice", "secret1", "  \t "),
        ],
    )
    async def test_missing_fields_rejected(self, db_session, username, password, display_name):
        with pytest.raises(ValidationError, match="Please provide all required fields"):
            await self.service.create_user(db_session, username, password, display_name)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["a", "12345", "short"])
    async def test_short_password_rejected(self, db_session, password):
        with pytest.raises(ValidationError, match="at least 6 characters"):
            await self.service.create_user(db_session, "alice", password, "Alice")

    @pytest.mark.asyncio
    async def test_six_character_password_accepted(self, db_session):
        user = await self.service.create_user(db_session, "alice", "123456", "Alice")
        assert user.id is not None

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, db_session):
        await self.service.create_user(db_session, "alice", "secret1", "Alice")
        with pytest.raises(ConflictError, match="Username already exists") as excinfo:
            await self.service.create_user(db_session, "alice", "different2", "Other Alice")
        assert excinfo.value.field == "username"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session):
        await self.service.create_user(db_session, "alice", "secret1", "Alice", email="a@x.io")
        with pytest.raises(ConflictError, match="Email already exists") as excinfo:
            await self.service.create_user(db_session, "bob", "secret1", "Bob", email="a@x.io")
        assert excinfo.value.field == "email"

    @pytest.mark.asyncio
    async def test_blank_emails_do_not_conflict(self, db_session):
        alice = await self.service.create_user(db_session, "alice", "secret1", "Alice", email="  ")
        bob = await self.service.create_user(db_session, "bob", "secret1", "Bob", email="")
        carol = await self.service.create_user(db_session, "carol", "secret1", "Carol")
        assert alice.email is None and bob.email is None and carol.email is None

    @pytest.mark.asyncio
    async def test_integrity_error_mapped_to_conflict(self):
        """A racing insert that slips past the pre-check still reports a conflict."""
        session = AsyncMock()
        session.add = MagicMock()
        session.execute = AsyncMock(return_value=MagicMock(first=MagicMock(return_value=None)))
        session.flush = AsyncMock(
            side_effect=IntegrityError(
                "INSERT INTO users ...",
                {},
                Exception("UNIQUE constraint failed: users.username"),
            )
        )

        with pytest.raises(ConflictError, match="Username already exists"):
            await self.service.create_user(session, "alice", "secret1", "Alice")
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_conflict_classified_by_constraint_name(self):
        """The duplicate value echoed by PostgreSQL does not decide the field."""
        session = AsyncMock()
        session.add = MagicMock()
        session.execute = AsyncMock(return_value=MagicMock(first=MagicMock(return_value=None)))
        session.flush = AsyncMock(
            side_effect=IntegrityError(
                "INSERT INTO users ...",
                {},
                Exception(
                    'duplicate key value violates unique constraint "uq_users_username"\n'
                    "DETAIL:  Key (username)=(my-email) already exists."
                ),
            )
        )

        with pytest.raises(ConflictError, match="Username already exists") as excinfo:
            await self.service.create_user(session, "my-email", "secret1", "Me")
        assert excinfo.value.field == "username"

    @pytest.mark.asyncio
    async def test_blank_username_not_stored(self, db_session):
        with pytest.raises(ValidationError, match="Please provide all required fields"):
            await self.service.create_user(db_session, "   ", "secret1", "   ")
        assert await self.service.find_by_credential(db_session, "") is None


class TestLookup:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_find_by_username_or_email(self, db_session, make_user):
        alice = await make_user("alice", email="alice@example.com")

        assert (await self.service.find_by_credential(db_session, "alice")).id == alice.id
        assert (await self.service.find_by_credential(db_session, "alice@example.com")).id == alice.id
        assert await self.service.find_by_credential(db_session, "nobody") is None

    @pytest.mark.asyncio
    async def test_authenticate_success(self, db_session, make_user):
        alice = await make_user("alice", password="secret1")
        user = await self.service.authenticate(db_session, "alice", "secret1")
        assert user.id == alice.id

    @pytest.mark.asyncio
    async def test_authenticate_wrong_password(self, db_session, make_user):
        await make_user("alice", password="secret1")
        with pytest.raises(ValidationError, match="Invalid login credentials"):
            await self.service.authenticate(db_session, "alice", "wrong-password")

    @pytest.mark.asyncio
    async def test_authenticate_unknown_user_same_message(self, db_session):
        with pytest.raises(ValidationError, match="Invalid login credentials"):
            await self.service.authenticate(db_session, "ghost", "secret1")

    @pytest.mark.asyncio
    async def test_authenticate_missing_fields(self, db_session):
        with pytest.raises(ValidationError, match="Please provide username and password"):
            await self.service.authenticate(db_session, "alice", "")

    @pytest.mark.asyncio
    async def test_deactivated_user_cannot_log_in(self, db_session, make_user):
        alice = await make_user("alice", password="secret1")
        await self.service.deactivate(db_session, alice.id)

        assert await self.service.find_by_credential(db_session, "alice") is None
        with pytest.raises(ValidationError, match="Invalid login credentials"):
            await self.service.authenticate(db_session, "alice", "secret1")

    @pytest.mark.asyncio
    async def test_get_by_id(self, db_session, make_user):
        alice = await make_user("alice")
        assert (await self.service.get_by_id(db_session, alice.id)).username == "alice"
        assert await self.service.get_by_id(db_session, uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_deactivate_unknown_user(self, db_session):
        assert await self.service.deactivate(db_session, uuid.uuid4()) is None
