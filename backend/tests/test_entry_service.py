"""
CoupleJournal Backend - Entry Service Unit Tests
==================================================

What:  Tests for EntryService business logic (create, list, like, comment,
       delete).
How:   Real in-memory SQLite session plus a FileService in tmp_path.

What we test:
    ✅ text and media entries, including upload cleanup on insert failure
    ✅ newest-first listing
    ✅ like toggling (double toggle restores the original state)
    ✅ comment append/remove order and permissions
    ✅ owner-only delete, media file removed with the entry
"""

import io
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers, UploadFile

from couplejournal.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from couplejournal.models.entry import JournalEntry
from couplejournal.models.user import utcnow
from couplejournal.services.entry_service import EntryService


def make_upload(data=b"\xff\xd8fake", filename="photo.jpg", content_type="image/jpeg"):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        size=len(data),
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def service():
    return EntryService()


@pytest.fixture
def text_entry(service, db_session, file_service):
    async def _create(author, content="hello"):
        return await service.create_entry(db_session, file_service, author, "text", content)

    return _create


class TestCreateEntry:

    @pytest.mark.asyncio
    async def test_text_entry(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        entry = await service.create_entry(db_session, file_service, alice, "text", "hello")

        assert entry.type.value == "text"
        assert entry.content == "hello"
        assert entry.author.id == alice.id
        assert entry.author.display_name == "Alice"
        assert entry.likes == []
        assert entry.comments == []

    @pytest.mark.asyncio
    async def test_text_entry_ignores_file(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        entry = await service.create_entry(
            db_session, file_service, alice, "text", "just words", upload=make_upload()
        )
        assert entry.content == "just words"
        assert list(file_service.upload_root.iterdir()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_text_entry_requires_content(self, service, db_session, file_service, make_user, content):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="Content is required"):
            await service.create_entry(db_session, file_service, alice, "text", content)

    @pytest.mark.asyncio
    async def test_type_required(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="Type is required"):
            await service.create_entry(db_session, file_service, alice, None, "hello")

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="Invalid entry type"):
            await service.create_entry(db_session, file_service, alice, "poem", "roses")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("entry_type", ["image", "video", "voice"])
    async def test_media_entry_requires_file(self, service, db_session, file_service, make_user, entry_type):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="File is required for this entry type"):
            await service.create_entry(db_session, file_service, alice, entry_type, None)

    @pytest.mark.asyncio
    async def test_image_entry_stores_upload(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        entry = await service.create_entry(
            db_session, file_service, alice, "image", None, upload=make_upload(b"\xff\xd8img")
        )

        assert entry.content.startswith("/uploads/")
        assert entry.content.endswith(".jpg")
        assert file_service.resolve(entry.content).read_bytes() == b"\xff\xd8img"

    @pytest.mark.asyncio
    async def test_voice_entry_accepts_audio(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        upload = make_upload(b"m4a", "memo.m4a", "audio/m4a")
        entry = await service.create_entry(db_session, file_service, alice, "voice", None, upload=upload)
        assert entry.type.value == "voice"
        assert entry.content.endswith(".m4a")

    @pytest.mark.asyncio
    async def test_pdf_rejected(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        with pytest.raises(UnsupportedMediaTypeError):
            await service.create_entry(
                db_session, file_service, alice, "image", None,
                upload=make_upload(b"%PDF", "doc.pdf", "application/pdf"),
            )

    @pytest.mark.asyncio
    async def test_insert_failure_removes_stored_file(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        with patch.object(
            db_session, "flush", AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down")))
        ):
            with pytest.raises(DatabaseError):
                await service.create_entry(
                    db_session, file_service, alice, "image", None, upload=make_upload()
                )
        assert list(file_service.upload_root.iterdir()) == []


class TestListEntries:

    @pytest.mark.asyncio
    async def test_empty(self, service, db_session):
        assert await service.list_entries(db_session) == []

    @pytest.mark.asyncio
    async def test_newest_first(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        first = await text_entry(alice, "first")
        second = await text_entry(alice, "second")
        third = await text_entry(alice, "third")

        now = utcnow()
        for offset, entry in ((3, first), (2, second), (1, third)):
            await db_session.execute(
                update(JournalEntry)
                .where(JournalEntry.id == entry.id)
                .values(timestamp=now - timedelta(minutes=offset))
            )

        listed = await service.list_entries(db_session)
        assert [e.content for e in listed] == ["third", "second", "first"]


class TestToggleLike:

    @pytest.mark.asyncio
    async def test_like_then_unlike(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        entry = await text_entry(alice)

        liked = await service.toggle_like(db_session, str(entry.id), alice)
        assert liked.likes == [alice.id]

        unliked = await service.toggle_like(db_session, str(entry.id), alice)
        assert unliked.likes == []

    @pytest.mark.asyncio
    async def test_likes_are_per_user(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        bob = await make_user("bob")
        entry = await text_entry(alice)

        await service.toggle_like(db_session, str(entry.id), alice)
        result = await service.toggle_like(db_session, str(entry.id), bob)
        assert set(result.likes) == {alice.id, bob.id}

        result = await service.toggle_like(db_session, str(entry.id), alice)
        assert result.likes == [bob.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("entry_id", [str(uuid.uuid4()), "not-a-uuid"])
    async def test_unknown_entry(self, service, db_session, make_user, entry_id):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError, match="Entry not found"):
            await service.toggle_like(db_session, entry_id, alice)


class TestComments:

    @pytest.mark.asyncio
    async def test_comment_appended_last_and_trimmed(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        bob = await make_user("bob")
        entry = await text_entry(alice)

        await service.add_comment(db_session, str(entry.id), alice, "first")
        result = await service.add_comment(db_session, str(entry.id), bob, "  second  ")

        assert [c.text for c in result.comments] == ["first", "second"]
        assert result.comments[-1].author.id == bob.id
        assert result.comments[-1].author.display_name == "Bob"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t"])
    async def test_blank_comment_rejected(self, service, db_session, make_user, text_entry, text):
        alice = await make_user("alice")
        entry = await text_entry(alice)
        with pytest.raises(ValidationError, match="Comment text is required"):
            await service.add_comment(db_session, str(entry.id), alice, text)

    @pytest.mark.asyncio
    async def test_comment_on_unknown_entry(self, service, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await service.add_comment(db_session, str(uuid.uuid4()), alice, "hi")

    @pytest.mark.asyncio
    async def test_remove_keeps_order_of_remaining(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        entry = await text_entry(alice)
        for text in ("one", "two", "three"):
            result = await service.add_comment(db_session, str(entry.id), alice, text)

        await service.remove_comment(db_session, str(entry.id), str(result.comments[1].id), alice)

        listed = await service.list_entries(db_session)
        assert [c.text for c in listed[0].comments] == ["one", "three"]

    @pytest.mark.asyncio
    async def test_entry_owner_may_remove_others_comment(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        bob = await make_user("bob")
        entry = await text_entry(alice)
        result = await service.add_comment(db_session, str(entry.id), bob, "from bob")

        await service.remove_comment(db_session, str(entry.id), str(result.comments[0].id), alice)
        listed = await service.list_entries(db_session)
        assert listed[0].comments == []

    @pytest.mark.asyncio
    async def test_stranger_may_not_remove_comment(self, service, db_session, make_user, text_entry):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        entry = await text_entry(alice)
        result = await service.add_comment(db_session, str(entry.id), bob, "from bob")

        with pytest.raises(ForbiddenError, match="Not authorized to delete this comment"):
            await service.remove_comment(db_session, str(entry.id), str(result.comments[0].id), carol)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("comment_id", [str(uuid.uuid4()), "garbage"])
    async def test_unknown_comment(self, service, db_session, make_user, text_entry, comment_id):
        alice = await make_user("alice")
        entry = await text_entry(alice)
        with pytest.raises(NotFoundError, match="Comment not found"):
            await service.remove_comment(db_session, str(entry.id), comment_id, alice)


class TestDeleteEntry:

    @pytest.mark.asyncio
    async def test_owner_deletes_entry(self, service, db_session, file_service, make_user, text_entry):
        alice = await make_user("alice")
        entry = await text_entry(alice)
        await service.add_comment(db_session, str(entry.id), alice, "bye")
        await service.toggle_like(db_session, str(entry.id), alice)

        await service.delete_entry(db_session, file_service, str(entry.id), alice)
        assert await service.list_entries(db_session) == []

    @pytest.mark.asyncio
    async def test_non_owner_forbidden(self, service, db_session, file_service, make_user, text_entry):
        alice = await make_user("alice")
        bob = await make_user("bob")
        entry = await text_entry(alice)

        with pytest.raises(ForbiddenError, match="Not authorized to delete this entry"):
            await service.delete_entry(db_session, file_service, str(entry.id), bob)
        assert len(await service.list_entries(db_session)) == 1

    @pytest.mark.asyncio
    async def test_media_file_removed(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        entry = await service.create_entry(
            db_session, file_service, alice, "video", None,
            upload=make_upload(b"mp4", "clip.mp4", "video/mp4"),
        )
        stored = file_service.resolve(entry.content)
        assert stored.exists()

        await service.delete_entry(db_session, file_service, str(entry.id), alice)
        assert not stored.exists()

    @pytest.mark.asyncio
    async def test_media_file_already_missing(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        entry = await service.create_entry(
            db_session, file_service, alice, "image", None, upload=make_upload()
        )
        file_service.resolve(entry.content).unlink()

        await service.delete_entry(db_session, file_service, str(entry.id), alice)
        assert await service.list_entries(db_session) == []

    @pytest.mark.asyncio
    async def test_unknown_entry(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await service.delete_entry(db_session, file_service, str(uuid.uuid4()), alice)

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_media_file(self, service, db_session, file_service, make_user):
        alice = await make_user("alice")
        entry = await service.create_entry(
            db_session, file_service, alice, "image", None, upload=make_upload()
        )
        stored = file_service.resolve(entry.content)

        with patch.object(
            db_session, "commit", AsyncMock(side_effect=OperationalError("DELETE", {}, Exception("db down")))
        ):
            with pytest.raises(OperationalError):
                await service.delete_entry(db_session, file_service, str(entry.id), alice)
        assert stored.exists()
