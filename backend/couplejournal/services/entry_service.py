"""
CoupleJournal Backend - Entry Service (Business Logic Orchestrator)
=====================================================================

What:  Creates, lists, likes, comments on and deletes journal entries.
How:   Stateless; receives the request's AsyncSession (and the FileService
       where uploads are involved) on each call. Returns EntryResponse
       models ready for the routes to send back.
Who:   Called by the routes in routes/entries.py.

Create Flow (POST /api/entries):
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐
    │ Validate │───▶│ Store upload │───▶│ Insert entry │
    │ (schema) │    │ (FileService)│    │ (commit)     │
    └──────────┘    └──────────────┘    └──────────────┘
    If the insert or its commit fails, the stored upload is deleted again so
    no file is left behind without an entry referencing it. Delete commits
    before unlinking the media file for the same reason.

Concurrency:
    Like, comment and delete load the entry with SELECT ... FOR UPDATE
    (populate_existing refreshes the identity map copy), so two requests
    touching the same entry serialize on the row lock inside their
    transactions instead of overwriting each other's likes or comments.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from couplejournal.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from couplejournal.models.entry import Comment, EntryType, JournalEntry
from couplejournal.models.user import User, utcnow
from couplejournal.schemas.entry import (
    EntryResponse,
    EntrySubmission,
    validate_comment_text,
    validate_entry_submission,
)
from couplejournal.services.file_service import FileService

logger = logging.getLogger(__name__)


def _parse_id(raw: str, resource: str) -> uuid.UUID:
    """Path ids that are not UUIDs cannot name anything: report NotFound."""
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(resource=resource, resource_id=str(raw))


class EntryService:
    """
    Business logic layer for journal entries.

    Responsibilities:
        - create_entry(): text or media entry, with upload storage
        - list_entries(): full feed, newest first
        - toggle_like(): flip the caller's like
        - add_comment() / remove_comment(): comment thread edits
        - delete_entry(): owner-only removal, including the media file

    Error Handling Strategy:
        Domain failures raise ValidationError / NotFoundError /
        ForbiddenError for the global handlers. SQLAlchemy failures on
        insert are wrapped in DatabaseError so no SQL reaches the client.
    """

    async def create_entry(
        self,
        db: AsyncSession,
        files: FileService,
        author: User,
        entry_type: Optional[str],
        content: Optional[str] = None,
        upload: Optional[UploadFile] = None,
    ) -> EntryResponse:
        """
        Create an entry authored by `author`.

        Text entries store `content` as given; any attached file is ignored.
        Image, video and voice entries store the upload and keep its public
        path as content.

        Raises:
            ValidationError: missing/unknown type, blank text, missing file
            UnsupportedMediaTypeError / PayloadTooLargeError: upload rejected
            DatabaseError: insert failed (the stored file is removed)
        """
        submission = EntrySubmission(type=entry_type, content=content, file=upload)
        problem = validate_entry_submission(submission)
        if problem:
            raise ValidationError(message=problem)

        kind = EntryType(entry_type)
        stored_path: Optional[str] = None
        if kind.has_file:
            stored_path = await files.store_upload(upload)
            content = stored_path

        entry = JournalEntry(
            author_id=author.id,
            author=author,
            type=kind.value,
            content=content,
            timestamp=utcnow(),
            liked_by=[],
            comments=[],
        )
        db.add(entry)

        try:
            await db.flush()
            await db.commit()
        except SQLAlchemyError as e:
            if stored_path:
                await files.delete_file(stored_path)
            logger.error("Failed to insert entry for %s: %s", author.username, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("Entry created: %s (%s by %s)", entry.id, kind.value, author.username)
        return EntryResponse.from_entry(entry)

    async def list_entries(self, db: AsyncSession) -> List[EntryResponse]:
        """
        Every entry, newest first. Comments keep insertion order.

        Query plan:
            SELECT * FROM journal_entries ORDER BY timestamp DESC
            → idx_journal_entries_timestamp; authors, likes and comments
              follow as selectin batches
        """
        result = await db.execute(
            select(JournalEntry).order_by(desc(JournalEntry.timestamp), desc(JournalEntry.id))
        )
        return [EntryResponse.from_entry(entry) for entry in result.scalars().all()]

    async def toggle_like(
        self,
        db: AsyncSession,
        entry_id: str,
        user: User,
    ) -> EntryResponse:
        """Add the user's like, or remove it if already present."""
        entry = await self._get_entry_for_update(db, entry_id)

        existing = next((u for u in entry.liked_by if u.id == user.id), None)
        if existing is not None:
            entry.liked_by.remove(existing)
            action = "unliked"
        else:
            entry.liked_by.append(user)
            action = "liked"
        await db.flush()

        logger.info("Entry %s %s by %s", entry.id, action, user.username)
        return EntryResponse.from_entry(entry)

    async def add_comment(
        self,
        db: AsyncSession,
        entry_id: str,
        author: User,
        text: Optional[str],
    ) -> EntryResponse:
        """
        Append a comment to the end of the entry's thread.

        Raises:
            ValidationError: text missing or whitespace only
            NotFoundError: no such entry
        """
        problem = validate_comment_text(text)
        if problem:
            raise ValidationError(message=problem, field="text")

        entry = await self._get_entry_for_update(db, entry_id)
        comment = Comment(
            author_id=author.id,
            author=author,
            text=text.strip(),
            timestamp=utcnow(),
        )
        # ordering_list assigns position = len(comments)
        entry.comments.append(comment)
        await db.flush()

        logger.info("Comment %s added to entry %s by %s", comment.id, entry.id, author.username)
        return EntryResponse.from_entry(entry)

    async def remove_comment(
        self,
        db: AsyncSession,
        entry_id: str,
        comment_id: str,
        requester: User,
    ) -> None:
        """
        Remove one comment; the remaining comments keep their order.

        Raises:
            NotFoundError: no such entry, or no such comment on it
            ForbiddenError: requester is neither comment author nor entry owner
        """
        entry = await self._get_entry_for_update(db, entry_id)
        target_id = _parse_id(comment_id, "comment")

        comment = next((c for c in entry.comments if c.id == target_id), None)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))

        if requester.id not in (comment.author_id, entry.author_id):
            raise ForbiddenError(
                message="Not authorized to delete this comment",
                context={"entry_id": str(entry.id), "comment_id": str(comment.id)},
            )

        entry.comments.remove(comment)
        await db.flush()
        logger.info("Comment %s removed from entry %s by %s", comment.id, entry.id, requester.username)

    async def delete_entry(
        self,
        db: AsyncSession,
        files: FileService,
        entry_id: str,
        requester: User,
    ) -> None:
        """
        Delete an entry owned by `requester`, plus its media file.

        Raises:
            NotFoundError: no such entry
            ForbiddenError: requester does not own the entry
        """
        entry = await self._get_entry_for_update(db, entry_id)
        if entry.author_id != requester.id:
            raise ForbiddenError(
                message="Not authorized to delete this entry",
                context={"entry_id": str(entry.id)},
            )

        kind = entry.entry_type
        content = entry.content

        await db.delete(entry)
        # The row must be gone for good before its file is unlinked
        await db.commit()

        if kind.has_file:
            await files.delete_file(content)
        logger.info("Entry deleted: %s by %s", entry.id, requester.username)

    async def _get_entry_for_update(self, db: AsyncSession, entry_id: str) -> JournalEntry:
        """Load and row-lock an entry, or raise NotFoundError."""
        uid = _parse_id(entry_id, "entry")
        result = await db.execute(
            select(JournalEntry)
            .where(JournalEntry.id == uid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        entry = result.scalars().first()
        if entry is None:
            raise NotFoundError(resource="entry", resource_id=str(entry_id))
        return entry


# ── Singleton Instance ────────────────────────────────────────────────────
# Stateless: sessions and the FileService are passed in per call
entry_service = EntryService()
