"""
CoupleJournal Backend - Journal Entry Route Handlers
======================================================

What:  The shared feed: create, list, like, comment, delete.
How:   Every route requires a bearer token (get_current_user). Handlers
       decode the request and delegate to EntryService.
Who:   Called by the mobile client's feed and composer screens.

Create accepts two encodings:
    multipart/form-data   type, content, file  (all entry types)
    application/json      {"type": "text", "content": "..."}
"""

import logging
from typing import AsyncGenerator, List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from couplejournal.database import get_db_session
from couplejournal.dependencies import get_current_user, get_file_service
from couplejournal.exceptions import PayloadTooLargeError, ValidationError
from couplejournal.models.user import User
from couplejournal.schemas.common import ErrorResponse, MessageResponse
from couplejournal.schemas.entry import (
    CommentCreateRequest,
    EntryResponse,
    EntrySubmission,
)
from couplejournal.services.entry_service import entry_service
from couplejournal.services.file_service import FileService

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api", tags=["Entries"])

_AUTH_ERRORS = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}

# Room for the multipart boundaries, part headers and text fields around the file
FORM_OVERHEAD = 64 * 1024


def _form_text(value) -> Optional[str]:
    return value if isinstance(value, str) else None


async def read_entry_submission(
    request: Request,
    files: FileService = Depends(get_file_service),
) -> AsyncGenerator[EntrySubmission, None]:
    """
    Decode a create-entry request from JSON or form data.

    Uploaded parts are spooled by Starlette; they are closed once the
    response has been produced. A body whose Content-Length already exceeds
    the upload limit is refused before anything is read.
    """
    content_type = request.headers.get("content-type", "")
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > files.max_size + FORM_OVERHEAD:
        logger.info("Upload rejected: declared body of %s bytes", content_length)
        raise PayloadTooLargeError(files.max_size)

    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            raise ValidationError(message="Request body is not valid JSON")
        if not isinstance(data, dict):
            raise ValidationError(message="Request body must be a JSON object")
        yield EntrySubmission(
            type=_form_text(data.get("type")),
            content=_form_text(data.get("content")),
        )
        return

    form = await request.form()
    try:
        upload = form.get("file")
        yield EntrySubmission(
            type=_form_text(form.get("type")),
            content=_form_text(form.get("content")),
            file=upload if isinstance(upload, UploadFile) else None,
        )
    finally:
        await form.close()


@router.post(
    "/entries",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing type, content or file; upload rejected", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Create a journal entry",
)
async def create_entry(
    user: User = Depends(get_current_user),
    submission: EntrySubmission = Depends(read_entry_submission),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    files: FileService = Depends(get_file_service),
) -> EntryResponse:
    """
    Create a text, image, video or voice entry.

    For media types the file part is required and its stored path becomes
    the entry's content. Text entries ignore any file part.
    """
    return await entry_service.create_entry(
        db,
        files,
        author=user,
        entry_type=submission.type,
        content=submission.content,
        upload=submission.file,
    )


@router.get(
    "/entries",
    response_model=List[EntryResponse],
    responses=_AUTH_ERRORS,
    summary="List every entry, newest first",
)
async def list_entries(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> List[EntryResponse]:
    return await entry_service.list_entries(db)


@router.post(
    "/entries/{entry_id}/like",
    response_model=EntryResponse,
    responses={404: {"description": "Entry not found", "model": ErrorResponse}, **_AUTH_ERRORS},
    summary="Like or unlike an entry",
)
async def toggle_like(
    entry_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> EntryResponse:
    return await entry_service.toggle_like(db, entry_id, user)


@router.post(
    "/entries/{entry_id}/comment",
    response_model=EntryResponse,
    responses={
        400: {"description": "Comment text is required", "model": ErrorResponse},
        404: {"description": "Entry not found", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Comment on an entry",
)
async def add_comment(
    entry_id: str,
    body: Optional[CommentCreateRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> EntryResponse:
    text = body.text if body is not None else None
    return await entry_service.add_comment(db, entry_id, user, text)


@router.delete(
    "/entries/{entry_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the entry owner", "model": ErrorResponse},
        404: {"description": "Entry not found", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Delete an entry",
)
async def delete_entry(
    entry_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    files: FileService = Depends(get_file_service),
) -> MessageResponse:
    await entry_service.delete_entry(db, files, entry_id, user)
    return MessageResponse(message="Entry deleted successfully")


@router.delete(
    "/entries/{entry_id}/comments/{comment_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Neither comment author nor entry owner", "model": ErrorResponse},
        404: {"description": "Entry or comment not found", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Delete a comment",
)
async def delete_comment(
    entry_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await entry_service.remove_comment(db, entry_id, comment_id, user)
    return MessageResponse(message="Comment deleted successfully")
