"""
CoupleJournal Backend - Journal Entry Schemas
===============================================

What:  Pydantic models for entries and comments as the mobile client reads
       them, plus explicit validation for entry submissions and comments.

Wire format (kept identical to what the client already renders):
    {
        "_id": "...",
        "userId": {"_id": "...", "displayName": "Alice"},
        "type": "image",
        "content": "/uploads/1700000000000-123456789.jpg",
        "timestamp": "2024-01-15T12:00:00Z",
        "likes": ["<user id>", ...],
        "comments": [
            {"_id": "...", "userId": {"_id": "...", "displayName": "Bob"},
             "text": "so cute", "timestamp": "..."}
        ]
    }

Author fields expose only id and display name.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile

from couplejournal.models.entry import Comment, EntryType, JournalEntry
from couplejournal.models.user import User


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AuthorSummary(BaseModel):
    model_config = {"populate_by_name": True}

    id: uuid.UUID = Field(alias="_id")
    display_name: str = Field(alias="displayName")

    @classmethod
    def from_user(cls, user: User) -> "AuthorSummary":
        return cls(id=user.id, display_name=user.display_name)


class CommentResponse(BaseModel):
    model_config = {"populate_by_name": True}

    id: uuid.UUID = Field(alias="_id")
    author: AuthorSummary = Field(alias="userId")
    text: str
    timestamp: datetime

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            author=AuthorSummary.from_user(comment.author),
            text=comment.text,
            timestamp=comment.timestamp,
        )


class EntryResponse(BaseModel):
    """
    What:  Full representation of a journal entry.
    Who:   Returned by create, list, like and comment endpoints.
    """

    model_config = {"populate_by_name": True}

    id: uuid.UUID = Field(alias="_id")
    author: AuthorSummary = Field(alias="userId")
    type: EntryType
    content: str
    timestamp: datetime
    likes: List[uuid.UUID] = Field(default_factory=list)
    comments: List[CommentResponse] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: JournalEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            author=AuthorSummary.from_user(entry.author),
            type=entry.entry_type,
            content=entry.content,
            timestamp=entry.timestamp,
            likes=[user.id for user in entry.liked_by],
            comments=[CommentResponse.from_comment(c) for c in entry.comments],
        )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CommentCreateRequest(BaseModel):
    """Body of POST /api/entries/{id}/comment."""

    text: Optional[str] = None


@dataclass
class EntrySubmission:
    """
    A create-entry request after transport decoding.

    Multipart forms and JSON bodies both end up here (see
    routes/entries.py::read_entry_submission).
    """

    type: Optional[str]
    content: Optional[str] = None
    file: Optional[UploadFile] = None


def validate_entry_submission(submission: EntrySubmission) -> Optional[str]:
    """Return the first problem with an entry submission, or None."""
    if not submission.type:
        return "Type is required"
    try:
        entry_type = EntryType(submission.type)
    except ValueError:
        allowed = ", ".join(t.value for t in EntryType)
        return f"Invalid entry type '{submission.type}'. Allowed: {allowed}"
    if entry_type.has_file and submission.file is None:
        return "File is required for this entry type"
    if not entry_type.has_file and not (submission.content or "").strip():
        return "Content is required for text entries"
    return None


def validate_comment_text(text: Optional[str]) -> Optional[str]:
    """Reject missing or whitespace-only comment text."""
    if not text or not text.strip():
        return "Comment text is required"
    return None
