"""
ORM models. Importing this package registers every table with Base.metadata.
"""

from couplejournal.models.user import User
from couplejournal.models.entry import Comment, EntryType, JournalEntry, entry_likes

__all__ = ["User", "JournalEntry", "Comment", "EntryType", "entry_likes"]
