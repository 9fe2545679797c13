"""
CoupleJournal Backend - Upload Storage Service
================================================

What:  Validates, stores and removes media uploaded with journal entries.
How:   Streams the multipart upload to `<name>.part` in the upload directory,
       enforcing the size limit chunk by chunk, then renames it into place.
       The entry stores the public path "/uploads/<name>", which StaticFiles
       serves back to the client.
Who:   Called by EntryService when creating and deleting image/video/voice
       entries. One instance lives on `app.state.file_service`.

Upload Rules:
    1. MIME type: the declared Content-Type must start with image/, video/
       or audio/. Checked before a single byte is written.
    2. Size: the declared size (when the client sends one) and the streamed
       byte count must both stay within MAX_UPLOAD_SIZE.
    3. Filename: "<epoch millis>-<9 random digits><original extension>".
       No other part of the client filename reaches the disk.

Directory Structure:
    uploads/
    ├── 1700000000000-123456789.jpg
    ├── 1700000000412-987654321.mp4
    └── 1700000001337-555555555.m4a
"""

import logging
import random
import re
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

from couplejournal.config import settings
from couplejournal.exceptions import (
    FileStorageError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)

logger = logging.getLogger(__name__)

# ── Allowed Media ─────────────────────────────────────────────────────────
ALLOWED_MIME_PREFIXES = ("image/", "video/", "audio/")

# Extensions copied from the client filename must look like ".jpg", ".m4a"
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")

CHUNK_SIZE = 64 * 1024


class FileService:
    """
    Manages the upload directory.

    Lifecycle of an uploaded file:
        1. EntryService hands over the multipart UploadFile
        2. validate_mime_type() rejects anything that is not media
        3. store_upload() streams to a temp file, checking size as it goes
        4. The temp file is renamed to its final name; the public path is
           returned and stored as the entry's content
        5. delete_file() removes it again when the entry is deleted (or
           when the database insert fails after the file was written)
    """

    def __init__(
        self,
        upload_root: Optional[str] = None,
        url_prefix: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        """
        Args:
            upload_root: Override settings.upload_root (used in tests)
            url_prefix: Override settings.upload_url_prefix
            max_size: Override settings.max_upload_size
        """
        self.upload_root = Path(upload_root or settings.upload_root).resolve()
        self.url_prefix = "/" + (url_prefix or settings.upload_url_prefix).strip("/")
        self.max_size = max_size or settings.max_upload_size
        self.upload_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_root=%s", self.upload_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_mime_type(self, content_type: Optional[str]) -> str:
        """
        Accept only image, video and audio uploads.

        Returns:
            The lowercased content type
        Raises:
            UnsupportedMediaTypeError for anything else (including no type)
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        if not mime.startswith(ALLOWED_MIME_PREFIXES):
            raise UnsupportedMediaTypeError(content_type)
        return mime

    def validate_size(self, size: Optional[int]) -> None:
        """Raise PayloadTooLargeError when `size` exceeds the limit."""
        if size is not None and size > self.max_size:
            raise PayloadTooLargeError(self.max_size)

    # ── Naming ────────────────────────────────────────────────────────────

    def generate_filename(self, original_filename: Optional[str]) -> str:
        """
        Build "<epoch millis>-<9 random digits><ext>".

        The extension is taken from the client's filename when it is a plain
        alphanumeric suffix, otherwise dropped.
        """
        extension = Path(original_filename or "").suffix
        if not _SAFE_EXTENSION.match(extension):
            extension = ""
        millis = int(time.time() * 1000)
        suffix = random.randint(0, 999_999_999)
        return f"{millis}-{suffix:09d}{extension.lower()}"

    def public_path(self, filename: str) -> str:
        """Path stored as entry content, e.g. "/uploads/1700000000000-123456789.jpg"."""
        return f"{self.url_prefix}/{filename}"

    def resolve(self, public_path: str) -> Optional[Path]:
        """
        Map a stored public path back to a file inside the upload directory.

        Returns None for anything that does not name a single file directly
        under the upload root (other prefixes, nested paths, "..").
        """
        prefix = self.url_prefix + "/"
        if not public_path or not public_path.startswith(prefix):
            return None
        name = public_path[len(prefix):]
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        target = (self.upload_root / name).resolve()
        if target.parent != self.upload_root:
            return None
        return target

    # ── Storage ───────────────────────────────────────────────────────────

    async def store_upload(self, upload: UploadFile) -> str:
        """
        Validate and persist an uploaded media file.

        Returns:
            Public path of the stored file

        Raises:
            UnsupportedMediaTypeError: not image/video/audio
            PayloadTooLargeError: declared or streamed size over the limit
            FileStorageError: the disk write failed
        """
        self.validate_mime_type(upload.content_type)
        self.validate_size(upload.size)

        filename = self.generate_filename(upload.filename)
        final_path = self.upload_root / filename
        temp_path = self.upload_root / f"{filename}.part"
        written = 0
        stored = False

        try:
            async with aiofiles.open(temp_path, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    self.validate_size(written)
                    await out.write(chunk)
            await aiofiles.os.replace(temp_path, final_path)
            stored = True
        except PayloadTooLargeError:
            logger.info("Upload rejected: exceeded %d bytes", self.max_size)
            raise
        except OSError as e:
            logger.error("Failed to store upload at %s: %s", final_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(final_path), "os_error": str(e)},
            )
        finally:
            if not stored:
                await self._remove_quietly(temp_path)

        logger.info("File stored: %s (%d bytes)", filename, written)
        return self.public_path(filename)

    async def delete_file(self, public_path: str) -> None:
        """
        Remove a stored upload. Best-effort.

        A file that is already gone is fine. Paths outside the upload
        directory are ignored. Other OS errors are logged, not raised, so a
        stray file never blocks deleting the entry that referenced it.
        """
        target = self.resolve(public_path)
        if target is None:
            logger.warning("Refusing to delete path outside upload root: %s", public_path)
            return
        try:
            await aiofiles.os.remove(target)
            logger.info("Deleted upload: %s", target.name)
        except FileNotFoundError:
            logger.debug("Upload already gone: %s", target.name)
        except OSError as e:
            logger.warning("Failed to delete upload %s: %s", target.name, str(e))

    async def _remove_quietly(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove partial upload %s: %s", path.name, str(e))
