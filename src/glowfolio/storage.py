"""Validation and on-disk storage of uploaded portfolio images."""

import logging
import os
import time
from dataclasses import dataclass

from fastapi import UploadFile, status
from werkzeug.utils import secure_filename

from .errors import AppError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})


class StorageError(Exception):
    """Raised when an image cannot be written to disk."""


@dataclass
class StoredFile:
    filename: str
    original_filename: str
    file_path: str
    file_size: int
    mime_type: str


def file_extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower()


class ImageStorage:
    """Keeps uploaded images under ``root/<category slug>/``."""

    def __init__(self, root: str, max_file_size: int):
        self.root = root
        self.max_file_size = max_file_size

    def ensure_root(self) -> None:
        os.makedirs(self.root, exist_ok=True)

    def read_upload(self, upload: UploadFile) -> bytes:
        """Check type, extension and size of ``upload`` and return its bytes."""
        if upload.content_type not in ALLOWED_MIME_TYPES:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_FILE",
                "Neplatný typ souboru. Povolené formáty: JPG, JPEG, PNG, WEBP",
            )
        if file_extension(upload.filename or "") not in ALLOWED_EXTENSIONS:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_FILE",
                "Neplatná přípona souboru. Povolené přípony: .jpg, .jpeg, .png, .webp",
            )

        content = upload.file.read(self.max_file_size + 1)
        if len(content) > self.max_file_size:
            limit_mb = self.max_file_size // (1024 * 1024)
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "FILE_TOO_LARGE",
                f"Soubor je příliš velký. Maximální velikost je {limit_mb}MB.",
            )
        return content

    def _unique_path(self, directory: str, original_filename: str) -> tuple[str, str]:
        safe_name = secure_filename(original_filename)
        if not file_extension(safe_name):
            # nothing ASCII survived sanitising, keep only the extension
            safe_name = f"image{file_extension(original_filename)}"
        timestamp = int(time.time() * 1000)
        while True:
            filename = f"{timestamp}-{safe_name}"
            path = os.path.join(directory, filename)
            if not os.path.exists(path):
                return filename, path
            timestamp += 1

    def save(
        self, category_slug: str, original_filename: str, content: bytes, mime_type: str
    ) -> StoredFile:
        """Write ``content`` under the category's directory with a unique name."""
        directory = os.path.join(self.root, category_slug)
        try:
            os.makedirs(directory, exist_ok=True)
            filename, path = self._unique_path(directory, original_filename)
            with open(path, "xb") as fh:
                fh.write(content)
        except OSError as exc:
            logger.exception("failed to save image for category=%s", category_slug)
            raise StorageError("failed to save image file") from exc

        logger.info("stored image %s (%d bytes)", path, len(content))
        return StoredFile(
            filename=filename,
            original_filename=original_filename,
            file_path=path,
            file_size=len(content),
            mime_type=mime_type,
        )

    def remove(self, file_path: str) -> bool:
        """Delete a stored file; failures are logged and reported as ``False``."""
        try:
            os.remove(file_path)
        except OSError as exc:
            logger.error("failed to delete image file %s: %s", file_path, exc)
            return False
        logger.info("deleted image file %s", file_path)
        return True
