"""
Object storage for uploaded book images.

The ingestion pipeline only depends on the ObjectStorage protocol; the local
disk implementation backs development and tests.
"""

import hashlib
import uuid
from pathlib import Path
from typing import Protocol

from catalogue.core.config import get_settings
from catalogue.core.logging import get_logger

logger = get_logger(__name__)


class ObjectStorageError(Exception):
    """An object could not be written to or removed from storage."""


class ObjectStorage(Protocol):
    def upload(self, data: bytes, filename: str, folder: str = "covers") -> str:
        """Store bytes and return the storage key."""
        ...

    def public_url(self, key: str) -> str:
        ...

    def delete(self, key: str) -> None:
        ...


class LocalObjectStorage:
    """Stores objects as files under a root directory."""

    def __init__(self, root: str | Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def upload(self, data: bytes, filename: str, folder: str = "covers") -> str:
        suffix = Path(filename).suffix.lower() if filename else ""
        digest = hashlib.sha256(data).hexdigest()[:12]
        key = f"{folder}/{uuid.uuid4().hex}-{digest}{suffix}"
        path = self.root / key

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise ObjectStorageError(f"Failed to write {key}: {e}") from e

        return key

    def public_url(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"

    def delete(self, key: str) -> None:
        path = self.root / key
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ObjectStorageError(f"Failed to delete {key}: {e}") from e


def get_object_storage() -> ObjectStorage:
    """Dependency returning the configured storage backend."""
    settings = get_settings()
    return LocalObjectStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
