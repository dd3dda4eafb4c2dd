"""
Image slot binding.

A book carries up to six typed images, one per role. Uploaded blobs are
matched to a role, pushed to object storage and recorded as BookImage rows.
"""

import re
import struct
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy.orm import Session

from catalogue.core.config import get_settings
from catalogue.core.logging import get_logger
from catalogue.models.book import BookImage
from catalogue.services.object_storage import ObjectStorage

logger = get_logger(__name__)


class ImageRole(str, Enum):
    BOOK_DETAIL = "book-detail"
    BACKGROUND = "background"
    HERO = "hero"
    BOOK_CARD = "book-card"
    GRID_ITEM = "grid-item"
    MINI = "mini"


ROLE_ORDER: tuple[ImageRole, ...] = tuple(ImageRole)

# Multipart field names look like book_3_hero or book_0_book_detail
BLOB_KEY_PATTERN = re.compile(r"^book_(\d+)_([a-z][a-z_-]*)$")

JPEG_SOF_MARKERS = {0xC0, 0xC1, 0xC2, 0xC3, 0xC5, 0xC6, 0xC7, 0xC9, 0xCA, 0xCB, 0xCD, 0xCE, 0xCF}


@dataclass(frozen=True)
class ImageBlob:
    """An uploaded image as received from the transport layer."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size_kb(self) -> int:
        return round(len(self.data) / 1024)


@dataclass
class ImageBindResult:
    assets: list[BookImage] = field(default_factory=list)
    missing_roles: list[ImageRole] = field(default_factory=list)
    failed_roles: dict[ImageRole, str] = field(default_factory=dict)
    uploaded_keys: list[str] = field(default_factory=list)


def parse_role(value: "str | ImageRole") -> ImageRole:
    """Accepts canonical roles and their underscore spellings (book_detail)."""
    if isinstance(value, ImageRole):
        return value
    try:
        return ImageRole(value.replace("_", "-"))
    except ValueError:
        allowed = ", ".join(role.value for role in ImageRole)
        raise ValueError(f"Unknown image role '{value}' (expected one of: {allowed})") from None


def parse_blob_key(key: str) -> tuple[int, ImageRole]:
    """Split a book_<index>_<role> key into its record index and role."""
    match = BLOB_KEY_PATTERN.match(key)
    if not match:
        raise ValueError(f"Malformed image field name '{key}' (expected book_<index>_<role>)")
    return int(match.group(1)), parse_role(match.group(2))


def group_blobs_by_record(
    blobs: Mapping[str, ImageBlob],
    record_count: int,
) -> dict[int, dict[ImageRole, ImageBlob]]:
    """
    Group transport-keyed blobs by record index.

    Raises:
        ValueError: a key is malformed, names an unknown role, points past
            the end of the batch, or repeats a role for the same record
    """
    grouped: dict[int, dict[ImageRole, ImageBlob]] = {}
    for key, blob in blobs.items():
        index, role = parse_blob_key(key)
        if index >= record_count:
            raise ValueError(f"Image field '{key}' refers to record {index}, batch has {record_count}")
        slots = grouped.setdefault(index, {})
        if role in slots:
            raise ValueError(f"More than one {role.value} image for record {index}")
        slots[role] = blob
    return grouped


def read_image_dimensions(data: bytes) -> tuple[int, int] | None:
    """Pixel (width, height) from PNG, GIF or JPEG headers; None if unknown."""
    if data[:8] == b"\x89PNG\r\n\x1a\n" and data[12:16] == b"IHDR" and len(data) >= 24:
        return struct.unpack(">II", data[16:24])

    if data[:6] in (b"GIF87a", b"GIF89a") and len(data) >= 10:
        return struct.unpack("<HH", data[6:10])

    if data[:2] == b"\xff\xd8":
        i = 2
        while i + 4 <= len(data):
            if data[i] != 0xFF:
                i += 1
                continue
            marker = data[i + 1]
            if marker == 0xFF:
                i += 1
                continue
            if marker == 0x01 or 0xD0 <= marker <= 0xD9:
                i += 2
                continue
            (length,) = struct.unpack(">H", data[i + 2 : i + 4])
            if marker in JPEG_SOF_MARKERS:
                if i + 9 > len(data):
                    return None
                height, width = struct.unpack(">HH", data[i + 5 : i + 9])
                return width, height
            i += 2 + length

    return None


class ImageSlotBinder:
    """Uploads one book's images and stages their BookImage rows."""

    def __init__(self, db: Session, storage: ObjectStorage, max_workers: int | None = None):
        self.db = db
        self.storage = storage
        self.max_workers = max_workers or get_settings().IMAGE_UPLOAD_MAX_WORKERS

    def bind(
        self,
        book_id: int,
        blobs_by_role: Mapping["str | ImageRole", ImageBlob],
        uploaded_keys: list[str] | None = None,
    ) -> ImageBindResult:
        """
        Attach whatever roles were supplied.

        Every supplied role is attempted even if another fails. Uploads run
        concurrently; a role's row is staged only once its upload finished.
        Keys are appended to uploaded_keys as soon as each object exists, so
        a caller holding that list can clean up even if bind raises. The
        caller decides what to do with failed_roles and commits.
        """
        supplied = {parse_role(role): blob for role, blob in blobs_by_role.items()}
        result = ImageBindResult(missing_roles=[role for role in ROLE_ORDER if role not in supplied])
        if uploaded_keys is not None:
            result.uploaded_keys = uploaded_keys

        if not supplied:
            return result

        workers = max(1, min(self.max_workers, len(supplied)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="image-upload") as pool:
            futures = {
                pool.submit(self.storage.upload, blob.data, blob.filename, "covers"): (role, blob)
                for role, blob in supplied.items()
            }

            for future in as_completed(futures):
                role, blob = futures[future]
                try:
                    key = future.result()
                    result.uploaded_keys.append(key)
                    self._stage(book_id, role, blob, key, result)
                except Exception as e:
                    logger.warning(
                        f"Storing {role.value} image of book {book_id} failed",
                        extra={"extra_fields": {"book_id": book_id, "role": role.value, "error": str(e)}},
                    )
                    result.failed_roles[role] = str(e)

        result.assets.sort(key=lambda asset: ROLE_ORDER.index(ImageRole(asset.image_type)))
        return result

    def _stage(self, book_id: int, role: ImageRole, blob: ImageBlob, key: str, result: ImageBindResult) -> None:
        width, height = read_image_dimensions(blob.data) or (0, 0)
        asset = BookImage(
            book_id=book_id,
            image_type=role.value,
            image_url=self.storage.public_url(key),
            storage_key=key,
            width=width,
            height=height,
            size_kb=blob.size_kb,
        )
        self.db.add(asset)
        result.assets.append(asset)
