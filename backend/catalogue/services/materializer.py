"""
Record materializer.

Creates one book from one submitted record. The work splits into two phases
inside a single session:

1. Fatal phase: structural validation, ownership check, duplicate check and
   the book row insert. Any failure here leaves nothing behind.
2. Enrichment phase: taxonomy links and image assets. Unresolved or capped
   labels and missing image roles become warnings on the created book.

An image role that fails to upload is fatal for the record: the session is
rolled back and the objects already uploaded for the record are deleted, so
a book never exists without the images the caller believes it sent.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalogue.core.exceptions import (
    IMAGE_MISSING,
    AuthorizationError,
    DuplicateError,
    IngestionWarning,
    StorageError,
    ValidationError,
)
from catalogue.core.logging import get_logger
from catalogue.models.book import Book
from catalogue.models.publisher import Author
from catalogue.schemas.book import BookRecord
from catalogue.services.images import ImageBlob, ImageRole, ImageSlotBinder
from catalogue.services.object_storage import ObjectStorage, ObjectStorageError
from catalogue.services.ownership import OwnershipGuard
from catalogue.services.taxonomy import (
    TaxonomyMode,
    TaxonomyResolver,
    TaxonomySelection,
    link_selections,
)

logger = get_logger(__name__)


@dataclass
class MaterializedBook:
    """A committed book and the warnings raised while enriching it."""

    book_id: int
    title: str
    selections: list[TaxonomySelection] = field(default_factory=list)
    missing_roles: list[ImageRole] = field(default_factory=list)
    warnings: list[IngestionWarning] = field(default_factory=list)


class RecordMaterializer:
    """Creates a single book plus its taxonomy links and images."""

    def __init__(
        self,
        db: Session,
        storage: ObjectStorage,
        guard: OwnershipGuard | None = None,
        resolver: TaxonomyResolver | None = None,
        binder: ImageSlotBinder | None = None,
    ):
        self.db = db
        self.storage = storage
        self.guard = guard or OwnershipGuard(db)
        self.resolver = resolver or TaxonomyResolver(db)
        self.binder = binder or ImageSlotBinder(db, storage)

    def materialize(
        self,
        record: BookRecord,
        publisher_id: int,
        images: Mapping[ImageRole, ImageBlob] | None = None,
        mode: TaxonomyMode = TaxonomyMode.RESTRICTED,
    ) -> MaterializedBook:
        """
        Create the book described by record for publisher_id.

        Raises:
            ValidationError: required fields missing
            AuthorizationError: author not under active contract
            DuplicateError: isbn/asin already catalogued
            StorageError: one or more images failed to upload
        """
        self._validate(record)

        if not self.guard.verify(publisher_id, record.author_id):
            raise AuthorizationError(
                f"Author with ID {record.author_id} is not associated with this publisher"
            )

        self._check_duplicates(record)

        uploaded: list[str] = []
        try:
            book = self._insert_book(record, publisher_id)

            resolution = self.resolver.resolve(record.taxonomy_labels(), mode)
            link_selections(self.db, book.id, resolution.selections)
            warnings = list(resolution.warnings)

            binding = self.binder.bind(book.id, images or {}, uploaded)
            if binding.failed_roles:
                roles = ", ".join(role.value for role in binding.failed_roles)
                raise StorageError(
                    f"Failed to store images for roles: {roles}",
                    failed_roles=[role.value for role in binding.failed_roles],
                )

            if binding.missing_roles:
                roles = ", ".join(role.value for role in binding.missing_roles)
                warnings.append(IngestionWarning(IMAGE_MISSING, f"no image supplied for: {roles}"))

            self.db.commit()

        except IntegrityError as e:
            self._abort(uploaded)
            if self._is_identifier_conflict(e):
                raise DuplicateError(self._duplicate_message(record)) from e
            raise
        except Exception:
            self._abort(uploaded)
            raise

        logger.info(
            f"Created book {book.id} '{record.title}'",
            extra={
                "extra_fields": {
                    "book_id": book.id,
                    "publisher_id": publisher_id,
                    "taxonomy_count": len(resolution.selections),
                    "image_count": len(binding.assets),
                    "warning_count": len(warnings),
                }
            },
        )

        return MaterializedBook(
            book_id=book.id,
            title=record.title,
            selections=resolution.selections,
            missing_roles=binding.missing_roles,
            warnings=warnings,
        )

    @staticmethod
    def _validate(record: BookRecord) -> None:
        missing = []
        if not record.title:
            missing.append("title")
        if record.author_id is None:
            missing.append("authorId")
        if not record.formats:
            missing.append("formats")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def _check_duplicates(self, record: BookRecord) -> None:
        conditions = []
        if record.isbn:
            conditions.append(Book.isbn == record.isbn)
        if record.asin:
            conditions.append(Book.asin == record.asin)
        if not conditions:
            return

        existing = self.db.query(Book.id).filter(or_(*conditions)).first()
        if existing:
            raise DuplicateError(self._duplicate_message(record))

    def _insert_book(self, record: BookRecord, publisher_id: int) -> Book:
        author = self.db.get(Author, record.author_id)
        book = Book(
            title=record.title,
            description=record.description,
            author_id=record.author_id,
            author_name=author.name if author else None,
            publisher_id=publisher_id,
            page_count=record.page_count,
            formats=list(record.formats),
            published_date=record.published_date,
            isbn=record.isbn,
            asin=record.asin,
            language=record.language,
            original_title=record.original_title,
            series=record.series,
            setting=record.setting,
            awards=list(record.awards),
            characters=list(record.characters),
        )
        self.db.add(book)
        self.db.flush()  # surfaces unique violations before enrichment
        return book

    def _abort(self, uploaded_keys: list[str]) -> None:
        self.db.rollback()
        for key in uploaded_keys:
            try:
                self.storage.delete(key)
            except ObjectStorageError as e:
                logger.error(
                    f"Could not remove orphaned object {key}",
                    extra={"extra_fields": {"storage_key": key, "error": str(e)}},
                )

    @staticmethod
    def _is_identifier_conflict(error: IntegrityError) -> bool:
        detail = str(error.orig).lower()
        return "isbn" in detail or "asin" in detail

    @staticmethod
    def _duplicate_message(record: BookRecord) -> str:
        identifiers = []
        if record.isbn:
            identifiers.append(f"ISBN {record.isbn}")
        if record.asin:
            identifiers.append(f"ASIN {record.asin}")
        return f"A book with {' or '.join(identifiers) or 'this identifier'} already exists"
