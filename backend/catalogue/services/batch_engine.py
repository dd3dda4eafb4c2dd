"""
Batch execution engine.

Takes a decoded list of book records, materializes each one in its own
session on a bounded worker pool and collects a per-record outcome. A fatal
error in one record never affects its siblings; every outcome carries the
record's input index so callers can reconcile results positionally.
"""

import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from catalogue.core.config import get_settings
from catalogue.core.database import SessionLocal
from catalogue.core.exceptions import (
    BatchRejectedError,
    IngestionError,
    IngestionWarning,
    ValidationError,
)
from catalogue.core.logging import batch_id_var, get_context_logger, get_logger, request_id_var
from catalogue.schemas.book import BookRecord
from catalogue.services.images import ImageBlob, ImageRole, group_blobs_by_record
from catalogue.services.materializer import RecordMaterializer
from catalogue.services.object_storage import ObjectStorage, get_object_storage
from catalogue.services.taxonomy import TaxonomyMode

logger = get_logger(__name__)

CANCELLED = "Cancelled"
INTERNAL_ERROR = "InternalError"
UNTITLED = "(untitled)"


@dataclass(frozen=True)
class CreatedBookEntry:
    index: int
    book_id: int
    title: str
    warnings: tuple[IngestionWarning, ...] = ()


@dataclass(frozen=True)
class FailedRecordEntry:
    index: int
    title: str
    error_kind: str
    message: str


@dataclass(frozen=True)
class BatchResult:
    """Immutable outcome of one batch run."""

    created_books: tuple[CreatedBookEntry, ...]
    errors: tuple[FailedRecordEntry, ...]
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        return len(self.created_books)

    @property
    def failure_count(self) -> int:
        return len(self.errors)

    def to_response(self) -> dict[str, Any]:
        return {
            "successful": self.success_count,
            "failed": self.failure_count,
            "cancelled": self.cancelled,
            "results": {
                "created": [
                    {
                        "index": entry.index,
                        "bookId": entry.book_id,
                        "warnings": [str(w) for w in entry.warnings],
                    }
                    for entry in self.created_books
                ],
                "errors": [
                    {
                        "index": entry.index,
                        "title": entry.title,
                        "errorKind": entry.error_kind,
                        "message": entry.message,
                    }
                    for entry in self.errors
                ],
            },
        }


MaterializerFactory = Callable[[Session, ObjectStorage], RecordMaterializer]


class BatchEngine:
    """Runs a batch of records through the record materializer."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        storage: ObjectStorage | None = None,
        max_workers: int | None = None,
        max_batch_size: int | None = None,
        materializer_factory: MaterializerFactory = RecordMaterializer,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.storage = storage or get_object_storage()
        self.max_workers = max_workers or settings.INGEST_MAX_WORKERS
        self.max_batch_size = max_batch_size or settings.MAX_BATCH_SIZE
        self.materializer_factory = materializer_factory

    def run(
        self,
        records: Sequence[BookRecord | Mapping[str, Any]],
        publisher_id: int,
        images: Mapping[str, ImageBlob] | None = None,
        mode: TaxonomyMode = TaxonomyMode.RESTRICTED,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """
        Materialize every record for publisher_id.

        Args:
            records: Decoded records, as BookRecord or raw dicts
            publisher_id: Publisher resolved by the auth layer
            images: Blobs keyed book_<index>_<role>
            mode: Taxonomy restriction mode for every record in the batch
            cancel_event: Once set, records not yet started are skipped

        Raises:
            BatchRejectedError: the batch is too large or its image keys
                are malformed; nothing has been processed
        """
        if len(records) > self.max_batch_size:
            raise BatchRejectedError(
                f"Batch has {len(records)} records; maximum is {self.max_batch_size}"
            )

        try:
            blobs_by_record = group_blobs_by_record(images or {}, len(records))
        except ValueError as e:
            raise BatchRejectedError(str(e)) from e

        cancel_event = cancel_event or threading.Event()
        batch_id = uuid.uuid4().hex
        request_id = request_id_var.get()
        log = get_context_logger(__name__, batch_id=batch_id, publisher_id=publisher_id)
        log.info(f"Starting batch of {len(records)} records (mode={mode.value})")

        created: list[CreatedBookEntry] = []
        errors: list[FailedRecordEntry] = []

        if records:
            workers = max(1, min(self.max_workers, len(records)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest") as pool:
                futures = [
                    pool.submit(
                        self._process_record,
                        index,
                        raw,
                        publisher_id,
                        blobs_by_record.get(index, {}),
                        mode,
                        cancel_event,
                        batch_id,
                        request_id,
                    )
                    for index, raw in enumerate(records)
                ]
                for future in as_completed(futures):
                    outcome = future.result()
                    if isinstance(outcome, CreatedBookEntry):
                        created.append(outcome)
                    else:
                        errors.append(outcome)

        created.sort(key=lambda entry: entry.index)
        errors.sort(key=lambda entry: entry.index)

        result = BatchResult(
            created_books=tuple(created),
            errors=tuple(errors),
            cancelled=cancel_event.is_set(),
        )
        log.info(
            f"Batch finished: {result.success_count} succeeded, {result.failure_count} failed",
            extra={
                "extra_fields": {
                    "successful": result.success_count,
                    "failed": result.failure_count,
                    "cancelled": result.cancelled,
                }
            },
        )
        return result

    def _process_record(
        self,
        index: int,
        raw: BookRecord | Mapping[str, Any],
        publisher_id: int,
        images: Mapping[ImageRole, ImageBlob],
        mode: TaxonomyMode,
        cancel_event: threading.Event,
        batch_id: str,
        request_id: str | None = None,
    ) -> CreatedBookEntry | FailedRecordEntry:
        """Materialize one record; never raises."""
        title = _record_title(raw)

        if cancel_event.is_set():
            return FailedRecordEntry(
                index=index,
                title=title,
                error_kind=CANCELLED,
                message="Batch was cancelled before this record started",
            )

        # Worker threads start with an empty context
        batch_token = batch_id_var.set(batch_id)
        request_token = request_id_var.set(request_id)
        try:
            record = _coerce_record(raw)
            with self.session_factory() as db:
                materializer = self.materializer_factory(db, self.storage)
                book = materializer.materialize(record, publisher_id, images, mode)
            return CreatedBookEntry(
                index=index,
                book_id=book.book_id,
                title=book.title,
                warnings=tuple(book.warnings),
            )

        except IngestionError as e:
            logger.warning(
                f"Record {index} '{title}' failed: {e.error_kind}: {e.message}",
                extra={"extra_fields": {"index": index, "error_kind": e.error_kind}},
            )
            return FailedRecordEntry(index=index, title=title, error_kind=e.error_kind, message=e.message)

        except Exception as e:
            logger.error(
                f"Record {index} '{title}' failed unexpectedly",
                extra={"extra_fields": {"index": index, "error": str(e)}},
                exc_info=True,
            )
            return FailedRecordEntry(
                index=index,
                title=title,
                error_kind=INTERNAL_ERROR,
                message=str(e) or e.__class__.__name__,
            )

        finally:
            request_id_var.reset(request_token)
            batch_id_var.reset(batch_token)


def _record_title(raw: BookRecord | Mapping[str, Any]) -> str:
    if isinstance(raw, BookRecord):
        title = raw.title
    elif isinstance(raw, Mapping):
        title = raw.get("title")
    else:
        title = None
    if isinstance(title, str) and title.strip():
        return title.strip()
    return UNTITLED


def _coerce_record(raw: BookRecord | Mapping[str, Any]) -> BookRecord:
    """Validate a raw record inside its own scope so bad types fail only that record."""
    if isinstance(raw, BookRecord):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Record must be an object, got {type(raw).__name__}")
    try:
        return BookRecord.model_validate(raw)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid record: {problems}") from e
