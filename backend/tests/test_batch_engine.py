"""Tests for the batch execution engine."""

import contextlib
import threading
import time

import pytest
from sqlalchemy.orm import Session

from catalogue.core.exceptions import AuthorizationError, BatchRejectedError
from catalogue.core.logging import batch_id_var, request_id_var
from catalogue.models.book import Book, BookImage
from catalogue.services.batch_engine import BatchEngine
from catalogue.services.images import ImageBlob
from catalogue.services.materializer import MaterializedBook
from catalogue.services.taxonomy import TaxonomyMode


def book_dict(author_id: int, title: str, isbn: str | None = None, **extra) -> dict:
    data = {"title": title, "authorId": author_id, "formats": ["ebook"], "genres": ["Fantasy"]}
    if isbn:
        data["isbn"] = isbn
    data.update(extra)
    return data


class StubMaterializer:
    """Materializer stand-in: no database, random latency, odd numbers fail."""

    def __init__(self, db, storage):
        pass

    def materialize(self, record, publisher_id, images=None, mode=TaxonomyMode.RESTRICTED):
        number = int(record.title.split()[-1])
        time.sleep(0.001 * ((number * 7) % 5))
        if number % 2:
            raise AuthorizationError(f"Author with ID {record.author_id} is not associated with this publisher")
        if number == 4:
            raise RuntimeError("connection reset")
        return MaterializedBook(book_id=1000 + number, title=record.title)


def stub_engine(**kwargs) -> BatchEngine:
    return BatchEngine(
        session_factory=lambda: contextlib.nullcontext(None),
        storage=object(),
        materializer_factory=StubMaterializer,
        **kwargs,
    )


class TestBatchOutcomes:
    """Test per-record isolation on the real pipeline."""

    def test_mixed_batch(
        self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts, taxonomies
    ):
        """One success, one unauthorized author, one duplicate ISBN."""
        records = [
            book_dict(authors[0].id, "Book A", isbn="9781111111111"),
            book_dict(authors[2].id, "Book B"),
            book_dict(authors[0].id, "Book C", isbn="9781111111111"),
        ]

        result = batch_engine.run(records, publisher.id)

        assert result.success_count == 1
        assert result.failure_count == 2
        assert [e.index for e in result.created_books] == [0]
        assert [(e.index, e.error_kind) for e in result.errors] == [
            (1, "AuthorizationError"),
            (2, "DuplicateError"),
        ]
        assert result.errors[0].title == "Book B"
        assert db.query(Book).count() == 1

    def test_response_shape(
        self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts, taxonomies
    ):
        result = batch_engine.run(
            [book_dict(authors[0].id, "Book A"), {"authorId": authors[0].id}], publisher.id
        )

        response = result.to_response()
        assert response["successful"] == 1
        assert response["failed"] == 1
        assert response["cancelled"] is False
        created = response["results"]["created"][0]
        assert created["index"] == 0
        assert created["bookId"] == result.created_books[0].book_id
        assert any(w.startswith("ImageMissing:") for w in created["warnings"])
        assert response["results"]["errors"] == [
            {
                "index": 1,
                "title": "(untitled)",
                "errorKind": "ValidationError",
                "message": "Missing required fields: title, formats",
            }
        ]

    def test_bad_types_fail_only_their_record(
        self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts, taxonomies
    ):
        records = [
            book_dict(authors[0].id, "Good"),
            book_dict(authors[0].id, "Bad Pages", pageCount="many"),
            "not an object",
        ]

        result = batch_engine.run(records, publisher.id)

        assert [e.index for e in result.created_books] == [0]
        assert [(e.index, e.error_kind) for e in result.errors] == [
            (1, "ValidationError"),
            (2, "ValidationError"),
        ]
        assert result.errors[0].message.startswith("Invalid record:")
        assert "pageCount" in result.errors[0].message
        assert result.errors[1].title == "(untitled)"

    def test_oversized_identifier_fails_only_its_record(
        self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts, taxonomies
    ):
        records = [
            book_dict(authors[0].id, "Good"),
            book_dict(authors[0].id, "Long ISBN", isbn="9" * 30),
            book_dict(authors[0].id, "T" * 501),
        ]

        result = batch_engine.run(records, publisher.id)

        assert [e.index for e in result.created_books] == [0]
        assert [(e.index, e.error_kind) for e in result.errors] == [
            (1, "ValidationError"),
            (2, "ValidationError"),
        ]
        assert "isbn" in result.errors[0].message
        assert "title" in result.errors[1].message
        assert db.query(Book).count() == 1

    def test_images_routed_by_index(
        self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts, taxonomies, make_png
    ):
        records = [book_dict(authors[0].id, "No Images"), book_dict(authors[0].id, "With Images")]
        images = {
            "book_1_hero": ImageBlob("hero.png", "image/png", make_png()),
            "book_1_book_card": ImageBlob("card.png", "image/png", make_png()),
        }

        result = batch_engine.run(records, publisher.id, images)

        by_index = {e.index: e.book_id for e in result.created_books}
        assert db.query(BookImage).filter_by(book_id=by_index[0]).count() == 0
        assert db.query(BookImage).filter_by(book_id=by_index[1]).count() == 2

    def test_unrestricted_mode_applies_to_every_record(
        self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts, taxonomies
    ):
        genres = ["Fiction", "Fantasy", "Romance"]
        records = [
            book_dict(authors[0].id, "One", genres=genres),
            book_dict(authors[0].id, "Two", genres=genres),
        ]

        result = batch_engine.run(records, publisher.id, mode=TaxonomyMode.UNRESTRICTED)

        for entry in result.created_books:
            book = db.get(Book, entry.book_id)
            assert len(book.taxonomies) == 3
            assert not any(w.kind == "TaxonomyCapped" for w in entry.warnings)


class TestBatchRejection:
    """Test whole-batch rejection before any record runs."""

    def test_batch_over_size_limit(self, db: Session, storage, publisher, authors):
        engine = BatchEngine(session_factory=lambda: None, storage=storage, max_batch_size=2)
        records = [book_dict(authors[0].id, f"Book {i}") for i in range(3)]

        with pytest.raises(BatchRejectedError):
            engine.run(records, publisher.id)

        assert db.query(Book).count() == 0

    def test_malformed_image_key(self, batch_engine: BatchEngine, publisher, authors):
        with pytest.raises(BatchRejectedError):
            batch_engine.run(
                [book_dict(authors[0].id, "Book")],
                publisher.id,
                {"cover": ImageBlob("cover.png", "image/png", b"x")},
            )

    def test_image_for_missing_record(self, batch_engine: BatchEngine, publisher, authors):
        with pytest.raises(BatchRejectedError):
            batch_engine.run(
                [book_dict(authors[0].id, "Book")],
                publisher.id,
                {"book_5_hero": ImageBlob("hero.png", "image/png", b"x")},
            )

    def test_empty_batch(self, batch_engine: BatchEngine, publisher):
        result = batch_engine.run([], publisher.id)

        assert result.success_count == 0
        assert result.failure_count == 0


class TestCancellation:
    """Test cancellation of records not yet started."""

    def test_cancelled_before_start(self, db: Session, batch_engine: BatchEngine, publisher, authors, contracts):
        cancel = threading.Event()
        cancel.set()

        result = batch_engine.run(
            [book_dict(authors[0].id, "A"), book_dict(authors[0].id, "B")],
            publisher.id,
            cancel_event=cancel,
        )

        assert result.cancelled is True
        assert result.success_count == 0
        assert [e.error_kind for e in result.errors] == ["Cancelled", "Cancelled"]
        assert db.query(Book).count() == 0

    def test_cancel_mid_batch_keeps_finished_records(self):
        cancel = threading.Event()

        class CancellingMaterializer(StubMaterializer):
            def materialize(self, record, publisher_id, images=None, mode=TaxonomyMode.RESTRICTED):
                cancel.set()
                return MaterializedBook(book_id=1, title=record.title)

        engine = BatchEngine(
            session_factory=lambda: contextlib.nullcontext(None),
            storage=object(),
            max_workers=1,
            materializer_factory=CancellingMaterializer,
        )
        records = [{"title": f"Book {i}", "authorId": 1, "formats": ["ebook"]} for i in range(3)]

        result = engine.run(records, publisher_id=1, cancel_event=cancel)

        assert result.cancelled is True
        assert [e.index for e in result.created_books] == [0]
        assert [(e.index, e.error_kind) for e in result.errors] == [(1, "Cancelled"), (2, "Cancelled")]


class TestConcurrency:
    """Test result reconciliation with parallel workers."""

    def test_outcomes_sorted_by_input_index(self):
        records = [{"title": f"Book {i}", "authorId": 1, "formats": ["ebook"]} for i in range(12)]

        result = stub_engine(max_workers=4).run(records, publisher_id=1)

        assert [e.index for e in result.created_books] == [0, 2, 6, 8, 10]
        assert [e.book_id for e in result.created_books] == [1000, 1002, 1006, 1008, 1010]
        assert [e.index for e in result.errors] == [1, 3, 4, 5, 7, 9, 11]
        assert result.success_count + result.failure_count == len(records)

    def test_unexpected_exception_is_internal_error(self):
        records = [{"title": f"Book {i}", "authorId": 1, "formats": ["ebook"]} for i in range(5)]

        result = stub_engine(max_workers=3).run(records, publisher_id=1)

        internal = [e for e in result.errors if e.error_kind == "InternalError"]
        assert [(e.index, e.message) for e in internal] == [(4, "connection reset")]

    def test_workers_carry_request_and_batch_ids(self):
        seen = []

        class ContextRecordingMaterializer(StubMaterializer):
            def materialize(self, record, publisher_id, images=None, mode=TaxonomyMode.RESTRICTED):
                seen.append((request_id_var.get(), batch_id_var.get()))
                return MaterializedBook(book_id=1, title=record.title)

        engine = BatchEngine(
            session_factory=lambda: contextlib.nullcontext(None),
            storage=object(),
            max_workers=3,
            materializer_factory=ContextRecordingMaterializer,
        )
        records = [{"title": f"Book {i}", "authorId": 1, "formats": ["ebook"]} for i in range(4)]

        token = request_id_var.set("req-ingest-7")
        try:
            engine.run(records, publisher_id=1)
        finally:
            request_id_var.reset(token)

        assert len(seen) == 4
        assert {request_id for request_id, _ in seen} == {"req-ingest-7"}
        batch_ids = {batch_id for _, batch_id in seen}
        assert len(batch_ids) == 1
        assert None not in batch_ids
