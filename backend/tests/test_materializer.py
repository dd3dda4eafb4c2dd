"""Tests for creating a single book from a submitted record."""

import pytest
from sqlalchemy.orm import Session

from catalogue.core.exceptions import (
    IMAGE_MISSING,
    TAXONOMY_SPARSE,
    TAXONOMY_UNRESOLVED,
    AuthorizationError,
    DuplicateError,
    StorageError,
    ValidationError,
)
from catalogue.models.book import Book, BookImage
from catalogue.models.taxonomy import BookGenreTaxonomy
from catalogue.schemas.book import BookRecord
from catalogue.services.images import ImageBlob, ImageRole
from catalogue.services.materializer import RecordMaterializer
from catalogue.services.taxonomy import TaxonomyMode


def make_record(author_id: int, **overrides) -> BookRecord:
    data = {
        "title": "The Lantern Keeper",
        "authorId": author_id,
        "formats": ["ebook", "paperback"],
        "isbn": "9780000000011",
        "genres": ["Fantasy"],
        "themes": ["Redemption", "Family"],
        "tropes": ["Found Family", "The Mentor"],
    }
    data.update(overrides)
    return BookRecord.model_validate(data)


class TestMaterializeSuccess:
    """Test the happy path."""

    def test_creates_book_with_links_and_images(
        self, db: Session, storage, publisher, authors, contracts, taxonomies, make_png
    ):
        images = {
            ImageRole.BOOK_DETAIL: ImageBlob("detail.png", "image/png", make_png(600, 900)),
            ImageRole.HERO: ImageBlob("hero.png", "image/png", make_png(1600, 600)),
        }

        result = RecordMaterializer(db, storage).materialize(
            make_record(authors[0].id), publisher.id, images, TaxonomyMode.RESTRICTED
        )

        book = db.get(Book, result.book_id)
        assert book.title == "The Lantern Keeper"
        assert book.publisher_id == publisher.id
        assert book.author_name == "Ada Marsh"
        assert book.formats == ["ebook", "paperback"]

        links = db.query(BookGenreTaxonomy).filter_by(book_id=book.id).order_by(BookGenreTaxonomy.rank).all()
        assert [link.taxonomy.name for link in links] == [
            "Fantasy",
            "Redemption",
            "Family",
            "Found Family",
            "The Mentor",
        ]
        assert [link.rank for link in links] == [1, 2, 3, 4, 5]

        assert db.query(BookImage).filter_by(book_id=book.id).count() == 2
        assert result.missing_roles == [
            ImageRole.BACKGROUND,
            ImageRole.BOOK_CARD,
            ImageRole.GRID_ITEM,
            ImageRole.MINI,
        ]
        assert [w.kind for w in result.warnings] == [IMAGE_MISSING]

    def test_enrichment_problems_are_warnings(
        self, db: Session, storage, publisher, authors, contracts, taxonomies
    ):
        """Unknown labels and a sparse list still create the book."""
        record = make_record(authors[0].id, genres=["Fantasy", "Solarpunk"], themes=[], tropes=[])

        result = RecordMaterializer(db, storage).materialize(record, publisher.id)

        kinds = [w.kind for w in result.warnings]
        assert TAXONOMY_UNRESOLVED in kinds
        assert TAXONOMY_SPARSE in kinds
        assert IMAGE_MISSING in kinds
        assert db.query(Book).count() == 1

    def test_publisher_id_in_record_ignored(
        self, db: Session, storage, publisher, other_publisher, authors, contracts, taxonomies
    ):
        record = make_record(authors[0].id, publisherId=other_publisher.id)

        result = RecordMaterializer(db, storage).materialize(record, publisher.id)

        assert db.get(Book, result.book_id).publisher_id == publisher.id


class TestMaterializeFailures:
    """Test fatal errors leave nothing behind."""

    def test_missing_required_fields(self, db: Session, storage, publisher, contracts):
        record = BookRecord.model_validate({"title": "  ", "formats": []})

        with pytest.raises(ValidationError) as exc_info:
            RecordMaterializer(db, storage).materialize(record, publisher.id)

        assert exc_info.value.message == "Missing required fields: title, authorId, formats"
        assert db.query(Book).count() == 0

    def test_ended_contract_unauthorized(self, db: Session, storage, publisher, authors, contracts):
        with pytest.raises(AuthorizationError) as exc_info:
            RecordMaterializer(db, storage).materialize(make_record(authors[1].id), publisher.id)

        assert str(authors[1].id) in exc_info.value.message
        assert db.query(Book).count() == 0

    def test_other_publishers_author_unauthorized(
        self, db: Session, storage, publisher, authors, contracts
    ):
        with pytest.raises(AuthorizationError):
            RecordMaterializer(db, storage).materialize(make_record(authors[2].id), publisher.id)

    def test_duplicate_isbn(self, db: Session, storage, publisher, authors, contracts, taxonomies):
        materializer = RecordMaterializer(db, storage)
        materializer.materialize(make_record(authors[0].id), publisher.id)

        with pytest.raises(DuplicateError) as exc_info:
            materializer.materialize(make_record(authors[0].id, title="Another"), publisher.id)

        assert "ISBN 9780000000011" in exc_info.value.message
        assert db.query(Book).count() == 1

    def test_duplicate_asin(self, db: Session, storage, publisher, authors, contracts, taxonomies):
        materializer = RecordMaterializer(db, storage)
        materializer.materialize(make_record(authors[0].id, isbn=None, asin="B00TEST123"), publisher.id)

        with pytest.raises(DuplicateError):
            materializer.materialize(make_record(authors[0].id, isbn=None, asin="B00TEST123"), publisher.id)

    def test_storage_failure_rolls_back_book_and_objects(
        self,
        db: Session,
        failing_storage,
        publisher,
        authors,
        contracts,
        taxonomies,
        make_png,
        stored_files,
    ):
        """A failed role aborts the record and removes the objects that did upload."""
        images = {
            ImageRole.HERO: ImageBlob("hero.png", "image/png", make_png()),
            ImageRole.MINI: ImageBlob("mini-fail.png", "image/png", make_png()),
        }

        with pytest.raises(StorageError) as exc_info:
            RecordMaterializer(db, failing_storage).materialize(
                make_record(authors[0].id), publisher.id, images
            )

        assert exc_info.value.failed_roles == ["mini"]
        assert db.query(Book).count() == 0
        assert db.query(BookGenreTaxonomy).count() == 0
        assert db.query(BookImage).count() == 0
        assert stored_files(failing_storage.root) == []

    def test_staging_failure_removes_uploaded_objects(
        self,
        db: Session,
        unpublishable_storage,
        publisher,
        authors,
        contracts,
        taxonomies,
        make_png,
        stored_files,
    ):
        """Objects already uploaded are deleted when a row cannot be staged."""
        images = {
            ImageRole.HERO: ImageBlob("hero.png", "image/png", make_png()),
            ImageRole.MINI: ImageBlob("mini.png", "image/png", make_png()),
        }

        with pytest.raises(StorageError) as exc_info:
            RecordMaterializer(db, unpublishable_storage).materialize(
                make_record(authors[0].id), publisher.id, images
            )

        assert sorted(exc_info.value.failed_roles) == ["hero", "mini"]
        assert db.query(Book).count() == 0
        assert db.query(BookImage).count() == 0
        assert stored_files(unpublishable_storage.root) == []


class TestDuplicateRace:
    """Test the store-level uniqueness check behind the duplicate pre-check."""

    def test_unique_violation_reported_as_duplicate(
        self, db: Session, storage, publisher, authors, contracts, taxonomies, monkeypatch
    ):
        """A record that slips past the pre-check loses on the isbn constraint."""
        materializer = RecordMaterializer(db, storage)
        first = materializer.materialize(make_record(authors[0].id), publisher.id)
        links_before = db.query(BookGenreTaxonomy).count()

        monkeypatch.setattr(RecordMaterializer, "_check_duplicates", lambda self, record: None)

        with pytest.raises(DuplicateError) as exc_info:
            materializer.materialize(make_record(authors[0].id, title="Racing Copy"), publisher.id)

        assert "ISBN 9780000000011" in exc_info.value.message
        assert [book.id for book in db.query(Book).all()] == [first.book_id]
        assert db.query(BookGenreTaxonomy).count() == links_before
        assert db.query(BookGenreTaxonomy).filter(BookGenreTaxonomy.book_id != first.book_id).count() == 0

    def test_unique_asin_violation_reported_as_duplicate(
        self, db: Session, storage, publisher, authors, contracts, taxonomies, monkeypatch
    ):
        materializer = RecordMaterializer(db, storage)
        materializer.materialize(make_record(authors[0].id, isbn=None, asin="B00RACE001"), publisher.id)
        monkeypatch.setattr(RecordMaterializer, "_check_duplicates", lambda self, record: None)

        with pytest.raises(DuplicateError):
            materializer.materialize(
                make_record(authors[0].id, title="Racing Copy", isbn=None, asin="B00RACE001"), publisher.id
            )

        assert db.query(Book).count() == 1
