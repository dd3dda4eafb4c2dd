from sqlalchemy.orm import Session

from catalogue.models.book import Book
from catalogue.models.taxonomy import BookGenreTaxonomy
from catalogue.schemas.book import BookTaxonomyResponse


def get_book(db: Session, book_id: int) -> Book | None:
    """Get a book by ID."""
    return db.query(Book).filter(Book.id == book_id).first()


def to_taxonomy_responses(links: list[BookGenreTaxonomy]) -> list[BookTaxonomyResponse]:
    return [
        BookTaxonomyResponse(
            taxonomy_id=link.taxonomy_id,
            name=link.taxonomy.name,
            category=link.taxonomy.type,
            rank=link.rank,
            importance=link.importance,
        )
        for link in links
    ]
