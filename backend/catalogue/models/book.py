from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalogue.core.database import Base


class Book(Base):
    """Catalogue book record, created by the batch ingestion pipeline."""

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), index=True)
    description: Mapped[str | None] = mapped_column(Text)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"), index=True)
    author_name: Mapped[str | None] = mapped_column(String(255))
    publisher_id: Mapped[int | None] = mapped_column(ForeignKey("publishers.id"), index=True)

    # Identifiers (unique when present)
    isbn: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)
    asin: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)

    # Metadata
    page_count: Mapped[int | None] = mapped_column(Integer)
    formats: Mapped[list[str]] = mapped_column(JSON, default=list)  # ebook, paperback, ...
    published_date: Mapped[date | None] = mapped_column(Date)
    language: Mapped[str] = mapped_column(String(50), default="English")
    original_title: Mapped[str | None] = mapped_column(String(500))
    series: Mapped[str | None] = mapped_column(String(255))
    setting: Mapped[str | None] = mapped_column(String(255))
    awards: Mapped[list[str]] = mapped_column(JSON, default=list)
    characters: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    taxonomies: Mapped[list["BookGenreTaxonomy"]] = relationship(
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookGenreTaxonomy.rank",
    )
    images: Mapped[list["BookImage"]] = relationship(back_populates="book", cascade="all, delete-orphan")


class BookImage(Base):
    """Typed image asset for a book; one per (book, role)."""

    __tablename__ = "book_images"
    __table_args__ = (
        UniqueConstraint("book_id", "image_type", name="unique_book_image_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), index=True)

    image_type: Mapped[str] = mapped_column(String(20))  # book-detail, background, hero, ...
    image_url: Mapped[str] = mapped_column(String(500))
    storage_key: Mapped[str] = mapped_column(String(500))
    width: Mapped[int] = mapped_column(Integer, default=0)
    height: Mapped[int] = mapped_column(Integer, default=0)
    size_kb: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    book: Mapped["Book"] = relationship(back_populates="images")


# Forward reference
from catalogue.models.taxonomy import BookGenreTaxonomy  # noqa: E402
