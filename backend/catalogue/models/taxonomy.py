from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalogue.core.database import Base


class GenreTaxonomy(Base):
    """Canonical taxonomy entry (genre, subgenre, theme or trope)."""

    __tablename__ = "genre_taxonomies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    type: Mapped[str] = mapped_column(String(20), index=True)  # genre, subgenre, theme, trope
    description: Mapped[str | None] = mapped_column(Text)

    # Subgenres hang off a parent genre
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("genre_taxonomies.id"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)  # soft delete

    parent: Mapped["GenreTaxonomy"] = relationship(remote_side=[id])


class BookGenreTaxonomy(Base):
    """Ranked link between a book and a taxonomy entry."""

    __tablename__ = "book_genre_taxonomies"
    __table_args__ = (
        UniqueConstraint("book_id", "taxonomy_id", name="unique_book_taxonomy"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), index=True)
    taxonomy_id: Mapped[int] = mapped_column(ForeignKey("genre_taxonomies.id"), index=True)

    rank: Mapped[int] = mapped_column(Integer)  # dense, 1-based across all categories
    importance: Mapped[float] = mapped_column(Float)

    book: Mapped["Book"] = relationship(back_populates="taxonomies")
    taxonomy: Mapped["GenreTaxonomy"] = relationship()


# Forward reference
from catalogue.models.book import Book  # noqa: E402
