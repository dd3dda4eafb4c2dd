from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalogue.core.database import Base


class Author(Base):
    """An author whose books can be catalogued."""

    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    contracts: Mapped[list["PublisherAuthor"]] = relationship(back_populates="author")


class Publisher(Base):
    """Publisher profile, one per publishing user account."""

    __tablename__ = "publishers"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user: Mapped["User"] = relationship(back_populates="publisher")
    contracts: Mapped[list["PublisherAuthor"]] = relationship(back_populates="publisher")


class PublisherAuthor(Base):
    """
    Contract between a publisher and an author.

    A contract is active while contract_end is NULL; ending a contract stamps
    contract_end rather than deleting the row so history is kept.
    """

    __tablename__ = "publishers_authors"
    __table_args__ = (
        Index("ix_publishers_authors_pair", "publisher_id", "author_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    publisher_id: Mapped[int] = mapped_column(ForeignKey("publishers.id"), index=True)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"), index=True)

    contract_start: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    contract_end: Mapped[datetime | None] = mapped_column(DateTime)

    publisher: Mapped["Publisher"] = relationship(back_populates="contracts")
    author: Mapped["Author"] = relationship(back_populates="contracts")

    @property
    def is_active(self) -> bool:
        return self.contract_end is None


# Forward references
from catalogue.models.user import User  # noqa: E402, F811
