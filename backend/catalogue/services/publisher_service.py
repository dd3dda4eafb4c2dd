"""
Publisher profile and author contract management.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from catalogue.models.publisher import Author, Publisher, PublisherAuthor


def get_publisher(db: Session, publisher_id: int) -> Publisher | None:
    return db.query(Publisher).filter(Publisher.id == publisher_id).first()


def get_publisher_by_user_id(db: Session, user_id: int) -> Publisher | None:
    return db.query(Publisher).filter(Publisher.user_id == user_id).first()


def get_publisher_authors(db: Session, publisher_id: int) -> list[Author]:
    """Authors with an active contract to the publisher."""
    return (
        db.query(Author)
        .join(PublisherAuthor, PublisherAuthor.author_id == Author.id)
        .filter(
            PublisherAuthor.publisher_id == publisher_id,
            PublisherAuthor.contract_end.is_(None),
        )
        .order_by(Author.name)
        .all()
    )


def add_author_to_publisher(
    db: Session,
    publisher_id: int,
    author_id: int,
    contract_start: datetime | None = None,
) -> PublisherAuthor:
    """
    Open a contract between a publisher and an author.

    Raises:
        LookupError: the author does not exist
        ValueError: an active contract already exists for the pair
    """
    author = db.query(Author).filter(Author.id == author_id).first()
    if not author:
        raise LookupError(f"Author {author_id} not found")

    existing = (
        db.query(PublisherAuthor)
        .filter(
            PublisherAuthor.publisher_id == publisher_id,
            PublisherAuthor.author_id == author_id,
            PublisherAuthor.contract_end.is_(None),
        )
        .first()
    )
    if existing:
        raise ValueError(f"Author {author_id} is already under contract")

    contract = PublisherAuthor(
        publisher_id=publisher_id,
        author_id=author_id,
        contract_start=contract_start or datetime.utcnow(),
    )
    db.add(contract)
    db.commit()
    db.refresh(contract)
    return contract


def remove_author_from_publisher(db: Session, publisher_id: int, author_id: int) -> bool:
    """
    End the active contract for the pair.

    Returns False if there was no active contract.
    """
    contracts = (
        db.query(PublisherAuthor)
        .filter(
            PublisherAuthor.publisher_id == publisher_id,
            PublisherAuthor.author_id == author_id,
            PublisherAuthor.contract_end.is_(None),
        )
        .all()
    )
    if not contracts:
        return False

    now = datetime.utcnow()
    for contract in contracts:
        contract.contract_end = now

    db.commit()
    return True
