"""
Ownership guard.

Answers one question for the ingestion pipeline: is this author currently
under contract to this publisher? The check runs once per record because a
single batch may mix authors from different contracts.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalogue.core.logging import get_logger
from catalogue.models.publisher import PublisherAuthor

logger = get_logger(__name__)


class OwnershipGuard:
    """Read-only check of publisher → author contracts."""

    def __init__(self, db: Session):
        self.db = db

    def verify(self, publisher_id: int, author_id: int | None) -> bool:
        """
        Return True only if an active contract links the two.

        Fails closed: a missing edge, an ended contract, a missing id or a
        lookup error all return False.
        """
        if publisher_id is None or author_id is None:
            return False

        try:
            edge = (
                self.db.query(PublisherAuthor.id)
                .filter(
                    PublisherAuthor.publisher_id == publisher_id,
                    PublisherAuthor.author_id == author_id,
                    PublisherAuthor.contract_end.is_(None),
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(
                "Ownership lookup failed, treating as unauthorized",
                extra={
                    "extra_fields": {
                        "publisher_id": publisher_id,
                        "author_id": author_id,
                        "error": str(e),
                    }
                },
            )
            return False

        return edge is not None
