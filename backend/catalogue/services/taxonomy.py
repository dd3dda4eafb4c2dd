"""
Taxonomy resolution.

Maps free-text genre/subgenre/theme/trope labels onto canonical taxonomy
entries, enforces the per-category selection limits and assigns each book a
dense, ranked selection list.

Ranking policy: selections are ranked in the fixed category order
genre → subgenre → theme → trope, keeping the submitted order inside each
category. Earlier categories are treated as more salient, so a book's genres
always carry more importance than its tropes. Importance is derived from
rank as 1 / (1 + ln(rank)).
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from sqlalchemy.orm import Session

from catalogue.core.config import get_settings
from catalogue.core.exceptions import (
    TAXONOMY_CAPPED,
    TAXONOMY_SPARSE,
    TAXONOMY_UNRESOLVED,
    IngestionWarning,
)
from catalogue.core.logging import get_logger
from catalogue.models.taxonomy import BookGenreTaxonomy, GenreTaxonomy

logger = get_logger(__name__)


class TaxonomyCategory(str, Enum):
    GENRE = "genre"
    SUBGENRE = "subgenre"
    THEME = "theme"
    TROPE = "trope"


class TaxonomyMode(str, Enum):
    """Restricted applies per-category caps; unrestricted keeps only the total ceiling."""

    RESTRICTED = "restricted"
    UNRESTRICTED = "unrestricted"

    @classmethod
    def from_flag(cls, restrict_limits: bool) -> "TaxonomyMode":
        return cls.RESTRICTED if restrict_limits else cls.UNRESTRICTED


# Cross-category ranking order
CATEGORY_PRIORITY: tuple[TaxonomyCategory, ...] = (
    TaxonomyCategory.GENRE,
    TaxonomyCategory.SUBGENRE,
    TaxonomyCategory.THEME,
    TaxonomyCategory.TROPE,
)

CATEGORY_LIMITS: dict[TaxonomyCategory, int] = {
    TaxonomyCategory.GENRE: 2,
    TaxonomyCategory.SUBGENRE: 5,
    TaxonomyCategory.THEME: 6,
    TaxonomyCategory.TROPE: 7,
}

MAX_TOTAL_SELECTIONS = 20


def importance(rank: int) -> float:
    """Display weight for a rank; strictly decreasing, importance(1) == 1.0."""
    if rank < 1:
        raise ValueError(f"Rank must be >= 1, got {rank}")
    return 1 / (1 + math.log(rank))


def parse_category(value: "str | TaxonomyCategory") -> TaxonomyCategory:
    """Coerce a category name to the closed enumeration, rejecting anything else."""
    if isinstance(value, TaxonomyCategory):
        return value
    try:
        return TaxonomyCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in TaxonomyCategory)
        raise ValueError(f"Unknown taxonomy category '{value}' (expected one of: {allowed})") from None


@dataclass(frozen=True)
class TaxonomySelection:
    """One resolved taxonomy entry in a book's ranked list."""

    taxonomy_id: int
    name: str
    category: TaxonomyCategory
    rank: int

    @property
    def importance(self) -> float:
        return importance(self.rank)


@dataclass
class TaxonomyResolution:
    """Outcome of resolving one record's labels."""

    selections: list[TaxonomySelection] = field(default_factory=list)
    unresolved_labels: list[str] = field(default_factory=list)
    capped_labels: list[str] = field(default_factory=list)
    warnings: list[IngestionWarning] = field(default_factory=list)


def rerank(selections: Sequence[TaxonomySelection]) -> list[TaxonomySelection]:
    """Reassign ranks 1..N following the given order."""
    return [replace(selection, rank=rank) for rank, selection in enumerate(selections, start=1)]


class TaxonomyResolver:
    """Resolves raw labels against the canonical taxonomy store."""

    def __init__(self, db: Session, recommended_minimum: int | None = None):
        self.db = db
        if recommended_minimum is None:
            recommended_minimum = get_settings().TAXONOMY_RECOMMENDED_MINIMUM
        self.recommended_minimum = recommended_minimum
        self._catalog: dict[TaxonomyCategory, dict[str, GenreTaxonomy]] = {}

    def resolve(
        self,
        labels: Mapping["str | TaxonomyCategory", Sequence[str]],
        mode: TaxonomyMode,
    ) -> TaxonomyResolution:
        """
        Resolve labels for one book.

        Args:
            labels: Raw labels keyed by category name
            mode: Restriction mode, passed on every call

        Returns:
            TaxonomyResolution with ranked selections and warnings

        Raises:
            ValueError: a key is not one of the four categories
        """
        by_category: dict[TaxonomyCategory, list[str]] = {}
        for key, values in labels.items():
            category = parse_category(key)
            by_category.setdefault(category, []).extend(values or [])

        result = TaxonomyResolution()
        ordered: list[tuple[TaxonomyCategory, str, GenreTaxonomy]] = []

        for category in CATEGORY_PRIORITY:
            matched = self._match_category(category, by_category.get(category, []), result)

            if mode is TaxonomyMode.RESTRICTED:
                limit = CATEGORY_LIMITS[category]
                if len(matched) > limit:
                    dropped = [label for label, _ in matched[limit:]]
                    matched = matched[:limit]
                    self._record_capped(
                        result,
                        dropped,
                        f"{category.value} allows at most {limit} selections",
                    )

            ordered.extend((category, label, taxonomy) for label, taxonomy in matched)

        if len(ordered) > MAX_TOTAL_SELECTIONS:
            dropped = [label for _, label, _ in ordered[MAX_TOTAL_SELECTIONS:]]
            ordered = ordered[:MAX_TOTAL_SELECTIONS]
            self._record_capped(
                result,
                dropped,
                f"at most {MAX_TOTAL_SELECTIONS} selections are allowed in total",
            )

        result.selections = [
            TaxonomySelection(
                taxonomy_id=taxonomy.id,
                name=taxonomy.name,
                category=category,
                rank=rank,
            )
            for rank, (category, _, taxonomy) in enumerate(ordered, start=1)
        ]

        # Sparse taxonomy is tolerated; retroactive imports often lack it
        if (
            mode is TaxonomyMode.RESTRICTED
            and self.recommended_minimum
            and len(result.selections) < self.recommended_minimum
        ):
            result.warnings.append(
                IngestionWarning(
                    TAXONOMY_SPARSE,
                    f"{len(result.selections)} taxonomy selections resolved; "
                    f"at least {self.recommended_minimum} are recommended",
                )
            )

        return result

    def _match_category(
        self,
        category: TaxonomyCategory,
        labels: list[str],
        result: TaxonomyResolution,
    ) -> list[tuple[str, GenreTaxonomy]]:
        """Match labels in input order, recording misses and dropping repeats."""
        catalog = self._load_category(category)
        matched: list[tuple[str, GenreTaxonomy]] = []
        seen: set[int] = set()

        for raw in labels:
            label = raw.strip() if raw else ""
            if not label:
                continue

            taxonomy = catalog.get(label.casefold())
            if taxonomy is None:
                result.unresolved_labels.append(label)
                result.warnings.append(
                    IngestionWarning(
                        TAXONOMY_UNRESOLVED,
                        f"{category.value} '{label}' did not match any known {category.value}",
                    )
                )
                continue

            if taxonomy.id in seen:
                continue
            seen.add(taxonomy.id)
            matched.append((label, taxonomy))

        return matched

    def _load_category(self, category: TaxonomyCategory) -> dict[str, GenreTaxonomy]:
        """Active taxonomy entries for a category, keyed by case-folded name."""
        if category not in self._catalog:
            rows = (
                self.db.query(GenreTaxonomy)
                .filter(
                    GenreTaxonomy.type == category.value,
                    GenreTaxonomy.deleted_at.is_(None),
                )
                .order_by(GenreTaxonomy.id)
                .all()
            )
            catalog: dict[str, GenreTaxonomy] = {}
            for row in rows:
                # Lowest id wins when two entries share a name
                catalog.setdefault(row.name.strip().casefold(), row)
            self._catalog[category] = catalog
        return self._catalog[category]

    @staticmethod
    def _record_capped(result: TaxonomyResolution, dropped: list[str], reason: str) -> None:
        result.capped_labels.extend(dropped)
        names = ", ".join(f"'{label}'" for label in dropped)
        result.warnings.append(IngestionWarning(TAXONOMY_CAPPED, f"{reason}; dropped {names}"))


def link_selections(
    db: Session,
    book_id: int,
    selections: Sequence[TaxonomySelection],
) -> list[BookGenreTaxonomy]:
    """Stage link rows for a book's resolved selections (caller commits)."""
    links = [
        BookGenreTaxonomy(
            book_id=book_id,
            taxonomy_id=selection.taxonomy_id,
            rank=selection.rank,
            importance=selection.importance,
        )
        for selection in selections
    ]
    db.add_all(links)
    return links


def get_book_taxonomies(db: Session, book_id: int) -> list[BookGenreTaxonomy]:
    """A book's taxonomy links in rank order."""
    return (
        db.query(BookGenreTaxonomy)
        .filter(BookGenreTaxonomy.book_id == book_id)
        .order_by(BookGenreTaxonomy.rank)
        .all()
    )


def reorder_book_taxonomies(
    db: Session,
    book_id: int,
    taxonomy_ids: Sequence[int],
) -> list[BookGenreTaxonomy]:
    """
    Apply a new order to a book's taxonomy links.

    Ranks and importance are recomputed for the whole surviving list, 1..N.
    Links whose taxonomy is not named in the new order are removed.

    Raises:
        ValueError: the order repeats an id or names a taxonomy the book
            is not linked to
    """
    if len(set(taxonomy_ids)) != len(taxonomy_ids):
        raise ValueError("New order contains duplicate taxonomy ids")

    links = get_book_taxonomies(db, book_id)
    by_taxonomy = {link.taxonomy_id: link for link in links}

    unknown = [taxonomy_id for taxonomy_id in taxonomy_ids if taxonomy_id not in by_taxonomy]
    if unknown:
        raise ValueError(f"Taxonomies not linked to book {book_id}: {unknown}")

    keep = set(taxonomy_ids)
    for link in links:
        if link.taxonomy_id not in keep:
            db.delete(link)

    reordered = []
    for rank, taxonomy_id in enumerate(taxonomy_ids, start=1):
        link = by_taxonomy[taxonomy_id]
        link.rank = rank
        link.importance = importance(rank)
        reordered.append(link)

    db.commit()

    logger.info(
        f"Reordered taxonomies for book {book_id}",
        extra={
            "extra_fields": {
                "book_id": book_id,
                "kept": len(reordered),
                "removed": len(links) - len(reordered),
            }
        },
    )
    return reordered


def list_taxonomies(db: Session, category: str | None = None) -> list[GenreTaxonomy]:
    """Active taxonomy entries, optionally filtered to one category."""
    q = db.query(GenreTaxonomy).filter(GenreTaxonomy.deleted_at.is_(None))
    if category:
        q = q.filter(GenreTaxonomy.type == parse_category(category).value)
    return q.order_by(GenreTaxonomy.type, GenreTaxonomy.name).all()
