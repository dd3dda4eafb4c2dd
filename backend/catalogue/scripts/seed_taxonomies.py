"""
Taxonomy seeding script.

Populates genre_taxonomies with the canonical genres, subgenres, themes
and tropes. Existing entries (same name and type) are left alone.

Run with: python -m catalogue.scripts.seed_taxonomies
"""

from sqlalchemy.orm import Session

from catalogue.core.database import Base, SessionLocal, engine
from catalogue.data.taxonomies import TAXONOMIES
from catalogue.models.taxonomy import GenreTaxonomy


def create_tables():
    """Create all database tables."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created.")


def seed_taxonomies(db: Session, entries: list[dict] | None = None) -> int:
    """
    Seed the genre_taxonomies table.

    Parents are inserted before children, so a subgenre's parent is looked
    up by name among genres.

    Returns:
        Number of entries added
    """
    entries = TAXONOMIES if entries is None else entries
    print(f"Seeding {len(entries)} taxonomies...")

    added = 0
    by_key: dict[tuple[str, str], GenreTaxonomy] = {
        (t.type, t.name): t for t in db.query(GenreTaxonomy).all()
    }

    # Parentless entries first
    for data in sorted(entries, key=lambda d: d.get("parent") is not None):
        key = (data["type"], data["name"])
        if key in by_key:
            continue

        parent = None
        if data.get("parent"):
            parent = by_key.get(("genre", data["parent"]))

        taxonomy = GenreTaxonomy(
            name=data["name"],
            type=data["type"],
            description=data.get("description"),
            parent=parent,
        )
        db.add(taxonomy)
        db.flush()
        by_key[key] = taxonomy
        added += 1

    db.commit()
    print(f"Taxonomies seeded. Added: {added}")

    return added


def main():
    """Main seeding function."""
    print("Starting taxonomy seeding...\n")

    create_tables()

    db = SessionLocal()

    try:
        seed_taxonomies(db)
        print("\n✓ Taxonomy seeding complete!")

    except Exception as e:
        print(f"\n✗ Error during seeding: {e}")
        db.rollback()
        raise

    finally:
        db.close()


if __name__ == "__main__":
    main()
