"""
Pytest configuration and fixtures for backend tests.
"""

import os
import struct
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator

# Must be set before the application modules build their engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalogue.api.catalogue import get_batch_engine
from catalogue.core.database import Base, get_db
from catalogue.data.taxonomies import TAXONOMIES
from catalogue.main import app
from catalogue.models.publisher import Author, Publisher, PublisherAuthor
from catalogue.models.taxonomy import GenreTaxonomy
from catalogue.models.user import User
from catalogue.scripts.seed_taxonomies import seed_taxonomies
from catalogue.services.auth_service import create_access_token
from catalogue.services.batch_engine import BatchEngine
from catalogue.services.object_storage import LocalObjectStorage, ObjectStorageError

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _png_bytes(width: int = 600, height: int = 900) -> bytes:
    """Smallest byte string whose header reads as a PNG of the given size."""
    return (
        b"\x89PNG\r\n\x1a\n"
        + struct.pack(">I", 13)
        + b"IHDR"
        + struct.pack(">II", width, height)
        + b"\x08\x02\x00\x00\x00"
        + b"\x00" * 64
    )


class FailingStorage(LocalObjectStorage):
    """Local storage that refuses uploads whose filename contains a marker."""

    def __init__(self, root: Path, fail_marker: str = "fail"):
        super().__init__(root)
        self.fail_marker = fail_marker

    def upload(self, data: bytes, filename: str, folder: str = "covers") -> str:
        if self.fail_marker in filename:
            raise ObjectStorageError(f"Simulated outage for {filename}")
        return super().upload(data, filename, folder)


class UnpublishableStorage(LocalObjectStorage):
    """Local storage whose uploads succeed but whose URLs cannot be built."""

    def public_url(self, key: str) -> str:
        raise RuntimeError("cdn down")


def _stored_files(root: Path) -> list[Path]:
    return [path for path in root.rglob("*") if path.is_file()]


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path: Path) -> LocalObjectStorage:
    return LocalObjectStorage(tmp_path / "objects")


@pytest.fixture
def batch_engine(db: Session, storage: LocalObjectStorage) -> BatchEngine:
    """Engine on the test database; one worker since SQLite shares a connection."""
    return BatchEngine(session_factory=TestingSessionLocal, storage=storage, max_workers=1)


@pytest.fixture(scope="function")
def client(db: Session, batch_engine: BatchEngine) -> Generator[TestClient, None, None]:
    """Create a test client with database and storage overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_batch_engine] = lambda: batch_engine

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def taxonomies(db: Session) -> dict[str, GenreTaxonomy]:
    """Seed the canonical taxonomy list, keyed by name."""
    seed_taxonomies(db, TAXONOMIES)
    return {t.name: t for t in db.query(GenreTaxonomy).all()}


@pytest.fixture
def publisher_user(db: Session) -> User:
    user = User(email="press@example.com", username="press", display_name="Nightjar Press")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def publisher(db: Session, publisher_user: User) -> Publisher:
    publisher = Publisher(user_id=publisher_user.id, name="Nightjar Press")
    db.add(publisher)
    db.commit()
    db.refresh(publisher)
    return publisher


@pytest.fixture
def other_publisher(db: Session) -> Publisher:
    user = User(email="rival@example.com", username="rival")
    db.add(user)
    db.commit()
    publisher = Publisher(user_id=user.id, name="Rival House")
    db.add(publisher)
    db.commit()
    db.refresh(publisher)
    return publisher


@pytest.fixture
def authors(db: Session) -> list[Author]:
    """Three authors; none under contract yet."""
    authors = [
        Author(name="Ada Marsh"),
        Author(name="Bram Okafor"),
        Author(name="Celia Thorn"),
    ]
    db.add_all(authors)
    db.commit()
    for author in authors:
        db.refresh(author)
    return authors


@pytest.fixture
def contracts(
    db: Session,
    publisher: Publisher,
    other_publisher: Publisher,
    authors: list[Author],
) -> list[PublisherAuthor]:
    """
    authors[0]: active contract with publisher
    authors[1]: contract with publisher that has ended
    authors[2]: active contract with other_publisher only
    """
    contracts = [
        PublisherAuthor(publisher_id=publisher.id, author_id=authors[0].id),
        PublisherAuthor(
            publisher_id=publisher.id,
            author_id=authors[1].id,
            contract_start=datetime.utcnow() - timedelta(days=400),
            contract_end=datetime.utcnow() - timedelta(days=30),
        ),
        PublisherAuthor(publisher_id=other_publisher.id, author_id=authors[2].id),
    ]
    db.add_all(contracts)
    db.commit()
    return contracts


@pytest.fixture
def publisher_headers(publisher: Publisher, publisher_user: User) -> dict:
    token = create_access_token(data={"sub": str(publisher_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(db: Session) -> dict:
    admin = User(email="admin@example.com", username="admin", is_admin=True)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    token = create_access_token(data={"sub": str(admin.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_png():
    """Factory for minimal PNG payloads of a given size."""
    return _png_bytes


@pytest.fixture
def stored_files():
    """Lists the files currently held under a storage root."""
    return _stored_files


@pytest.fixture
def failing_storage(tmp_path: Path) -> FailingStorage:
    return FailingStorage(tmp_path / "objects")


@pytest.fixture
def unpublishable_storage(tmp_path: Path) -> UnpublishableStorage:
    return UnpublishableStorage(tmp_path / "objects")
