"""
Shared test fixtures and entry types for docstore tests.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest
from flask import Flask
from flask.testing import FlaskClient

from docstore import create_app
from docstore.storage.entry import NIL_ID, BaseEntry
from docstore.storage.filesystem import CollectionStore, FilesystemCollection


@dataclass
class Author(BaseEntry):
    name: str = ""
    birth_date: datetime | None = None


@dataclass
class Publisher(BaseEntry):
    name: str = ""
    city: str = ""


@dataclass
class Book(BaseEntry):
    title: str = ""
    isbn: str = ""
    author: uuid.UUID = NIL_ID
    rating: int = 0
    available: bool = False
    publisher: Publisher = field(default_factory=Publisher)


SELMA_BIRTH_DATE = datetime(1858, 11, 20, tzinfo=timezone.utc)
AUTHOR_ID = uuid.UUID("be4346f2-0721-45d0-b52f-218714aae7a8")


@pytest.fixture
def collections_root(tmp_path: Path) -> Path:
    """Storage root for one test; never created up front."""
    return tmp_path / "collections"


@pytest.fixture
def store(collections_root: Path) -> CollectionStore:
    return CollectionStore(collections_root)


@pytest.fixture
def books(store: CollectionStore) -> FilesystemCollection:
    return store.collection("books")


@pytest.fixture
def authors(store: CollectionStore) -> FilesystemCollection:
    return store.collection("authors")


@pytest.fixture
def app(collections_root: Path) -> Flask:
    """Create a test Flask application writing to a temporary root."""
    app = create_app(COLLECTIONS_ROOT=str(collections_root))
    app.config.update({
        "TESTING": True,
    })
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def wsgi_transport(app: Flask) -> httpx.WSGITransport:
    """httpx transport that routes requests straight into the test app."""
    return httpx.WSGITransport(app=app)


# Helper functions for tests

def make_books():
    """Three books; B and C share an author."""
    return [
        Book(title="A", isbn="9789176631874", rating=2),
        Book(title="B", isbn="9789174296051", author=AUTHOR_ID, rating=2),
        Book(title="C", isbn="9789174296150", author=AUTHOR_ID, rating=3),
    ]
