"""Pytest configuration and fixtures."""

import pytest
from pathlib import Path

from tagquery.core.types import SearchField
from tagquery.search.handlers import after, before, one_of, rating
from tagquery.search.tags import TagRegistry
from tagquery.store.collection import DocumentCollection
from tagquery.store.database import Database
from tagquery.utils.paths import get_path
from tests.fakes.movies import MOVIES


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for tests."""
    return tmp_path / "test.db"


@pytest.fixture
def db(test_db_path: Path) -> Database:
    """Provide a connected database instance."""
    database = Database(test_db_path)
    database.connect()
    yield database
    database.close()


@pytest.fixture
def collection(db: Database) -> DocumentCollection:
    """Provide an empty movies collection."""
    return DocumentCollection(db, "movies")


@pytest.fixture
def movies(collection: DocumentCollection) -> list[dict]:
    """Insert the sample movies and return them with their ids."""
    return collection.insert_many(MOVIES)


@pytest.fixture
def registry() -> TagRegistry:
    """Provide the stock movie tags."""
    return TagRegistry({
        "is": one_of("info.genres"),
        "after": after("year"),
        "before": before("year"),
        "stars": rating("info.rating"),
    })


@pytest.fixture
def fields() -> list[SearchField]:
    """Provide movie search fields, including one computed field."""
    return [
        SearchField(path="title", weight=100),
        SearchField(path="info.directors", weight=50),
        SearchField(
            name="mainGenre",
            weight=5,
            handler=lambda doc: get_path(doc, "info.genres.0"),
        ),
    ]
