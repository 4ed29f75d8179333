"""Pytest configuration and fixtures for integration tests."""

import pytest
from pathlib import Path

from tagquery.core.config import Config
from tagquery.search.schema import SearchSchema, parse_schema

SCHEMA = {
    "fields": [
        {"path": "title", "weight": 100},
        {"path": "info.directors", "weight": 50},
        {"name": "mainGenre", "weight": 5, "from": "info.genres.0"},
    ],
    "tags": {
        "is": {"type": "one_of", "path": "info.genres"},
        "after": {"type": "after", "path": "year"},
        "before": {"type": "before", "path": "year"},
        "stars": {"type": "rating", "path": "info.rating", "min": 1, "max": 10},
    },
}


@pytest.fixture
def integration_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for integration tests."""
    return tmp_path / "integration_test.db"


@pytest.fixture
def config(integration_db_path: Path) -> Config:
    """Provide a Config instance pointing to the test database."""
    cfg = Config()
    cfg.db_path = integration_db_path
    cfg.collection = "movies"
    return cfg


@pytest.fixture
def movie_schema() -> SearchSchema:
    """Provide the movie schema with a computed field and stock tags."""
    return parse_schema(SCHEMA)
