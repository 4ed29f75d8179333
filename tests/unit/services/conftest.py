"""Pytest configuration and fixtures for service layer tests."""

import pytest
from pathlib import Path

from tagquery.core.config import Config
from tagquery.search.schema import SearchSchema
from tagquery.services import SearchService, ServiceContainer
from tests.fakes import RecordingExecutor


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Provide a Config instance for testing."""
    cfg = Config()
    cfg.db_path = tmp_path / "test.db"
    cfg.collection = "movies"
    return cfg


@pytest.fixture
def schema(fields, registry) -> SearchSchema:
    """Provide the movie search schema."""
    return SearchSchema(fields=fields, registry=registry)


@pytest.fixture
def container(config: Config, schema: SearchSchema) -> ServiceContainer:
    """Provide a ServiceContainer instance (not connected)."""
    return ServiceContainer(config, schema=schema)


@pytest.fixture
def executor() -> RecordingExecutor:
    """Provide a recording executor with no canned results."""
    return RecordingExecutor()


@pytest.fixture
def service(executor, fields, registry) -> SearchService:
    """Provide a SearchService over the recording executor."""
    return SearchService(executor, fields, registry)
