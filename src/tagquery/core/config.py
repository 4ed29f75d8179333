"""Configuration management for tagquery."""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class SearchConfig:
    """Search compilation configuration."""

    # "$text" (in-engine text index) or "$search" (managed search index)
    method: str = "$text"
    index_name: str = "searchIndex"
    # Document path holding computed values of dynamic fields
    index_path: str = "_search"
    score_field: str | None = "_score"
    sort_by_score: bool = True
    prefix_length: int = 3
    create_index: bool = True


@dataclass
class ReindexConfig:
    """Bulk reindex configuration."""

    parallelism: int = 20
    # Minimum seconds between progress callbacks
    progress_interval: float = 1.0


def _default_db_path() -> Path:
    """Get default database path."""
    cache_dir = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    return cache_dir / "tagquery" / "documents.db"


@dataclass
class Config:
    """Main application configuration."""

    db_path: Path = field(default_factory=_default_db_path)
    collection: str = "documents"
    schema_path: Path | None = None
    search: SearchConfig = field(default_factory=SearchConfig)
    reindex: ReindexConfig = field(default_factory=ReindexConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()

        if path := os.environ.get("TAGQUERY_DB_PATH"):
            config.db_path = Path(path)

        if collection := os.environ.get("TAGQUERY_COLLECTION"):
            config.collection = collection

        if schema := os.environ.get("TAGQUERY_SCHEMA"):
            config.schema_path = Path(schema)

        # Search configuration
        if method := os.environ.get("TAGQUERY_SEARCH_METHOD"):
            config.search.method = method
        if index_name := os.environ.get("TAGQUERY_INDEX_NAME"):
            config.search.index_name = index_name

        # Reindex configuration
        if parallelism := os.environ.get("TAGQUERY_REINDEX_PARALLELISM"):
            config.reindex.parallelism = int(parallelism)

        return config
