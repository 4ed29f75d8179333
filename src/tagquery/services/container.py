"""Service container for dependency injection and lifecycle management."""

from __future__ import annotations

from loguru import logger

from ..core.config import Config
from ..core.exceptions import ConfigError
from ..core.types import SearchMethod
from ..search.schema import SearchSchema, load_schema
from ..store.collection import DocumentCollection
from ..store.database import Database
from .search import SearchService


class ServiceContainer:
    """Manages service lifecycle and shared resources.

    Services are created lazily on first access. The search service needs a
    search schema, given explicitly or loaded from `config.schema_path`.

    Usage as context manager (recommended):

        async with ServiceContainer(config) as services:
            results = await services.search.search("luhrmann after:2000")

    Usage with manual lifecycle:

        services = ServiceContainer(config)
        services.connect()
        try:
            # use services
        finally:
            await services.close()

    Attributes:
        config: Application configuration.
        db: Database instance (connected after connect() or __aenter__).
    """

    def __init__(self, config: Config, schema: SearchSchema | None = None):
        """Initialize container with configuration.

        Args:
            config: Application configuration.
            schema: Search schema; loaded from config.schema_path if None.
        """
        self.config = config
        self.db = Database(config.db_path)
        self._schema = schema
        self._connected = False

        self._collection: DocumentCollection | None = None
        self._search: SearchService | None = None

    def connect(self) -> None:
        """Connect to database.

        Must be called before accessing services unless using
        the async context manager.
        """
        if not self._connected:
            self.db.connect()
            self._connected = True
            logger.debug("ServiceContainer connected to database")

    async def close(self) -> None:
        """Close all connections and release resources."""
        if self._connected:
            self.db.close()
            self._connected = False
            self._collection = None
            self._search = None
            logger.debug("ServiceContainer closed")

    async def __aenter__(self) -> "ServiceContainer":
        """Async context manager entry."""
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def schema(self) -> SearchSchema:
        """Get the search schema, loading it on first access.

        Raises:
            ConfigError: If no schema was given or configured.
        """
        if self._schema is None:
            if self.config.schema_path is None:
                raise ConfigError(
                    "No search schema configured (use --schema or TAGQUERY_SCHEMA)"
                )
            self._schema = load_schema(self.config.schema_path)
        return self._schema

    @property
    def collection(self) -> DocumentCollection:
        """Get or create the configured DocumentCollection."""
        if self._collection is None:
            self._collection = DocumentCollection(self.db, self.config.collection)
        return self._collection

    @property
    def search(self) -> SearchService:
        """Get or create SearchService.

        When config.search.create_index is set, registers the indexes for
        both search methods on first access, so a per-call method override
        finds its index.
        """
        if self._search is None:
            self._search = SearchService(
                self.collection,
                self.schema.fields,
                self.schema.registry,
                config=self.config.search,
                reindex_config=self.config.reindex,
            )
            if self.config.search.create_index:
                for method in SearchMethod:
                    self.collection.create_index(self._search.index_spec(method))
        return self._search
