"""Search service tying query parsing, compilation and execution together."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Callable, Sequence

from loguru import logger

from ..core.config import SearchConfig
from ..core.exceptions import ConfigError
from ..core.types import (
    IndexSpec,
    ParseResult,
    ReindexProgress,
    ReindexResult,
    SearchField,
    SearchMethod,
    SearchOptions,
    Stage,
)
from ..search.compiler import compile_pipeline
from ..search.index_spec import build_index_spec
from ..search.tags import TagExtractor, TagRegistry
from ..search.terms import clean_terms
from ..store.documents import ID_FIELD
from .reindex import Reindexer

if TYPE_CHECKING:
    from ..core.config import ReindexConfig
    from ..search.ports import PipelineExecutor


class SearchService:
    """Service for tag-aware fuzzy search over one collection.

    This service provides:
    - Query parsing into fuzzy text plus tag filter stages
    - Pipeline compilation and execution through a PipelineExecutor
    - Index specification for the declared fields
    - Computation and storage of dynamic field values (reindexing)

    Example:

        service = SearchService(collection, fields, registry)
        movies = await service.search("luhrmann after:2000 stars:3-5")
        total = await service.search("luhrmann", SearchOptions(count=True))
    """

    def __init__(
        self,
        executor: "PipelineExecutor",
        fields: Sequence[SearchField],
        registry: TagRegistry | None = None,
        config: SearchConfig | None = None,
        reindex_config: "ReindexConfig | None" = None,
    ):
        """Initialize SearchService.

        Args:
            executor: Runs compiled pipelines and stores index values.
            fields: Declared search fields.
            registry: Optional tag handlers; enables tag parsing.
            config: Search configuration.
            reindex_config: Bulk reindex configuration.

        Raises:
            ConfigError: If no fields are given or the method is unknown.
        """
        if not fields:
            raise ConfigError("Must specify at least one field to index")

        self.executor = executor
        self.fields = list(fields)
        self.registry = registry
        self.config = config or SearchConfig()
        self.method = SearchMethod.parse(self.config.method)
        self._reindex_config = reindex_config
        self._extractor = TagExtractor(registry) if registry is not None else None

    @property
    def computed_fields(self) -> list[SearchField]:
        """Fields whose value is computed by a handler."""
        return [f for f in self.fields if f.handler is not None]

    async def parse_query(self, raw: str) -> ParseResult:
        """Split a raw query into fuzzy text and tag filter stages.

        Raises:
            ConfigError: If no tag registry is configured.
        """
        if self._extractor is None:
            raise ConfigError("Tag parsing requires a tag registry")
        return await self._extractor.parse(raw)

    def _options(self, options: SearchOptions | None) -> SearchOptions:
        return options if options is not None else SearchOptions()

    async def _parse(self, raw: str, options: SearchOptions) -> tuple[ParseResult, bool]:
        use_tags = options.tags if options.tags is not None else self._extractor is not None
        if use_tags:
            return await self.parse_query(raw), True
        return ParseResult(fuzzy=" ".join((raw or "").split())), False

    async def compile(self, raw: str, options: SearchOptions | None = None) -> list[Stage]:
        """Compile a raw query into an aggregation pipeline without running it."""
        options = self._options(options)
        parsed, _ = await self._parse(raw, options)
        return self._compile(parsed, options)

    def _compile(self, parsed: ParseResult, options: SearchOptions) -> list[Stage]:
        return compile_pipeline(
            parsed,
            options,
            method=self.method,
            index_name=self.config.index_name,
            prefix_length=self.config.prefix_length,
            # Unset per-call options fall back to the configured defaults.
            score_field=self.config.score_field,
            sort_by_score=self.config.sort_by_score,
        )

    async def search(
        self, raw: str, options: SearchOptions | None = None
    ) -> list[dict[str, Any]] | int:
        """Search the collection.

        Args:
            raw: Query text, optionally containing `key:value` tags.
            options: Search options (service defaults if None).

        Returns:
            Matching documents, or their number when options.count is set.

        Raises:
            UnresolvedStageError: If a tag produced a non-filter stage.
            Errors raised by the executor propagate unchanged.
        """
        options = self._options(options)
        parsed, tagged = await self._parse(raw, options)

        if tagged:
            tags = ", ".join(f"{k}={v}" for k, v in parsed.tags.items()) or "[none]"
        else:
            tags = "[disabled]"
        logger.info(
            f"Performing textSearch{'+count' if options.count else ''} "
            f"on collection={self.executor.name} "
            f"fuzzy={parsed.fuzzy or '[none]'} tags={tags}"
        )

        pipeline = self._compile(parsed, options)
        logger.debug(f"Search pipeline: {pipeline}")

        if options.count:
            return await self.executor.count(pipeline)

        results = await self.executor.aggregate(pipeline)
        logger.debug(f"Search returned {len(results)} results")
        return results

    def index_spec(self, method: SearchMethod | str | None = None) -> IndexSpec:
        """Build the index specification for the declared fields."""
        return build_index_spec(
            self.fields,
            method or self.method,
            collection=self.executor.name,
            index_name=self.config.index_name,
            index_path=self.config.index_path,
        )

    async def index_values(self, doc: dict[str, Any]) -> dict[str, str]:
        """Compute the dynamic field values of a document.

        Returns:
            Field name to cleaned search terms, omitting empty values.
        """
        values = {}
        for f in self.computed_fields:
            value = f.handler(doc)  # type: ignore[misc]
            if inspect.isawaitable(value):
                value = await value
            cleaned = clean_terms(value) if value else ""
            if cleaned:
                values[f.key] = cleaned
        return values

    async def reindex_doc(self, doc: dict[str, Any], apply: bool = True) -> dict[str, str]:
        """Recompute and optionally store the dynamic values of a document.

        Args:
            doc: Stored document (must carry "_id" when applying).
            apply: Write values to the document; False only computes them.

        Returns:
            The computed values.
        """
        values = await self.index_values(doc)
        if apply:
            await self.executor.set_index_values(
                str(doc[ID_FIELD]), self.config.index_path, values
            )
        return values

    async def reindex_all(
        self,
        match: dict[str, Any] | None = None,
        parallelism: int | None = None,
        progress: Callable[[ReindexProgress], None] | None = None,
    ) -> ReindexResult:
        """Recompute dynamic values for every (matching) document.

        See Reindexer for the concurrency and failure policy.
        """
        reindexer = Reindexer(self, self._reindex_config)
        return await reindexer.run(match=match, parallelism=parallelism, progress=progress)
