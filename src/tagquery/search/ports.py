"""Port definitions for search execution.

This module defines the interfaces the search service depends on. The
service only compiles pipelines; running them, storing computed index
values and creating indexes belong to the collaborators below.

Protocols defined:
    - PipelineExecutor: Runs aggregation pipelines and counts results
    - IndexManager: Creates/syncs an index from an index specification

Usage:
    from tagquery.search.ports import PipelineExecutor

    class MyCollection:
        async def aggregate(self, pipeline): ...
        async def count(self, pipeline): ...
        async def iter_documents(self, match=None): ...
        async def set_index_values(self, doc_id, path, values): ...

    executor: PipelineExecutor = MyCollection()

Example implementation: tagquery.store.collection.DocumentCollection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core.types import IndexSpec, Stage


@runtime_checkable
class PipelineExecutor(Protocol):
    """Aggregation pipeline execution capability.

    Implementations must support $match filters (equality, range, $in),
    the fuzzy stage of their search method, $meta score projection,
    $sort/$skip/$limit and $count.
    """

    name: str
    """Collection name, used in logs and index commands."""

    async def aggregate(self, pipeline: list["Stage"]) -> list[dict[str, Any]]:
        """Run a pipeline and return the resulting documents.

        Args:
            pipeline: Ordered stages from compile_pipeline.

        Returns:
            Result rows (plain dicts).
        """
        ...

    async def count(self, pipeline: list["Stage"]) -> int:
        """Run a pipeline ending in $count and return the count.

        Returns:
            Number of matching documents (0 if none).
        """
        ...

    def iter_documents(self, match: dict[str, Any] | None = None) -> AsyncIterator[dict[str, Any]]:
        """Iterate over stored documents, optionally filtered.

        Args:
            match: Optional $match-style filter.

        Yields:
            Documents including their "_id".
        """
        ...

    async def set_index_values(self, doc_id: str, path: str, values: dict[str, str]) -> None:
        """Persist computed index values under a document path.

        Args:
            doc_id: Document identifier.
            path: Index container path, e.g. "_search".
            values: Computed dynamic field values.
        """
        ...


@runtime_checkable
class IndexManager(Protocol):
    """Index lifecycle capability.

    Implementations create or sync the index described by a specification.
    """

    def create_index(self, spec: "IndexSpec") -> None:
        """Create or replace the index described by `spec`."""
        ...
