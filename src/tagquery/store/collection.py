"""SQLite-backed document collection implementing the search ports."""

from typing import Any, AsyncIterator

from loguru import logger

from ..core.types import IndexSpec, SearchIndexSpec, Stage
from ..search.compiler import collapse_count
from .database import Database
from .documents import ID_FIELD, DocumentRepository
from .indexes import IndexRepository
from .pipeline import PipelineRunner, matches


class DocumentCollection:
    """A named collection of JSON documents.

    Implements PipelineExecutor (aggregate, count, iter_documents,
    set_index_values) and IndexManager (create_index).
    """

    def __init__(self, db: Database, name: str = "documents"):
        """Initialize collection.

        Args:
            db: Connected database.
            name: Collection name.
        """
        self.name = name
        self.documents = DocumentRepository(db)
        self.indexes = IndexRepository(db)

    def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        """Insert one document and return it with its "_id"."""
        return self.documents.insert(self.name, doc)

    def insert_many(self, docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert documents in one transaction and return them with ids."""
        return self.documents.insert_many(self.name, docs)

    def get(self, doc_id: str) -> dict[str, Any] | None:
        """Get a document by id."""
        return self.documents.get(self.name, doc_id)

    def __len__(self) -> int:
        return self.documents.count(self.name)

    def create_index(self, spec: IndexSpec) -> None:
        """Register (or replace) an index definition for this collection."""
        self.indexes.save(self.name, spec)
        kind = "search" if isinstance(spec, SearchIndexSpec) else "text"
        logger.info(f"Created {kind} index {spec.name!r} on collection {self.name!r}")

    def _runner(self, pipeline: list[Stage]) -> PipelineRunner:
        search_indexes = {}
        for stage in pipeline[:1]:
            search = stage.get("$search")
            if isinstance(search, dict):
                name = search.get("index", "default")
                spec = self.indexes.search_index(self.name, name)
                if spec is not None:
                    search_indexes[name] = spec
        return PipelineRunner(
            text_index=self.indexes.text_index(self.name),
            search_indexes=search_indexes,
        )

    async def aggregate(self, pipeline: list[Stage]) -> list[dict[str, Any]]:
        """Run a pipeline over every document of the collection.

        Raises:
            PipelineError: If the pipeline cannot be evaluated.
            DatabaseError: If reading documents fails.
        """
        runner = self._runner(pipeline)
        return runner.run(self.documents.iter_collection(self.name), pipeline)

    async def count(self, pipeline: list[Stage]) -> int:
        """Run a pipeline and return the number of resulting documents.

        A {"$count": "count"} stage is appended if the pipeline does not
        already end in $count.
        """
        if not pipeline or "$count" not in pipeline[-1]:
            pipeline = [*pipeline, {"$count": "count"}]
        return collapse_count(await self.aggregate(pipeline))

    async def iter_documents(
        self, match: dict[str, Any] | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Iterate over documents, optionally filtered by a $match filter.

        Documents are read up front so callers may write to the collection
        while iterating.
        """
        for doc in self.documents.list_collection(self.name):
            if match is None or matches(doc, match):
                yield doc

    async def set_index_values(self, doc_id: str, path: str, values: dict[str, str]) -> None:
        """Store computed index values under `path` of a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        self.documents.update_path(self.name, doc_id, path, values)
        logger.debug(f"Stored index values for {self.name}/{doc_id} at {path}: {values}")

    @staticmethod
    def doc_id(doc: dict[str, Any]) -> str:
        """Id of a stored document."""
        return str(doc[ID_FIELD])
