"""SQLite document store and in-process pipeline execution."""

from .collection import DocumentCollection
from .database import Database
from .documents import ID_FIELD, DocumentRepository
from .indexes import IndexRepository
from .loader import LoadResult, load_documents, read_items
from .pipeline import PipelineRunner, matches

__all__ = [
    "Database",
    "DocumentCollection",
    "DocumentRepository",
    "ID_FIELD",
    "IndexRepository",
    "LoadResult",
    "PipelineRunner",
    "load_documents",
    "matches",
    "read_items",
]
