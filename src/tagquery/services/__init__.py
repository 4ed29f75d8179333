"""Service layer for tagquery.

Example usage:

    from tagquery.services import ServiceContainer

    async with ServiceContainer(config) as services:
        results = await services.search.search("luhrmann after:2000 stars:3-5")
        result = await services.search.reindex_all(parallelism=5)
"""

from .container import ServiceContainer
from .reindex import Reindexer
from .search import SearchService

__all__ = [
    "ServiceContainer",
    "Reindexer",
    "SearchService",
]
