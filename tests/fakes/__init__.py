"""Test fakes for testing without real infrastructure.

This module provides in-memory implementations of:
- PipelineExecutor (records pipelines, serves canned results)
- IndexManager (records created index specs)

Example:
    from tests.fakes import RecordingExecutor

    executor = RecordingExecutor(results=[{"title": "Amelie"}])
    service = SearchService(executor, fields, registry)
    await service.search("amelie")
    assert executor.pipelines[0][0] == {"$match": {"$text": ...}}
"""

from .executor import RecordingExecutor, RecordingIndexManager

__all__ = [
    "RecordingExecutor",
    "RecordingIndexManager",
]
