"""Bulk recomputation of dynamic index values."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from ..core.config import ReindexConfig
from ..core.types import ReindexProgress, ReindexResult
from ..store.documents import ID_FIELD

if TYPE_CHECKING:
    from .search import SearchService

_DONE = object()


class Reindexer:
    """Reindexes documents with a fixed pool of concurrent workers.

    Documents are read from the executor's iter_documents() into a bounded
    queue consumed by `parallelism` workers, so at most `2 * parallelism`
    documents are held in memory at once.

    A document whose reindex raises is logged, counted and recorded in the
    result; the batch continues. Errors raised while reading documents
    abort the batch.

    Example:

        result = await Reindexer(service).run(parallelism=5)
        print(f"{result.updated} updated, {result.failed} failed")
    """

    def __init__(self, service: "SearchService", config: ReindexConfig | None = None):
        """Initialize Reindexer.

        Args:
            service: Search service providing reindex_doc() and the executor.
            config: Reindex configuration.
        """
        self.service = service
        self.config = config or ReindexConfig()

    async def run(
        self,
        match: dict[str, Any] | None = None,
        parallelism: int | None = None,
        progress: Callable[[ReindexProgress], None] | None = None,
    ) -> ReindexResult:
        """Reindex every document matching `match`.

        Args:
            match: Optional $match-style filter on documents.
            parallelism: Number of workers (config default if None).
            progress: Called with a ReindexProgress at most once per
                progress_interval seconds, and once when done.

        Returns:
            ReindexResult with counts and per-document errors.
        """
        if parallelism is None:
            parallelism = self.config.parallelism
        if parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {parallelism}")

        result = ReindexResult()
        queue: asyncio.Queue = asyncio.Queue(maxsize=2 * parallelism)
        started = time.monotonic()
        last_report = started

        def report(force: bool = False) -> None:
            nonlocal last_report
            if progress is None:
                return
            now = time.monotonic()
            if force or now - last_report >= self.config.progress_interval:
                last_report = now
                try:
                    progress(ReindexProgress(result.processed, result.failed, now - started))
                except Exception as e:
                    logger.warning(f"Progress callback failed: {e}")

        async def worker() -> None:
            while True:
                doc = await queue.get()
                try:
                    if doc is _DONE:
                        return
                    await self._reindex_one(doc, result)
                    report()
                finally:
                    queue.task_done()

        logger.info(
            f"Reindexing collection {self.service.executor.name!r} "
            f"with {parallelism} workers"
        )
        workers = [asyncio.create_task(worker()) for _ in range(parallelism)]
        try:
            async for doc in self.service.executor.iter_documents(match):
                await queue.put(doc)
            for _ in workers:
                await queue.put(_DONE)
            await asyncio.gather(*workers)
        finally:
            for task in workers:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        report(force=True)
        logger.info(
            f"Reindex complete: {result.processed} processed, "
            f"{result.updated} updated, {result.failed} failed"
        )
        return result

    async def _reindex_one(self, doc: dict[str, Any], result: ReindexResult) -> None:
        doc_id = str(doc.get(ID_FIELD))
        try:
            await self.service.reindex_doc(doc)
        except Exception as e:
            logger.warning(f"Failed to reindex {doc_id}: {e}")
            result.failed += 1
            result.errors.append((doc_id, str(e)))
        else:
            result.updated += 1
        finally:
            result.processed += 1
