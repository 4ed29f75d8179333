"""Tests for bulk reindexing."""

import pytest

from tagquery.core.config import ReindexConfig
from tagquery.services import Reindexer, SearchService
from tests.fakes import RecordingExecutor


def make_docs(n: int) -> list[dict]:
    genres = ["Drama", "Comedy", "Action"]
    return [{"_id": str(i), "info": {"genres": [genres[i % 3]]}} for i in range(n)]


class TestReindexer:
    """Tests for Reindexer.run()."""

    @pytest.mark.asyncio
    async def test_reindexes_every_document(self, fields):
        """Every document should get its computed values written."""
        executor = RecordingExecutor(documents=make_docs(10))
        service = SearchService(executor, fields)

        result = await service.reindex_all(parallelism=3)

        assert result.processed == 10
        assert result.updated == 10
        assert result.failed == 0
        assert executor.writes["0"] == ("_search", {"mainGenre": "DRAMA"})
        assert executor.writes["4"] == ("_search", {"mainGenre": "COMEDY"})

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self, fields):
        """No more than `parallelism` documents should be in flight."""
        executor = RecordingExecutor(documents=make_docs(30), write_delay=0.001)
        service = SearchService(executor, fields)

        await Reindexer(service).run(parallelism=4)

        assert 1 <= executor.max_in_flight <= 4
        assert len(executor.writes) == 30

    @pytest.mark.asyncio
    async def test_failures_counted_and_batch_continues(self, fields):
        """A failing document should be recorded without stopping the batch."""
        executor = RecordingExecutor(documents=make_docs(6), fail_ids={"3"})
        service = SearchService(executor, fields)

        result = await service.reindex_all(parallelism=2)

        assert result.processed == 6
        assert result.updated == 5
        assert result.failed == 1
        assert result.errors == [("3", "write rejected for 3")]
        assert "3" not in executor.writes

    @pytest.mark.asyncio
    async def test_match_passed_to_source(self, fields):
        """The match filter should be handed to the document source."""
        executor = RecordingExecutor(documents=[])
        service = SearchService(executor, fields)

        result = await service.reindex_all(match={"year": 2001})

        assert executor.matches == [{"year": 2001}]
        assert result.processed == 0

    @pytest.mark.asyncio
    async def test_progress(self, fields):
        """Progress should be reported, ending with the final totals."""
        executor = RecordingExecutor(documents=make_docs(5), fail_ids={"1"})
        service = SearchService(executor, fields)
        reports = []

        await Reindexer(service, ReindexConfig(progress_interval=0)).run(
            parallelism=2, progress=reports.append
        )

        assert len(reports) >= 2
        assert reports[-1].processed == 5
        assert reports[-1].failed == 1
        assert reports[-1].elapsed >= 0

    @pytest.mark.asyncio
    async def test_progress_throttled(self, fields):
        """With a long interval only the final report should be sent."""
        executor = RecordingExecutor(documents=make_docs(5))
        service = SearchService(executor, fields)
        reports = []

        await Reindexer(service, ReindexConfig(progress_interval=3600)).run(
            progress=reports.append
        )

        assert len(reports) == 1
        assert reports[0].processed == 5

    @pytest.mark.asyncio
    async def test_failing_progress_callback(self, fields):
        """A raising progress callback should not stop the batch."""
        executor = RecordingExecutor(documents=make_docs(4))
        service = SearchService(executor, fields)

        def progress(_):
            raise RuntimeError("terminal closed")

        result = await Reindexer(service, ReindexConfig(progress_interval=0)).run(
            parallelism=2, progress=progress
        )

        assert result.processed == 4
        assert result.updated == 4

    @pytest.mark.asyncio
    async def test_source_error_aborts(self, fields):
        """Errors while reading documents should propagate."""

        class BrokenSource(RecordingExecutor):
            async def iter_documents(self, match=None):
                yield {"_id": "1"}
                raise RuntimeError("cursor lost")

        service = SearchService(BrokenSource(), fields)

        with pytest.raises(RuntimeError, match="cursor lost"):
            await service.reindex_all(parallelism=2)

    @pytest.mark.asyncio
    async def test_invalid_parallelism(self, fields):
        """Parallelism below 1 should be rejected."""
        service = SearchService(RecordingExecutor(), fields)

        with pytest.raises(ValueError):
            await Reindexer(service).run(parallelism=-1)

    @pytest.mark.asyncio
    async def test_zero_parallelism_rejected(self, fields):
        """An explicit zero should be rejected, not replaced by the default."""
        executor = RecordingExecutor(documents=make_docs(3))
        service = SearchService(executor, fields)

        with pytest.raises(ValueError, match="got 0"):
            await Reindexer(service, ReindexConfig(parallelism=4)).run(parallelism=0)
        assert executor.writes == {}

    @pytest.mark.asyncio
    async def test_default_parallelism_from_config(self, fields):
        """The configured parallelism should bound concurrency by default."""
        executor = RecordingExecutor(documents=make_docs(12), write_delay=0.001)
        service = SearchService(executor, fields, reindex_config=ReindexConfig(parallelism=2))

        await service.reindex_all()

        assert executor.max_in_flight <= 2
