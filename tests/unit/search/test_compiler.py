"""Tests for search pipeline compilation."""

import pytest

from tagquery.core.exceptions import UnresolvedStageError
from tagquery.core.types import ParseResult, SearchMethod, SearchOptions
from tagquery.search.compiler import (
    collapse_count,
    compile_pipeline,
    fuzzy_stage,
    is_filter_stage,
)

TEXT_STAGE = {
    "$match": {
        "$text": {
            "$search": "luhrmann",
            "$caseSensitive": False,
            "$diacriticSensitive": False,
        },
    },
}


class TestFuzzyStage:
    """Tests for fuzzy_stage()."""

    def test_text(self):
        """The text method should produce a $match.$text stage."""
        assert fuzzy_stage("luhrmann", SearchMethod.TEXT, "idx") == TEXT_STAGE

    def test_search_wildcard(self):
        """The search method should search every path by default."""
        assert fuzzy_stage("gatsby", SearchMethod.SEARCH, "idx") == {
            "$search": {
                "index": "idx",
                "text": {
                    "query": "gatsby",
                    "path": {"wildcard": "*"},
                    "fuzzy": {"prefixLength": 3},
                },
            },
        }

    def test_search_paths(self):
        """Explicit search paths should be used as given."""
        stage = fuzzy_stage("gatsby", SearchMethod.SEARCH, "idx", ["title"], prefix_length=2)

        assert stage["$search"]["text"]["path"] == ["title"]
        assert stage["$search"]["text"]["fuzzy"] == {"prefixLength": 2}


class TestCompilePipeline:
    """Tests for compile_pipeline()."""

    def test_text_ranked(self):
        """Text searches should project and sort by score."""
        pipeline = compile_pipeline(ParseResult(fuzzy="luhrmann"), SearchOptions(limit=5))

        assert pipeline == [
            TEXT_STAGE,
            {"$addFields": {"_score": {"$meta": "textScore"}}},
            {"$sort": {"_score": -1}},
            {"$limit": 5},
        ]

    def test_accepts_plain_string(self):
        """A plain string should be treated as fuzzy text."""
        assert compile_pipeline("luhrmann")[0] == TEXT_STAGE

    def test_search_method_not_sorted(self):
        """$search results arrive ranked, so no $sort should be added."""
        pipeline = compile_pipeline(
            ParseResult(fuzzy="gatsby"),
            SearchOptions(),
            method=SearchMethod.SEARCH,
            index_name="movies",
        )

        assert "$search" in pipeline[0]
        assert pipeline[1] == {"$addFields": {"_score": {"$meta": "searchScore"}}}
        assert len(pipeline) == 2

    def test_options_method_overrides(self):
        """options.method should override the default method."""
        pipeline = compile_pipeline(
            "gatsby", SearchOptions(method=SearchMethod.SEARCH), method=SearchMethod.TEXT
        )

        assert "$search" in pipeline[0]

    def test_stage_order(self):
        """Fuzzy, match, tags, score, sort, skip and limit should appear in order."""
        parsed = ParseResult(
            fuzzy="luhrmann",
            tags={"after": "2000"},
            stages=({"$match": {"year": {"$gte": 2000}}},),
        )
        options = SearchOptions(match={"status": "active"}, skip=10, limit=5)

        pipeline = compile_pipeline(parsed, options)

        assert pipeline == [
            TEXT_STAGE,
            {"$match": {"status": "active"}},
            {"$match": {"year": {"$gte": 2000}}},
            {"$addFields": {"_score": {"$meta": "textScore"}}},
            {"$sort": {"_score": -1}},
            {"$skip": 10},
            {"$limit": 5},
        ]

    def test_tags_only(self):
        """Without fuzzy text there should be no fuzzy or score stages."""
        parsed = ParseResult(fuzzy="", stages=({"$match": {"year": 2001}},))

        assert compile_pipeline(parsed) == [{"$match": {"year": 2001}}]

    def test_empty_query(self):
        """An empty query should compile to an empty pipeline."""
        assert compile_pipeline("") == []

    def test_count_mode(self):
        """Count mode should drop score stages and end in $count."""
        pipeline = compile_pipeline("luhrmann", SearchOptions(count=True, skip=2, limit=3))

        assert pipeline == [
            TEXT_STAGE,
            {"$skip": 2},
            {"$limit": 3},
            {"$count": "count"},
        ]

    def test_empty_count(self):
        """Counting an empty query should only count."""
        assert compile_pipeline("", SearchOptions(count=True)) == [{"$count": "count"}]

    def test_zero_skip_omitted(self):
        """A zero skip should not emit a stage."""
        pipeline = compile_pipeline("", SearchOptions(skip=0, limit=1))

        assert pipeline == [{"$limit": 1}]

    def test_score_disabled(self):
        """An empty score field should disable score projection and sorting."""
        pipeline = compile_pipeline("luhrmann", SearchOptions(score_field=""))

        assert pipeline == [TEXT_STAGE]

    def test_score_defaults(self):
        """Unset options should fall back to the compile defaults."""
        pipeline = compile_pipeline(
            "luhrmann", SearchOptions(limit=5), score_field="relevance", sort_by_score=False
        )

        assert pipeline == [
            TEXT_STAGE,
            {"$addFields": {"relevance": {"$meta": "textScore"}}},
            {"$limit": 5},
        ]

    def test_default_score_disabled(self):
        """A None default score field should disable scoring for unset options."""
        pipeline = compile_pipeline("luhrmann", SearchOptions(), score_field=None)

        assert pipeline == [TEXT_STAGE]

    def test_options_override_defaults(self):
        """Explicit options should win over the compile defaults."""
        pipeline = compile_pipeline(
            "luhrmann",
            SearchOptions(score_field="s", sort_by_score=True),
            score_field="relevance",
            sort_by_score=False,
        )

        assert pipeline[1:] == [
            {"$addFields": {"s": {"$meta": "textScore"}}},
            {"$sort": {"s": -1}},
        ]

    def test_sort_disabled(self):
        """sort_by_score=False should keep the projection but not sort."""
        pipeline = compile_pipeline("luhrmann", SearchOptions(sort_by_score=False))

        assert pipeline[-1] == {"$addFields": {"_score": {"$meta": "textScore"}}}

    def test_unresolved_stage_raises(self):
        """Non-filter tag stages should be rejected."""
        parsed = ParseResult(fuzzy="x", stages=({"$sort": {"year": 1}},))

        with pytest.raises(UnresolvedStageError) as exc_info:
            compile_pipeline(parsed)

        assert exc_info.value.stages == [{"$sort": {"year": 1}}]

    def test_inputs_not_mutated(self):
        """The pipeline should not share dicts with its inputs."""
        match = {"status": "active"}
        stage = {"$match": {"year": 2001}}
        pipeline = compile_pipeline(
            ParseResult(fuzzy="", stages=(stage,)), SearchOptions(match=match)
        )

        pipeline[0]["$match"]["status"] = "changed"
        pipeline[1]["$match"]["year"] = 1900

        assert match == {"status": "active"}
        assert stage == {"$match": {"year": 2001}}

    def test_deterministic(self):
        """Compiling the same input twice should give equal pipelines."""
        parsed = ParseResult(fuzzy="a b", stages=({"$match": {"x": 1}},))

        assert compile_pipeline(parsed) == compile_pipeline(parsed)


class TestHelpers:
    """Tests for is_filter_stage() and collapse_count()."""

    def test_is_filter_stage(self):
        """Only single-key $match stages are filters."""
        assert is_filter_stage({"$match": {}})
        assert not is_filter_stage({"$sort": {"x": 1}})
        assert not is_filter_stage({"$match": {}, "$limit": 1})

    def test_collapse_count(self):
        """Count rows should collapse to an integer, 0 when empty."""
        assert collapse_count([]) == 0
        assert collapse_count([{"count": 4}]) == 4
        assert collapse_count([{}]) == 0
