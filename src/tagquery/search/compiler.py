"""Search pipeline compilation.

Turns parsed query text plus search options into an ordered aggregation
pipeline. Stage order is fixed:

1. Fuzzy match ($match.$text or $search), only with fuzzy text
2. Caller-supplied $match
3. Tag filter stages, in query order
4. Score projection ($addFields with $meta)
5. Sort by score (text method only; $search results arrive ranked)
6. $skip
7. $limit
8. $count (count mode only, replaces score/sort)

Example:
    >>> compile_pipeline("luhrmann", SearchOptions(limit=5), method=SearchMethod.TEXT)
    [{'$match': {'$text': {'$search': 'luhrmann', ...}}},
     {'$addFields': {'_score': {'$meta': 'textScore'}}},
     {'$sort': {'_score': -1}},
     {'$limit': 5}]
"""

from __future__ import annotations

import copy
from typing import Any, Iterable

from loguru import logger

from ..core.exceptions import UnresolvedStageError
from ..core.types import ParseResult, SearchMethod, SearchOptions, Stage

DEFAULT_PREFIX_LENGTH = 3
DEFAULT_SCORE_FIELD = "_score"
WILDCARD_PATHS: dict[str, str] = {"wildcard": "*"}


def is_filter_stage(stage: Stage) -> bool:
    """Return True if the stage is a plain $match filter."""
    return isinstance(stage, dict) and len(stage) == 1 and "$match" in stage


def fuzzy_stage(
    fuzzy: str,
    method: SearchMethod,
    index_name: str,
    search_paths: list[str] | None = None,
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
) -> Stage:
    """Build the fuzzy matching stage for a method."""
    if method is SearchMethod.TEXT:
        return {
            "$match": {
                "$text": {
                    "$search": fuzzy,
                    "$caseSensitive": False,
                    "$diacriticSensitive": False,
                },
            },
        }

    return {
        "$search": {
            "index": index_name,
            "text": {
                "query": fuzzy,
                "path": list(search_paths) if search_paths else dict(WILDCARD_PATHS),
                "fuzzy": {"prefixLength": prefix_length},
            },
        },
    }


def splice_filters(pipeline: list[Stage], stages: Iterable[Stage]) -> None:
    """Append all tag filter stages to the pipeline.

    Raises:
        UnresolvedStageError: If any stage is not a $match filter.
    """
    remaining = []
    for stage in stages:
        if is_filter_stage(stage):
            pipeline.append(copy.deepcopy(stage))
        else:
            remaining.append(stage)

    if remaining:
        logger.error(f"Remaining stages after filter extraction: {remaining}")
        raise UnresolvedStageError(remaining)


def compile_pipeline(
    parsed: ParseResult | str,
    options: SearchOptions | None = None,
    *,
    method: SearchMethod = SearchMethod.TEXT,
    index_name: str = "searchIndex",
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
    score_field: str | None = DEFAULT_SCORE_FIELD,
    sort_by_score: bool = True,
) -> list[Stage]:
    """Compile a parsed query into an aggregation pipeline.

    Args:
        parsed: ParseResult from the tag extractor, or plain fuzzy text.
        options: Search options (defaults used if None).
        method: Default search method, overridden by options.method.
        index_name: Search index name for the $search method.
        prefix_length: Characters that must match exactly in fuzzy $search.
        score_field: Default score field, overridden by options.score_field.
            None or "" disables the score projection.
        sort_by_score: Default for options.sort_by_score.

    Returns:
        Ordered list of pipeline stages. Inputs are never mutated.

    Raises:
        UnresolvedStageError: If a tag stage is not a $match filter.
    """
    options = options or SearchOptions()
    if isinstance(parsed, str):
        parsed = ParseResult(fuzzy=parsed)

    method = options.method or method
    if options.score_field is not None:
        score_field = options.score_field
    if options.sort_by_score is not None:
        sort_by_score = options.sort_by_score
    fuzzy = parsed.fuzzy.strip()
    pipeline: list[Stage] = []

    if fuzzy:
        pipeline.append(
            fuzzy_stage(fuzzy, method, index_name, options.search_paths, prefix_length)
        )

    if options.match:
        pipeline.append({"$match": copy.deepcopy(options.match)})

    splice_filters(pipeline, parsed.stages)

    if fuzzy and score_field and not options.count:
        pipeline.append({"$addFields": {score_field: {"$meta": method.score_meta}}})
        if sort_by_score and method is SearchMethod.TEXT:
            pipeline.append({"$sort": {score_field: -1}})

    if options.skip:
        pipeline.append({"$skip": options.skip})

    if options.limit:
        pipeline.append({"$limit": options.limit})

    if options.count:
        pipeline.append({"$count": "count"})

    return pipeline


def collapse_count(rows: list[dict[str, Any]]) -> int:
    """Collapse the output of a $count pipeline to an integer (0 if empty)."""
    if not rows:
        return 0
    return int(rows[0].get("count") or 0)
