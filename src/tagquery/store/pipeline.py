"""In-process evaluation of aggregation pipelines over plain documents.

Supports the subset of stages produced by the search compiler plus common
filters:

- $match: implicit equality (incl. array membership), $eq, $ne, $gt, $gte,
  $lt, $lte, $in, $nin, $exists, $regex, $not, $and, $or, $nor
- $match.$text: weighted term hits over a registered text index
- $search: fuzzy "text" operator over a registered search index
- $addFields (with {"$meta": "textScore" | "searchScore"}), $sort, $skip,
  $limit, $count

$text and $search must be the first stage of a pipeline.
"""

from __future__ import annotations

import copy
import json
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

from loguru import logger

from ..core.exceptions import PipelineError
from ..core.types import SearchIndexSpec, Stage, TextIndexSpec
from ..utils.paths import get_path, resolve_path, set_path
from .fuzzy import MAX_EDITS, best_score, words

_COMPARATORS = {
    "$gt": lambda a, b: a > b,
    "$gte": lambda a, b: a >= b,
    "$lt": lambda a, b: a < b,
    "$lte": lambda a, b: a <= b,
}


@dataclass
class _Row:
    doc: dict[str, Any]
    score: float | None = None


def _candidates(values: list[Any]) -> Iterator[Any]:
    """Yield resolved values plus the elements of any array value."""
    for value in values:
        yield value
        if isinstance(value, list):
            yield from value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _comparable(a: Any, b: Any) -> bool:
    return (_is_number(a) and _is_number(b)) or (isinstance(a, str) and isinstance(b, str))


def _string_leaves(value: Any) -> Iterator[str]:
    """Yield every string nested within a value."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from _string_leaves(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from _string_leaves(item)


def _equals(values: list[Any], expected: Any) -> bool:
    if expected is None:
        return not values or any(v is None for v in values)
    return any(candidate == expected for candidate in _candidates(values))


def _apply_operator(values: list[Any], op: str, arg: Any, condition: Mapping) -> bool:
    if op == "$eq":
        return _equals(values, arg)
    if op == "$ne":
        return not _equals(values, arg)
    if op in _COMPARATORS:
        compare = _COMPARATORS[op]
        return any(
            _comparable(candidate, arg) and compare(candidate, arg)
            for candidate in _candidates(values)
        )
    if op == "$in":
        if not isinstance(arg, list):
            raise PipelineError("$in needs an array")
        return any(_equals(values, item) for item in arg)
    if op == "$nin":
        if not isinstance(arg, list):
            raise PipelineError("$nin needs an array")
        return not any(_equals(values, item) for item in arg)
    if op == "$exists":
        return bool(values) == bool(arg)
    if op == "$regex":
        flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
        pattern = re.compile(arg, flags)
        return any(
            isinstance(candidate, str) and pattern.search(candidate)
            for candidate in _candidates(values)
        )
    if op == "$options":
        return True
    if op == "$not":
        if not isinstance(arg, Mapping):
            raise PipelineError("$not needs a document")
        return not _matches_condition(values, arg)
    raise PipelineError(f"Unknown query operator: {op}")


def _matches_condition(values: list[Any], condition: Any) -> bool:
    if isinstance(condition, Mapping) and condition and all(
        str(k).startswith("$") for k in condition
    ):
        return all(
            _apply_operator(values, op, arg, condition) for op, arg in condition.items()
        )
    return _equals(values, condition)


def matches(doc: dict[str, Any], query: Mapping[str, Any]) -> bool:
    """Check whether a document satisfies a $match filter.

    A top-level $text clause is ignored here; it is scored by the runner.

    Raises:
        PipelineError: On unknown or malformed operators.
    """
    for key, condition in query.items():
        if key == "$text":
            continue
        if key in ("$and", "$or", "$nor"):
            if not isinstance(condition, list) or not condition:
                raise PipelineError(f"{key} must be a nonempty array")
            results = (matches(doc, clause) for clause in condition)
            if key == "$and" and not all(results):
                return False
            if key == "$or" and not any(results):
                return False
            if key == "$nor" and any(results):
                return False
            continue
        if key.startswith("$"):
            raise PipelineError(f"Unknown top level operator: {key}")
        if not _matches_condition(resolve_path(doc, key), condition):
            return False
    return True


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (5, value)
    if _is_number(value):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, json.dumps(value, sort_keys=True, default=str))


def _mapped_paths(fields: Mapping[str, Any], prefix: str = "") -> Iterator[str]:
    """Yield the searchable paths of a search index field mapping tree."""
    for name, mapping in fields.items():
        path = f"{prefix}{name}"
        if mapping.get("type") == "document":
            if mapping.get("dynamic"):
                yield path
            yield from _mapped_paths(mapping.get("fields", {}), f"{path}.")
        else:
            yield path


def _path_weight(weights: Mapping[str, int], path: str) -> int:
    """Weight of a searched path: that of the closest weighted ancestor, else 1."""
    while True:
        if path in weights:
            return weights[path]
        if "." not in path:
            return 1
        path = path.rsplit(".", 1)[0]


class PipelineRunner:
    """Evaluates aggregation pipelines against an iterable of documents."""

    def __init__(
        self,
        text_index: TextIndexSpec | None = None,
        search_indexes: Mapping[str, SearchIndexSpec] | None = None,
        max_edits: int = MAX_EDITS,
    ):
        """Initialize with the indexes available to fuzzy stages.

        Args:
            text_index: Index used by $match.$text, if any.
            search_indexes: Search indexes by name, used by $search.
            max_edits: Maximum edit distance for fuzzy $search terms.
        """
        self.text_index = text_index
        self.search_indexes = dict(search_indexes or {})
        self.max_edits = max_edits

    def run(self, docs: Iterable[dict[str, Any]], pipeline: list[Stage]) -> list[dict[str, Any]]:
        """Run a pipeline.

        Args:
            docs: Input documents. Not mutated.
            pipeline: Ordered stages.

        Returns:
            Output documents.

        Raises:
            PipelineError: On unknown stages or invalid stage arguments.
        """
        rows = [_Row(copy.deepcopy(doc)) for doc in docs]

        for position, stage in enumerate(pipeline):
            if not isinstance(stage, Mapping) or len(stage) != 1:
                raise PipelineError(
                    f"A pipeline stage specification object must contain exactly one field: {stage!r}"
                )
            (name, arg), = stage.items()
            handler = getattr(self, f"_stage_{name.lstrip('$').lower()}", None)
            if not name.startswith("$") or handler is None:
                raise PipelineError(f"Unrecognized pipeline stage name: {name!r}")
            rows = handler(rows, arg, position)
            logger.debug(f"Stage {name}: {len(rows)} rows")

        return [row.doc for row in rows]

    def _stage_match(self, rows: list[_Row], query: Any, position: int) -> list[_Row]:
        if not isinstance(query, Mapping):
            raise PipelineError("the match filter must be an expression in an object")
        if "$text" in query:
            if position != 0:
                raise PipelineError("$match with $text is only allowed as the first pipeline stage")
            rows = self._text(rows, query["$text"])
        return [row for row in rows if matches(row.doc, query)]

    def _text(self, rows: list[_Row], text: Any) -> list[_Row]:
        if self.text_index is None:
            raise PipelineError("text index required for $text query")
        if not isinstance(text, Mapping) or not isinstance(text.get("$search"), str):
            raise PipelineError("$text needs a $search string")

        include, exclude = [], set()
        for token in text["$search"].split():
            if token.startswith("-"):
                exclude.update(words(token[1:]))
            else:
                include.extend(words(token))
        terms = list(dict.fromkeys(include))

        scored = []
        for row in rows:
            score = 0.0
            excluded = False
            for path, weight in self.text_index.weights.items():
                tokens = [
                    token
                    for value in resolve_path(row.doc, path)
                    for leaf in _string_leaves(value)
                    for token in words(leaf)
                ]
                if exclude.intersection(tokens):
                    excluded = True
                    break
                for term in terms:
                    frequency = tokens.count(term)
                    if frequency:
                        score += weight * (1.0 + math.log(frequency))
            if score > 0 and not excluded:
                row.score = score
                scored.append(row)
        return scored

    def _stage_search(self, rows: list[_Row], search: Any, position: int) -> list[_Row]:
        if position != 0:
            raise PipelineError("$search is only valid as the first stage in a pipeline")
        if not isinstance(search, Mapping) or not isinstance(search.get("text"), Mapping):
            raise PipelineError("$search requires a 'text' operator")

        index_name = search.get("index", "default")
        index = self.search_indexes.get(index_name)
        if index is None:
            raise PipelineError(f"Unknown search index: {index_name!r}")

        operator = search["text"]
        query = operator.get("query")
        if not isinstance(query, str):
            raise PipelineError("$search text operator needs a 'query' string")

        path = operator.get("path")
        if path == {"wildcard": "*"}:
            paths = list(_mapped_paths(index.fields))
        elif isinstance(path, str):
            paths = [path]
        elif isinstance(path, list) and all(isinstance(p, str) for p in path):
            paths = path
        else:
            raise PipelineError(f"Invalid $search path: {path!r}")

        fuzzy = operator.get("fuzzy")
        if fuzzy is None:
            prefix_length, max_edits = 0, 0
        else:
            prefix_length = int(fuzzy.get("prefixLength", 0))
            max_edits = int(fuzzy.get("maxEdits", self.max_edits))

        terms = list(dict.fromkeys(words(query)))
        weighted = [(p, _path_weight(index.weights, p)) for p in paths]
        scored = []
        for row in rows:
            tokens = {
                p: [
                    token
                    for value in resolve_path(row.doc, p)
                    for leaf in _string_leaves(value)
                    for token in words(leaf)
                ]
                for p, _ in weighted
            }
            score = sum(
                max(
                    (weight * best_score(term, tokens[p], prefix_length, max_edits)
                     for p, weight in weighted),
                    default=0.0,
                )
                for term in terms
            )
            if score > 0:
                row.score = score
                scored.append(row)

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored

    def _stage_addfields(self, rows: list[_Row], fields: Any, position: int) -> list[_Row]:
        if not isinstance(fields, Mapping):
            raise PipelineError("$addFields specification stage must be an object")
        for row in rows:
            for key, expression in fields.items():
                set_path(row.doc, key, self._evaluate(row, expression))
        return rows

    def _evaluate(self, row: _Row, expression: Any) -> Any:
        if isinstance(expression, Mapping) and "$meta" in expression:
            if expression["$meta"] not in ("textScore", "searchScore"):
                raise PipelineError(f"Unsupported $meta field: {expression['$meta']!r}")
            if row.score is None:
                raise PipelineError(
                    f"query requires {expression['$meta']} metadata, but it is not available"
                )
            return row.score
        if isinstance(expression, str) and expression.startswith("$"):
            return get_path(row.doc, expression[1:])
        return copy.deepcopy(expression)

    def _stage_sort(self, rows: list[_Row], spec: Any, position: int) -> list[_Row]:
        if not isinstance(spec, Mapping) or not spec:
            raise PipelineError("$sort stage must have at least one sort key")
        rows = list(rows)
        for key, direction in reversed(list(spec.items())):
            if direction not in (1, -1):
                raise PipelineError(f"$sort key ordering must be 1 or -1: {key}")
            rows.sort(
                key=lambda r, k=key: _sort_key(get_path(r.doc, k)),
                reverse=direction == -1,
            )
        return rows

    def _stage_skip(self, rows: list[_Row], count: Any, position: int) -> list[_Row]:
        if not _is_number(count) or count < 0:
            raise PipelineError(f"invalid argument to $skip stage: {count!r}")
        return rows[int(count):]

    def _stage_limit(self, rows: list[_Row], count: Any, position: int) -> list[_Row]:
        if not _is_number(count) or count <= 0:
            raise PipelineError(f"the limit must be positive: {count!r}")
        return rows[: int(count)]

    def _stage_count(self, rows: list[_Row], field: Any, position: int) -> list[_Row]:
        if not isinstance(field, str) or not field or field.startswith("$") or "." in field:
            raise PipelineError(f"invalid $count field name: {field!r}")
        if not rows:
            return []
        return [_Row({field: len(rows)})]
