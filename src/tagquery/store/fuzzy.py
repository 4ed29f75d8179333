"""Typo-tolerant term matching for the $search stage.

A query term matches a document term when:
- the first `prefix_length` characters are identical, and
- the Levenshtein distance is at most `max_edits`

Exact matches score 1.0; each edit lowers the score proportionally to the
term length.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..search.terms import deburr

MAX_EDITS = 2

_WORD = re.compile(r"\w+")


def words(text: str) -> list[str]:
    """Split text into lowercase, diacritic-free word tokens."""
    return _WORD.findall(deburr(text).lower())


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the edit distance between two strings.

    If max_distance is set and exceeded, returns max_distance + 1 early.

    >>> levenshtein_distance("kitten", "sitting")
    3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)
    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = j
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,
                curr_row[i - 1] + 1,
                prev_row[i - 1] + cost,
            )
            row_min = min(row_min, curr_row[i])

        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def term_score(
    query_term: str,
    candidate: str,
    prefix_length: int = 3,
    max_edits: int = MAX_EDITS,
) -> float:
    """Score one candidate token against a query term (0.0 if no match)."""
    if query_term == candidate:
        return 1.0
    if query_term[:prefix_length] != candidate[:prefix_length]:
        return 0.0

    distance = levenshtein_distance(query_term, candidate, max_edits)
    if distance > max_edits:
        return 0.0
    return 1.0 - distance / (max(len(query_term), len(candidate)) + 1)


def best_score(
    query_term: str,
    candidates: Iterable[str],
    prefix_length: int = 3,
    max_edits: int = MAX_EDITS,
) -> float:
    """Best score of a query term over candidate tokens."""
    best = 0.0
    for candidate in candidates:
        best = max(best, term_score(query_term, candidate, prefix_length, max_edits))
        if best == 1.0:
            break
    return best
