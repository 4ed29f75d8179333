"""Reusable tag handler factories.

Each factory returns a handler suitable for a TagRegistry:

    registry = TagRegistry({
        "is": one_of("info.genres"),        # is:Comedy,Drama
        "after": after("year"),             # after:2000-01-01
        "before": before("year"),           # before:31/12/2015
        "stars": rating("info.rating"),     # stars:3-5
    })

Handlers return False for values they cannot interpret so that the term
falls back to fuzzy text instead of failing the search.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Iterable, Literal

from ..core.exceptions import ConfigError
from .tags import TagHandler

# strptime formats accepted by the date handlers, tried in order
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d/%m/%y", "%Y")

_DAY_MONTH_PATTERN = re.compile(r"^(?P<day>\d{1,2})/(?P<month>\d{1,2})$")
_RANGE_PATTERN = re.compile(r"^(?P<start>\d+)-(?P<end>\d+)$")

DateUnit = Literal["year", "date"]


def parse_date(value: str, today: date | None = None) -> date | None:
    """Parse a loosely formatted date.

    Accepts YYYY-MM-DD, D/M/YYYY, D/M/YY, D/M (current year) and YYYY.

    Returns:
        Parsed date, or None if the value matches no format.
    """
    value = value.strip()

    day_month = _DAY_MONTH_PATTERN.match(value)
    if day_month:
        year = (today or date.today()).year
        try:
            return date(year, int(day_month.group("month")), int(day_month.group("day")))
        except ValueError:
            return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def one_of(path: str, separator: str = r"\s*,\s*") -> TagHandler:
    """Match documents whose `path` holds any of a comma separated list.

    `is:Comedy,Drama` -> {"$match": {path: {"$in": ["Comedy", "Drama"]}}}
    """
    splitter = re.compile(separator)

    def handler(value: str):
        choices = [choice for choice in splitter.split(value.strip()) if choice]
        if not choices:
            return False
        return {"$match": {path: {"$in": choices}}}

    return handler


def _date_bound(path: str, operator: str, unit: DateUnit) -> TagHandler:
    if unit not in ("year", "date"):
        raise ConfigError(f"Unsupported date unit: {unit!r}")

    def handler(value: str):
        parsed = parse_date(value)
        if parsed is None:
            return False
        bound: Any = parsed.year if unit == "year" else parsed.isoformat()
        return {"$match": {path: {operator: bound}}}

    return handler


def after(path: str, unit: DateUnit = "year") -> TagHandler:
    """Match documents dated on or after the given date.

    With unit "year" the bound is the integer year, with unit "date" it is
    an ISO date string.
    """
    return _date_bound(path, "$gte", unit)


def before(path: str, unit: DateUnit = "year") -> TagHandler:
    """Match documents dated on or before the given date."""
    return _date_bound(path, "$lte", unit)


def rating(path: str, minimum: int = 1, maximum: int = 5) -> TagHandler:
    """Match whole-number ratings.

    `stars:5` matches ratings in [5, 6) and `stars:3-5` matches [3, 6).
    Values outside [minimum, maximum] are rejected.
    """

    def handler(value: str):
        value = value.strip()
        bounds = _RANGE_PATTERN.match(value)
        if bounds:
            start, end = int(bounds.group("start")), int(bounds.group("end"))
        elif value.isdigit():
            start = end = int(value)
        else:
            return False

        if start > end or start < minimum or end > maximum:
            return False

        return {"$match": {path: {"$gte": start, "$lt": end + 1}}}

    return handler


def equals(path: str, cast: Callable[[str], Any] = str) -> TagHandler:
    """Match documents where `path` equals the (cast) value."""

    def handler(value: str):
        try:
            return {"$match": {path: cast(value)}}
        except (TypeError, ValueError):
            return False

    return handler


def lookup(
    resolver: Callable[[str], Awaitable[Iterable[Any] | None]],
    path: str,
) -> TagHandler:
    """Match documents referencing records resolved asynchronously.

    The resolver typically queries another collection, e.g. turning
    `director:luhrmann` into the ids of matching people.

    Args:
        resolver: Coroutine function mapping a tag value to matching ids.
        path: Document path holding the referenced id(s).
    """

    async def handler(value: str):
        resolved = await resolver(value)
        ids = list(resolved or [])
        if not ids:
            return False
        return {"$match": {path: {"$in": ids}}}

    return handler
