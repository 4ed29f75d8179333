"""Tag extraction from search queries.

A tag is a `key:value` term whose key is registered with a handler, e.g.
`after:2000-01-01` or `is:"Comedy, Drama"`. Handlers turn the value into a
filter stage, or return False to have the term searched as plain text.

Example:
    >>> registry = TagRegistry({
    ...     "is": lambda v: {"$match": {"info.genres": {"$in": v.split(",")}}},
    ... })
    >>> extractor = TagExtractor(registry)
    >>> result = await extractor.parse("miller is:Comedy,Drama")
    >>> result.fuzzy
    'miller'
    >>> result.tags
    {'is': 'Comedy,Drama'}
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Awaitable, Callable, Literal, Protocol, Union

from loguru import logger

from ..core.exceptions import ConfigError, HandlerContractError
from ..core.types import ParseResult, Stage
from .tokenizer import tokenize, unwrap

HandlerResult = Union[Mapping[str, Any], Literal[False]]

_TAG_PATTERN = re.compile(r"^(?P<key>\w+?):(?P<value>.*)$", re.DOTALL)
_KEY_PATTERN = re.compile(r"^\w+$")


class TagHandler(Protocol):
    """Converts a tag value into a filter stage.

    Returning False rejects the value; the original term is then treated
    as fuzzy text. Handlers may be coroutine functions.
    """

    def __call__(self, value: str) -> Union[HandlerResult, Awaitable[HandlerResult]]: ...


class TagRegistry(Mapping[str, TagHandler]):
    """Read-only, case-insensitive mapping of tag names to handlers.

    Example:
        >>> registry = TagRegistry({"Stars": rating("info.rating")})
        >>> "stars" in registry
        True
    """

    def __init__(self, handlers: Mapping[str, TagHandler] | Iterable[tuple[str, TagHandler]]):
        """Initialize with tag handlers.

        Args:
            handlers: Mapping (or pairs) of tag name to handler.

        Raises:
            ConfigError: If no tags are given, a name is not a word or a
                handler is not callable.
        """
        pairs = handlers.items() if isinstance(handlers, Mapping) else handlers
        self._handlers: dict[str, TagHandler] = {}
        for name, handler in pairs:
            if not isinstance(name, str) or not _KEY_PATTERN.match(name):
                raise ConfigError(f"Tag names must be word characters only: {name!r}")
            if not callable(handler):
                raise ConfigError(f"Tag handler for {name!r} is not callable")
            self._handlers[name.lower()] = handler

        if not self._handlers:
            raise ConfigError("Must specify at least one tag")

    def __getitem__(self, name: str) -> TagHandler:
        return self._handlers[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"TagRegistry({sorted(self._handlers)})"


class TagExtractor:
    """Splits queries into accepted tags, filter stages and fuzzy text.

    Handlers run one at a time in token order, so stage order always follows
    the query and a slow (async) handler never reorders results.
    """

    def __init__(
        self,
        registry: TagRegistry,
        unwrap: Callable[[str], str] = unwrap,
        tokenizer: Callable[[str], list[str]] = tokenize,
    ):
        """Initialize extractor.

        Args:
            registry: Tag handlers keyed by tag name.
            unwrap: Strips quote/bracket wrapping from terms and values.
            tokenizer: Splits raw query strings into terms.
        """
        self.registry = registry
        self._unwrap = unwrap
        self._tokenize = tokenizer

    async def parse(self, raw: str) -> ParseResult:
        """Tokenize and extract tags from a raw query string.

        Args:
            raw: Raw user query, e.g. 'foo after:2000 "is:Comedy, Drama"'.

        Returns:
            ParseResult with fuzzy text, accepted tags and filter stages.

        Raises:
            HandlerContractError: If a handler returns an unsupported value.
        """
        return await self.extract(self._tokenize(raw or ""))

    async def extract(self, tokens: Iterable[str]) -> ParseResult:
        """Classify pre-split tokens as tags or fuzzy text.

        Args:
            tokens: Query terms in their original order.

        Returns:
            ParseResult with fuzzy text, accepted tags and filter stages.

        Raises:
            HandlerContractError: If a handler returns an unsupported value.
        """
        fuzzy: list[str] = []
        tags: dict[str, str] = {}
        stages: list[Stage] = []

        for token in tokens:
            accepted = await self._evaluate(token)
            if accepted is None:
                fuzzy.append(token)
                continue

            key, value, stage = accepted
            tags[key] = value
            stages.append(stage)

        result = ParseResult(fuzzy=" ".join(fuzzy), tags=tags, stages=tuple(stages))
        logger.debug(
            f"Parsed query: fuzzy={result.fuzzy!r}, tags={result.tags}, "
            f"stages={len(result.stages)}"
        )
        return result

    async def _evaluate(self, token: str) -> tuple[str, str, Stage] | None:
        """Run the handler for a single term.

        Returns:
            Tuple of (key, value, stage) if the term is an accepted tag,
            None if it should be treated as fuzzy text.
        """
        match = _TAG_PATTERN.match(self._unwrap(token))
        if not match:
            return None

        key = match.group("key").lower()
        if key not in self.registry:
            return None

        value = self._unwrap(match.group("value"))
        result = self.registry[key](value)
        if inspect.isawaitable(result):
            result = await result

        if result is False:
            logger.debug(f"Tag {key!r} rejected value {value!r}")
            return None
        if not isinstance(result, Mapping):
            raise HandlerContractError(key, result)

        return key, value, dict(result)
