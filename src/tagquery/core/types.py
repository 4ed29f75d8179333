"""Type definitions for tagquery."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from .exceptions import ConfigError

# A single pipeline stage, e.g. {"$match": {...}} or {"$limit": 10}
Stage = dict[str, Any]

# Computes a dynamic index value from a document
DocumentHandler = Callable[[dict], Union[Any, Awaitable[Any]]]


class SearchMethod(Enum):
    """Indexing / searching method."""

    TEXT = "$text"
    SEARCH = "$search"

    @classmethod
    def parse(cls, value: "SearchMethod | str") -> "SearchMethod":
        """Resolve a method from an enum member or its name.

        Accepts "$text", "text", "$search" and "search" (case-insensitive).

        Raises:
            ConfigError: If the value names no known method.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if not normalized.startswith("$"):
            normalized = f"${normalized}"
        for method in cls:
            if method.value == normalized:
                return method
        raise ConfigError('Method must be "$text" / "$search" only')

    @property
    def score_meta(self) -> str:
        """Name of the relevance score metadata exposed by this method."""
        return "textScore" if self is SearchMethod.TEXT else "searchScore"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of splitting a raw query into tags and fuzzy text.

    Attributes:
        fuzzy: Remaining non-tag tokens joined by single spaces.
        tags: Accepted tag key to (unwrapped) value.
        stages: Filter stages produced by accepted tags, in token order.
    """

    fuzzy: str
    tags: dict[str, str] = field(default_factory=dict)
    stages: tuple[Stage, ...] = ()


@dataclass
class SearchOptions:
    """Per-call overrides for a search."""

    match: Optional[dict] = None
    """Additional $match filter applied after the fuzzy match."""

    skip: Optional[int] = None
    limit: Optional[int] = None

    count: bool = False
    """Return only the number of matching documents."""

    score_field: Optional[str] = None
    """Field to expose the relevance score under; "" disables the score,
    None uses the service default ("_score" unless configured otherwise)."""

    sort_by_score: Optional[bool] = None
    """Sort by score (text method only); None uses the service default."""

    method: Optional[SearchMethod] = None
    """Overrides the service default method."""

    search_paths: Optional[list[str]] = None
    """Paths searched by the $search method, wildcard if omitted."""

    tags: Optional[bool] = None
    """Process tags; None uses tags whenever a registry is configured."""


@dataclass
class SearchField:
    """A field declared for indexing.

    Exactly one of `path` (static, stored value) or `name` (dynamic, computed
    by `handler` and stored under the index path) must be set.
    """

    path: Optional[str] = None
    name: Optional[str] = None
    weight: int = 1
    type: str = "string"
    handler: Optional[DocumentHandler] = None
    dynamic: bool = False

    def __post_init__(self) -> None:
        if bool(self.path) == bool(self.name):
            raise ConfigError(
                f"Search fields must specify exactly one of 'path' or 'name': {self!r}"
            )
        if self.name and self.handler is None:
            raise ConfigError(f"Dynamic search field {self.name!r} requires a handler")

    @property
    def key(self) -> str:
        """Path for static fields, name for dynamic ones."""
        return self.path or self.name  # type: ignore[return-value]


@dataclass(frozen=True)
class TextIndexSpec:
    """Specification for a simple text index.

    Attributes:
        keys: Indexed path to index type ("text").
        name: Index name.
        weights: Indexed path to relevance weight.
    """

    keys: dict[str, str]
    name: str
    weights: dict[str, int]


@dataclass(frozen=True)
class SearchIndexSpec:
    """Specification for a managed search index definition.

    Attributes:
        collection: Collection the index belongs to.
        name: Index name.
        fields: Nested field mapping tree.
        weights: Relevance weight by mapped path. Only the dynamic meta
            field carries one; other paths weigh 1.
    """

    collection: str
    name: str
    fields: dict[str, Any]
    weights: dict[str, int] = field(default_factory=dict)

    def to_command(self) -> dict[str, Any]:
        """Render as a createSearchIndexes database command."""
        return {
            "createSearchIndexes": self.collection,
            "indexes": [
                {
                    "name": self.name,
                    "definition": {
                        "mappings": {
                            "dynamic": False,
                            "fields": self.fields,
                        },
                    },
                }
            ],
        }


IndexSpec = Union[TextIndexSpec, SearchIndexSpec]


@dataclass
class ReindexProgress:
    """Snapshot passed to reindex progress callbacks."""

    processed: int
    failed: int
    elapsed: float


@dataclass
class ReindexResult:
    """Result of a bulk reindex operation."""

    processed: int = 0
    """Number of documents visited."""

    updated: int = 0
    """Number of documents whose index values were written."""

    failed: int = 0
    """Number of documents whose reindex raised."""

    errors: list[tuple[str, str]] = field(default_factory=list)
    """List of (doc_id, error_message) for failed documents."""
