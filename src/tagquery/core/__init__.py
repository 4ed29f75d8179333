"""Core types, configuration and errors for tagquery."""

from .config import Config, ReindexConfig, SearchConfig
from .exceptions import (
    ConfigError,
    DatabaseError,
    DocumentNotFoundError,
    HandlerContractError,
    MalformedReferenceError,
    PipelineError,
    SearchError,
    TagQueryError,
    UnresolvedStageError,
)
from .types import (
    IndexSpec,
    ParseResult,
    ReindexProgress,
    ReindexResult,
    SearchField,
    SearchIndexSpec,
    SearchMethod,
    SearchOptions,
    Stage,
    TextIndexSpec,
)

__all__ = [
    # Config
    "Config",
    "ReindexConfig",
    "SearchConfig",
    # Exceptions
    "ConfigError",
    "DatabaseError",
    "DocumentNotFoundError",
    "HandlerContractError",
    "MalformedReferenceError",
    "PipelineError",
    "SearchError",
    "TagQueryError",
    "UnresolvedStageError",
    # Types
    "IndexSpec",
    "ParseResult",
    "ReindexProgress",
    "ReindexResult",
    "SearchField",
    "SearchIndexSpec",
    "SearchMethod",
    "SearchOptions",
    "Stage",
    "TextIndexSpec",
]
