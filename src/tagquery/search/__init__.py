"""Query parsing, pipeline compilation and index specification."""

from .compiler import collapse_count, compile_pipeline
from .handlers import after, before, equals, lookup, one_of, rating
from .index_spec import build_index_spec
from .ports import IndexManager, PipelineExecutor
from .schema import SearchSchema, load_schema, parse_schema
from .tags import TagExtractor, TagHandler, TagRegistry
from .terms import clean_terms
from .tokenizer import tokenize, unwrap

__all__ = [
    # Parsing
    "tokenize",
    "unwrap",
    "TagExtractor",
    "TagHandler",
    "TagRegistry",
    # Stock tag handlers
    "after",
    "before",
    "equals",
    "lookup",
    "one_of",
    "rating",
    # Compilation
    "compile_pipeline",
    "collapse_count",
    "build_index_spec",
    "clean_terms",
    # Schema
    "SearchSchema",
    "load_schema",
    "parse_schema",
    # Ports
    "IndexManager",
    "PipelineExecutor",
]
