"""Command implementations for tagquery CLI."""

from .documents import add_load_arguments, handle_load
from .reindex import add_reindex_arguments, handle_reindex
from .search import (
    add_method_argument,
    add_search_arguments,
    handle_index_spec,
    handle_parse,
    handle_search,
)

__all__ = [
    "add_load_arguments",
    "handle_load",
    "add_search_arguments",
    "add_method_argument",
    "handle_parse",
    "handle_search",
    "handle_index_spec",
    "add_reindex_arguments",
    "handle_reindex",
]
