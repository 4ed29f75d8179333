"""Tag-aware fuzzy search for JSON document collections."""

__version__ = "0.1.0"
