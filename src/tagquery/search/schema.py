"""Declarative search schema loading.

A schema file declares the indexed fields and the query tags of a
collection:

    fields:
      - {path: title, weight: 100}
      - {path: info.directors, weight: 50}
      - {name: mainGenre, weight: 5, from: info.genres.0}
    tags:
      is: {type: one_of, path: info.genres}
      after: {type: after, path: year}
      before: {type: before, path: year}
      stars: {type: rating, path: info.rating, min: 1, max: 5}

Dynamic fields (`name` + `from`) compute their value by reading another
document path.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml

from ..core.exceptions import ConfigError
from ..core.types import SearchField
from ..utils.paths import get_path
from . import handlers
from .tags import TagHandler, TagRegistry


@dataclass
class SearchSchema:
    """Fields and tags declared for a collection."""

    fields: list[SearchField]
    registry: TagRegistry | None = None


def _path_reader(path: str) -> Callable[[dict], Any]:
    def handler(doc: dict) -> Any:
        return get_path(doc, path)

    return handler


def _build_tag(name: str, spec: dict[str, Any]) -> TagHandler:
    kind = spec.get("type")
    path = spec.get("path")
    if not path:
        raise ConfigError(f"Tag {name!r} must declare a 'path'")

    if kind == "one_of":
        return handlers.one_of(path, spec.get("separator", r"\s*,\s*"))
    if kind == "after":
        return handlers.after(path, spec.get("unit", "year"))
    if kind == "before":
        return handlers.before(path, spec.get("unit", "year"))
    if kind == "rating":
        return handlers.rating(path, int(spec.get("min", 1)), int(spec.get("max", 5)))
    if kind == "equals":
        casts = {"str": str, "int": int, "float": float}
        cast = spec.get("cast", "str")
        if cast not in casts:
            raise ConfigError(f"Tag {name!r} has unknown cast {cast!r}")
        return handlers.equals(path, casts[cast])

    raise ConfigError(f"Tag {name!r} has unknown type {kind!r}")


def _build_field(spec: dict[str, Any]) -> SearchField:
    spec = dict(spec)
    source = spec.pop("from", None)
    if spec.get("name"):
        if not source:
            raise ConfigError(f"Dynamic field {spec['name']!r} must declare 'from'")
        spec["handler"] = _path_reader(source)
    try:
        return SearchField(**spec)
    except TypeError as e:
        raise ConfigError(f"Invalid field declaration {spec!r}: {e}") from e


def parse_schema(data: dict[str, Any]) -> SearchSchema:
    """Build a SearchSchema from already-parsed schema data.

    Raises:
        ConfigError: If the schema is malformed.
    """
    if not isinstance(data, dict):
        raise ConfigError("Search schema must be a mapping")

    field_specs = data.get("fields") or []
    if not isinstance(field_specs, list) or not field_specs:
        raise ConfigError("Must specify at least one field to index")
    fields = [_build_field(spec) for spec in field_specs]

    registry = None
    tag_specs = data.get("tags")
    if tag_specs is not None:
        if not isinstance(tag_specs, dict):
            raise ConfigError("Schema 'tags' must be a mapping of tag name to spec")
        registry = TagRegistry(
            {name: _build_tag(name, spec or {}) for name, spec in tag_specs.items()}
        )

    return SearchSchema(fields=fields, registry=registry)


def load_schema(path: Path) -> SearchSchema:
    """Load a SearchSchema from a YAML file.

    Raises:
        ConfigError: If the file cannot be read or is malformed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read search schema {path}: {e}") from e

    return parse_schema(data or {})
