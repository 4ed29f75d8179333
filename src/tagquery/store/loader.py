"""Bulk loading of documents with symbolic cross references.

Items may declare an alias with the "$" key and refer to each other with
"$alias" strings anywhere in their body:

    - {"$": "$romeo", "title": "Romeo + Juliet"}
    - {"title": "Moulin Rouge!", "sameDirectorAs": "$romeo"}

References are replaced with the id of the aliased document. Ids are
assigned before insertion, so items may reference later (or each other's)
aliases.
"""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from ..core.exceptions import ConfigError, MalformedReferenceError
from .collection import DocumentCollection
from .documents import ID_FIELD

ALIAS_KEY = "$"


@dataclass
class LoadResult:
    """Result of a bulk load."""

    inserted: list[dict[str, Any]] = field(default_factory=list)
    """Stored documents including their "_id"."""

    skipped: list[tuple[int, str]] = field(default_factory=list)
    """List of (item_index, error_message) for items not loaded."""

    unresolved: list[str] = field(default_factory=list)
    """References that matched no alias (left as plain strings)."""

    aliases: dict[str, str] = field(default_factory=dict)
    """Alias to assigned document id."""


def _replace_refs(node: Any, aliases: dict[str, str], unresolved: list[str]) -> Any:
    if isinstance(node, list):
        return [_replace_refs(v, aliases, unresolved) for v in node]
    if isinstance(node, dict):
        return {
            k: _replace_refs(v, aliases, unresolved) for k, v in node.items() if k != ALIAS_KEY
        }
    if isinstance(node, str) and node.startswith("$") and len(node) > 1:
        if node in aliases:
            return aliases[node]
        if node not in unresolved:
            unresolved.append(node)
    return node


def load_documents(collection: DocumentCollection, items: list[dict[str, Any]]) -> LoadResult:
    """Insert items into a collection, resolving "$alias" references.

    Args:
        collection: Target collection.
        items: Document bodies, optionally carrying a "$" alias.

    Returns:
        LoadResult. Items with a malformed alias are skipped and reported;
        the rest of the batch is inserted in one transaction.

    Raises:
        DatabaseError: If inserting the batch fails.
    """
    result = LoadResult()
    accepted: list[dict[str, Any]] = []

    for index, item in enumerate(items):
        try:
            if not isinstance(item, dict):
                raise ConfigError(f"Item {index} is not a mapping: {item!r}")
            alias = item.get(ALIAS_KEY)
            if alias is not None and not (isinstance(alias, str) and alias.startswith("$")):
                raise MalformedReferenceError(str(alias))
        except (ConfigError, MalformedReferenceError) as e:
            logger.warning(f"Skipping item {index}: {e}")
            result.skipped.append((index, str(e)))
            continue

        body = dict(item)
        body[ID_FIELD] = str(body.get(ID_FIELD) or uuid.uuid4().hex)
        if alias:
            result.aliases[alias] = body[ID_FIELD]
        accepted.append(body)

    resolved = [_replace_refs(body, result.aliases, result.unresolved) for body in accepted]
    if result.unresolved:
        logger.warning(f"Unresolved references: {', '.join(result.unresolved)}")

    if resolved:
        result.inserted = collection.insert_many(resolved)
    logger.info(
        f"Loaded {len(result.inserted)} documents into {collection.name!r} "
        f"({len(result.skipped)} skipped)"
    )
    return result


def read_items(path: Path | str) -> list[dict[str, Any]]:
    """Read a list of items from a YAML or JSON file.

    Raises:
        ConfigError: If the file cannot be read or is not a list.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read documents from {path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(f"Expected a list of documents in {path}")
    return data
