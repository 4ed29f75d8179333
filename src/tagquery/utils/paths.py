"""Dotted path helpers for nested documents."""

from typing import Any

_MISSING = object()


def get_path(doc: Any, path: str, default: Any = None) -> Any:
    """Read a single value at a dotted path.

    Numeric segments index into lists.

    >>> get_path({"info": {"genres": ["Drama", "Comedy"]}}, "info.genres.0")
    'Drama'
    """
    node = doc
    for segment in path.split("."):
        if isinstance(node, dict):
            node = node.get(segment, _MISSING)
        elif isinstance(node, list) and segment.isdigit():
            index = int(segment)
            node = node[index] if index < len(node) else _MISSING
        else:
            return default
        if node is _MISSING:
            return default
    return node


def resolve_path(doc: Any, path: str) -> list[Any]:
    """Collect every value reachable at a dotted path.

    Lists met along the way are traversed element-wise, so
    `resolve_path({"cast": [{"name": "a"}, {"name": "b"}]}, "cast.name")`
    returns ["a", "b"]. A list found at the end of the path is returned as
    one value. Missing paths resolve to [].
    """
    nodes = [doc]
    for segment in path.split("."):
        found = []
        for node in nodes:
            if isinstance(node, dict):
                if segment in node:
                    found.append(node[segment])
            elif isinstance(node, list):
                if segment.isdigit():
                    index = int(segment)
                    if index < len(node):
                        found.append(node[index])
                else:
                    for item in node:
                        if isinstance(item, dict) and segment in item:
                            found.append(item[segment])
        nodes = found
    return nodes


def set_path(doc: dict, path: str, value: Any) -> None:
    """Write a value at a dotted path, creating intermediate dicts."""
    *parents, leaf = path.split(".")
    node = doc
    for segment in parents:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[leaf] = value
