"""Storage for index definitions registered against collections."""

import json
from datetime import datetime, timezone

from ..core.types import IndexSpec, SearchIndexSpec, SearchMethod, TextIndexSpec
from .database import Database


class IndexRepository:
    """Repository for text / search index definitions."""

    def __init__(self, db: Database):
        """Initialize with database connection.

        Args:
            db: Database instance to use for operations.
        """
        self.db = db

    def save(self, collection: str, spec: IndexSpec) -> None:
        """Create or replace an index definition.

        A collection holds at most one $text index, so saving a text index
        replaces any other text index on the collection.
        """
        if isinstance(spec, TextIndexSpec):
            method = SearchMethod.TEXT
            definition = {"keys": spec.keys, "weights": spec.weights}
        else:
            method = SearchMethod.SEARCH
            definition = {"fields": spec.fields, "weights": spec.weights}

        with self.db.transaction() as cursor:
            if method is SearchMethod.TEXT:
                cursor.execute(
                    "DELETE FROM search_indexes WHERE collection = ? AND method = ?",
                    (collection, method.value),
                )
            cursor.execute(
                """
                INSERT OR REPLACE INTO search_indexes
                (collection, method, name, definition, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    collection,
                    method.value,
                    spec.name,
                    json.dumps(definition),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    def text_index(self, collection: str) -> TextIndexSpec | None:
        """Get the $text index of a collection, if any."""
        cursor = self.db.execute(
            """
            SELECT name, definition FROM search_indexes
            WHERE collection = ? AND method = ?
            """,
            (collection, SearchMethod.TEXT.value),
        )
        row = cursor.fetchone()
        if not row:
            return None
        definition = json.loads(row["definition"])
        return TextIndexSpec(
            keys=definition["keys"], name=row["name"], weights=definition["weights"]
        )

    def search_index(self, collection: str, name: str) -> SearchIndexSpec | None:
        """Get a named $search index of a collection, if any."""
        cursor = self.db.execute(
            """
            SELECT definition FROM search_indexes
            WHERE collection = ? AND name = ? AND method = ?
            """,
            (collection, name, SearchMethod.SEARCH.value),
        )
        row = cursor.fetchone()
        if not row:
            return None
        definition = json.loads(row["definition"])
        return SearchIndexSpec(
            collection=collection,
            name=name,
            fields=definition["fields"],
            weights=definition.get("weights", {}),
        )

    def names(self, collection: str) -> list[str]:
        """List index names registered for a collection."""
        cursor = self.db.execute(
            "SELECT DISTINCT name FROM search_indexes WHERE collection = ? ORDER BY name",
            (collection,),
        )
        return [row["name"] for row in cursor.fetchall()]
