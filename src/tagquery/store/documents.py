"""Document storage and retrieval for tagquery."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator

from ..core.exceptions import DocumentNotFoundError
from ..utils.paths import set_path
from .database import Database

ID_FIELD = "_id"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dumps(doc: dict[str, Any]) -> str:
    return json.dumps(doc, default=str, ensure_ascii=False)


class DocumentRepository:
    """Repository for JSON documents grouped by collection name."""

    def __init__(self, db: Database):
        """Initialize with database connection.

        Args:
            db: Database instance to use for operations.
        """
        self.db = db

    def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        """Insert a document, assigning an id if it has none.

        Args:
            collection: Collection name.
            doc: Document body. Not mutated.

        Returns:
            The stored document including its "_id".

        Raises:
            DatabaseError: If a document with the same id already exists.
        """
        return self.insert_many(collection, [doc])[0]

    def insert_many(self, collection: str, docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert several documents in a single transaction.

        Args:
            collection: Collection name.
            docs: Document bodies. Not mutated.

        Returns:
            The stored documents including their "_id".
        """
        now = _now()
        stored = []
        with self.db.transaction() as cursor:
            for doc in docs:
                body = dict(doc)
                body[ID_FIELD] = str(body.get(ID_FIELD) or uuid.uuid4().hex)
                cursor.execute(
                    """
                    INSERT INTO documents (collection, id, body, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (collection, body[ID_FIELD], _dumps(body), now, now),
                )
                stored.append(body)
        return stored

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Retrieve a document by id.

        Returns:
            Document if found, None otherwise.
        """
        cursor = self.db.execute(
            "SELECT body FROM documents WHERE collection = ? AND id = ?",
            (collection, str(doc_id)),
        )
        row = cursor.fetchone()
        return json.loads(row["body"]) if row else None

    def iter_collection(self, collection: str) -> Iterator[dict[str, Any]]:
        """Iterate over every document of a collection in insertion order."""
        cursor = self.db.execute(
            "SELECT body FROM documents WHERE collection = ? ORDER BY rowid",
            (collection,),
        )
        for row in cursor:
            yield json.loads(row["body"])

    def list_collection(self, collection: str) -> list[dict[str, Any]]:
        """List every document of a collection in insertion order."""
        return list(self.iter_collection(collection))

    def count(self, collection: str) -> int:
        """Count documents in a collection."""
        cursor = self.db.execute(
            "SELECT COUNT(*) as count FROM documents WHERE collection = ?",
            (collection,),
        )
        return cursor.fetchone()["count"]

    def replace(self, collection: str, doc: dict[str, Any]) -> None:
        """Replace a stored document with a new body.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        doc_id = str(doc[ID_FIELD])
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                UPDATE documents SET body = ?, updated_at = ?
                WHERE collection = ? AND id = ?
                """,
                (_dumps(doc), _now(), collection, doc_id),
            )
            updated = cursor.rowcount
        if not updated:
            raise DocumentNotFoundError(doc_id, collection)

    def update_path(self, collection: str, doc_id: str, path: str, value: Any) -> dict[str, Any]:
        """Set a (dotted) path within a stored document.

        Returns:
            The updated document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        doc = self.get(collection, doc_id)
        if doc is None:
            raise DocumentNotFoundError(str(doc_id), collection)

        set_path(doc, path, value)
        self.replace(collection, doc)
        return doc

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document.

        Returns:
            True if document was deleted, False if not found.
        """
        with self.db.transaction() as cursor:
            cursor.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, str(doc_id)),
            )
            deleted = cursor.rowcount
        return deleted > 0
