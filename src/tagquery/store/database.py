"""SQLite connection manager for the tagquery document store."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger

from ..core.exceptions import DatabaseError
from .schema import SCHEMA_VERSION, get_migrations, get_schema

MEMORY = ":memory:"


class Database:
    """SQLite connection holding document collections and index definitions.

    Connecting creates the schema on a new database and migrates an older
    one to SCHEMA_VERSION.

    Example:

        db = Database(":memory:")
        db.connect()
        with db.transaction() as cursor:
            cursor.execute("DELETE FROM documents WHERE collection = ?", ("movies",))
        db.close()
    """

    def __init__(self, path: Path | str):
        """Initialize database with path.

        Args:
            path: Path to the SQLite database file, or ":memory:".
        """
        self.path = path if path == MEMORY else Path(path)
        self._connection: sqlite3.Connection | None = None

    @property
    def connected(self) -> bool:
        """Whether a connection is open."""
        return self._connection is not None

    @property
    def schema_version(self) -> int | None:
        """Schema version recorded in the database, None if unversioned."""
        row = self.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
        return row["version"]

    def connect(self) -> None:
        """Open the connection and bring the schema up to date.

        Raises:
            DatabaseError: If the file cannot be opened, or the database was
                written by a newer schema version.
        """
        try:
            if isinstance(self.path, Path):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            # Workers of one event loop share the connection across awaits.
            self._connection = sqlite3.connect(str(self.path), check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._init_schema()
        except (OSError, sqlite3.Error, DatabaseError) as e:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
            if isinstance(e, DatabaseError):
                raise
            raise DatabaseError(f"Failed to connect to database {self.path}: {e}") from e
        logger.debug(f"Connected to database {self.path} (schema v{SCHEMA_VERSION})")

    def close(self) -> None:
        """Close the connection; closing twice is a no-op."""
        if self._connection is None:
            return
        try:
            self._connection.close()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to close database: {e}") from e
        finally:
            self._connection = None

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise DatabaseError("Database not connected")
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run statements in one transaction, rolled back on any error.

        Yields:
            A cursor for executing SQL statements.

        Raises:
            DatabaseError: If not connected or the transaction fails.
        """
        connection = self._require_connection()
        cursor = connection.cursor()
        try:
            yield cursor
            connection.commit()
        except Exception as e:
            connection.rollback()
            if isinstance(e, DatabaseError):
                raise
            raise DatabaseError(f"Transaction failed: {e}") from e
        finally:
            cursor.close()

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute one statement outside an explicit transaction.

        Raises:
            DatabaseError: If not connected or the statement fails.
        """
        connection = self._require_connection()
        try:
            return connection.execute(sql, params)
        except sqlite3.Error as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def executescript(self, sql: str) -> None:
        """Execute a script of several statements.

        Raises:
            DatabaseError: If not connected or the script fails.
        """
        connection = self._require_connection()
        try:
            connection.executescript(sql)
        except sqlite3.Error as e:
            raise DatabaseError(f"Script execution failed: {e}") from e

    def _init_schema(self) -> None:
        self.executescript(get_schema())

        current = self.schema_version
        if current is None:
            self._set_version(SCHEMA_VERSION)
            return
        if current > SCHEMA_VERSION:
            raise DatabaseError(
                f"Database {self.path} has schema version {current}, "
                f"newer than supported version {SCHEMA_VERSION}"
            )

        for version, sql in get_migrations(current):
            logger.info(f"Migrating database {self.path} to schema version {version}")
            self.executescript(sql)
            self._set_version(version)
        self._set_version(SCHEMA_VERSION)

    def _set_version(self, version: int) -> None:
        with self.transaction() as cursor:
            cursor.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (version,))
