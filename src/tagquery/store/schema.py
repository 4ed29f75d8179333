"""Database schema definitions for tagquery.

The schema is versioned. A fresh database is created at SCHEMA_VERSION;
an older one is upgraded by applying MIGRATIONS in order.
"""

SCHEMA_VERSION = 2

SCHEMA_SQL = """\
-- JSON documents, one row per document per collection
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (collection, id)
);

-- Index definitions registered per collection and method
CREATE TABLE IF NOT EXISTS search_indexes (
    collection TEXT NOT NULL,
    method TEXT NOT NULL,
    name TEXT NOT NULL,
    definition TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (collection, method, name)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);
"""

# Version 2 keys index definitions by method, so a $text and a $search
# index may share a name.
MIGRATIONS: dict[int, str] = {
    2: """\
ALTER TABLE search_indexes RENAME TO search_indexes_v1;
CREATE TABLE search_indexes (
    collection TEXT NOT NULL,
    method TEXT NOT NULL,
    name TEXT NOT NULL,
    definition TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (collection, method, name)
);
INSERT INTO search_indexes (collection, method, name, definition, created_at)
SELECT collection, method, name, definition, created_at FROM search_indexes_v1;
DROP TABLE search_indexes_v1;
""",
}


def get_schema() -> str:
    """Get the SQL creating the current schema."""
    return SCHEMA_SQL


def get_migrations(from_version: int) -> list[tuple[int, str]]:
    """Get the migrations upgrading a database from `from_version`.

    Returns:
        (version, sql) pairs in the order they must be applied.
    """
    return [
        (version, MIGRATIONS[version])
        for version in range(from_version + 1, SCHEMA_VERSION + 1)
        if version in MIGRATIONS
    ]
