"""Database initialisation and migration helpers.

``init_db(conn)`` is idempotent: safe to call on an existing database.
Each migration runs in its own transaction and is recorded in the
``schema_version`` table, so a partially applied step never sticks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from osint_graph.db.connection import Connection, fetch_one, transaction
from osint_graph.db.models import INBOX_ID, INBOX_NAME
from osint_graph.errors import persistence_errors

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

_CREATE_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS project (
        id            TEXT PRIMARY KEY NOT NULL,
        name          TEXT NOT NULL,
        user          TEXT NOT NULL,
        creationdate  TEXT NOT NULL,
        last_updated  TEXT,
        description   TEXT,
        tags          TEXT NOT NULL DEFAULT '[]'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS node (
        id          TEXT PRIMARY KEY NOT NULL,
        project_id  TEXT NOT NULL
                    REFERENCES project(id) ON DELETE CASCADE ON UPDATE CASCADE,
        type        TEXT NOT NULL,
        display     TEXT NOT NULL,
        value       TEXT NOT NULL,
        updated     TEXT NOT NULL,
        notes       TEXT,
        pos_x       INTEGER,
        pos_y       INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS node_link (
        id          TEXT PRIMARY KEY NOT NULL,
        "left"      TEXT NOT NULL
                    REFERENCES node(id) ON DELETE CASCADE ON UPDATE CASCADE,
        "right"     TEXT NOT NULL
                    REFERENCES node(id) ON DELETE CASCADE ON UPDATE CASCADE,
        project_id  TEXT NOT NULL
                    REFERENCES project(id) ON DELETE CASCADE ON UPDATE CASCADE,
        linktype    TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attachment (
        id            TEXT PRIMARY KEY NOT NULL,
        node_id       TEXT NOT NULL
                      REFERENCES node(id) ON DELETE CASCADE ON UPDATE CASCADE,
        filename      TEXT NOT NULL,
        content_type  TEXT NOT NULL,
        size          INTEGER NOT NULL,
        data          BLOB NOT NULL,
        created       TEXT NOT NULL
    )
    """,
]


def _seed_inbox() -> list[tuple[str, tuple]]:
    now = datetime.now(timezone.utc).isoformat()
    return [
        (
            """
            INSERT OR IGNORE INTO project (id, name, user, creationdate, tags)
            VALUES (?, ?, ?, ?, '[]')
            """,
            (str(INBOX_ID), INBOX_NAME, str(INBOX_ID), now),
        )
    ]


_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_node_project ON node(project_id)",
    "CREATE INDEX IF NOT EXISTS idx_node_link_project ON node_link(project_id)",
    'CREATE INDEX IF NOT EXISTS idx_node_link_left ON node_link("left")',
    'CREATE INDEX IF NOT EXISTS idx_node_link_right ON node_link("right")',
    "CREATE INDEX IF NOT EXISTS idx_attachment_node ON attachment(node_id)",
]


def _migrations() -> list[tuple[int, str, list[tuple[str, tuple]]]]:
    """Ordered ``(version, description, [(sql, params), ...])`` steps.

    Append new steps at the end; never edit an applied one.
    """
    return [
        (1, "create tables", [(sql, ()) for sql in _CREATE_TABLES]),
        (2, "seed inbox project", _seed_inbox()),
        (3, "lookup indexes", [(sql, ()) for sql in _CREATE_INDEXES]),
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def init_db(conn: Connection) -> None:
    """Create the version table and apply every pending migration.

    Args:
        conn: An open, configured connection from
            :func:`~osint_graph.db.connection.get_connection`.
    """
    with persistence_errors("init_db"):
        _ensure_version_table(conn)
        migrate(conn)


def _ensure_version_table(conn: Connection) -> None:
    """Create the internal schema-version tracking table if absent."""
    with transaction(conn):
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version     INTEGER PRIMARY KEY,
                description TEXT NOT NULL,
                applied_at  TEXT NOT NULL
            )
            """
        )


def current_version(conn: Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    row = fetch_one(conn, "SELECT COALESCE(MAX(version), 0) FROM schema_version")
    return row[0] if row else 0


def migrate(conn: Connection) -> None:
    """Run any pending incremental migrations in version order."""
    applied = current_version(conn)
    for version, description, statements in _migrations():
        if version <= applied:
            continue
        with transaction(conn):
            for sql, params in statements:
                conn.execute(sql, params)
            conn.execute(
                "INSERT INTO schema_version(version, description, applied_at) VALUES (?, ?, ?)",
                (version, description, datetime.now(timezone.utc).isoformat()),
            )
        logger.info("Applied migration %d: %s", version, description)
