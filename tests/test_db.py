"""Connection, transaction and migration tests.

All tests use an in-memory SQLite database (see ``conftest.conn``) except
where the on-disk behaviour itself is under test.
"""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest

from osint_graph.db.connection import Connection, fetch_all, get_connection, transaction
from osint_graph.db.migrations import current_version, init_db
from osint_graph.db.models import INBOX_ID, INBOX_NAME


def _insert_project(conn: Connection, name: str) -> None:
    conn.execute(
        "INSERT INTO project (id, name, user, creationdate) VALUES (?, ?, ?, ?)",
        (str(uuid4()), name, str(INBOX_ID), "2024-01-01T00:00:00+00:00"),
    )


def _project_names(conn: Connection) -> set[str]:
    return {r["name"] for r in fetch_all(conn, "SELECT name FROM project")}


# ---------------------------------------------------------------------------
# connection
# ---------------------------------------------------------------------------

class TestConnection:
    def test_foreign_keys_enabled(self, conn: Connection) -> None:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_autocommit_mode(self, conn: Connection) -> None:
        assert conn.isolation_level is None
        assert not conn.in_transaction

    def test_rows_by_name(self, conn: Connection) -> None:
        row = conn.execute("SELECT name FROM project WHERE id = ?", (str(INBOX_ID),)).fetchone()
        assert row["name"] == INBOX_NAME

    def test_file_database_creates_parent_dir(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "graph.sqlite3"
        connection = get_connection(db_path)
        try:
            init_db(connection)
            assert db_path.exists()
            mode = connection.execute("PRAGMA journal_mode").fetchone()[0]
            assert mode.lower() == "wal"
        finally:
            connection.close()


# ---------------------------------------------------------------------------
# transaction()
# ---------------------------------------------------------------------------

class TestTransaction:
    def test_commit(self, conn: Connection) -> None:
        with transaction(conn):
            _insert_project(conn, "alpha")
        assert "alpha" in _project_names(conn)
        assert not conn.in_transaction

    def test_rollback_on_error(self, conn: Connection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                _insert_project(conn, "alpha")
                raise RuntimeError("boom")
        assert "alpha" not in _project_names(conn)
        assert not conn.in_transaction

    def test_rollback_on_cancellation(self, conn: Connection) -> None:
        """BaseException subclasses (Ctrl-C, task cancellation) roll back too."""
        with pytest.raises(KeyboardInterrupt):
            with transaction(conn):
                _insert_project(conn, "alpha")
                raise KeyboardInterrupt
        assert "alpha" not in _project_names(conn)

    def test_nested_block_rolls_back_alone(self, conn: Connection) -> None:
        with transaction(conn):
            _insert_project(conn, "outer")
            with pytest.raises(ValueError):
                with transaction(conn):
                    _insert_project(conn, "inner-block")
                    raise ValueError("inner failure")
        names = _project_names(conn)
        assert "outer" in names
        assert "inner-block" not in names

    def test_outer_failure_discards_committed_savepoint(self, conn: Connection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                with transaction(conn):
                    _insert_project(conn, "inner-block")
                raise RuntimeError("outer failure")
        assert "inner-block" not in _project_names(conn)

    def test_depth_resets(self, conn: Connection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                with transaction(conn):
                    raise RuntimeError
        assert conn._depth == 0


# ---------------------------------------------------------------------------
# migrations
# ---------------------------------------------------------------------------

class TestMigrations:
    def test_tables_created(self, conn: Connection) -> None:
        tables = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        assert {"project", "node", "node_link", "attachment", "schema_version"} <= tables

    def test_indexes_created(self, conn: Connection) -> None:
        indexes = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
        }
        assert "idx_node_link_left" in indexes
        assert "idx_attachment_node" in indexes

    def test_version(self, conn: Connection) -> None:
        assert current_version(conn) == 3

    def test_init_twice_is_idempotent(self, conn: Connection) -> None:
        init_db(conn)
        assert current_version(conn) == 3
        rows = conn.execute("SELECT id, name FROM project WHERE id = ?", (str(INBOX_ID),)).fetchall()
        assert len(rows) == 1
        assert rows[0]["name"] == INBOX_NAME

    def test_each_migration_recorded_once(self, conn: Connection) -> None:
        init_db(conn)
        versions = [r[0] for r in conn.execute("SELECT version FROM schema_version ORDER BY version")]
        assert versions == [1, 2, 3]
