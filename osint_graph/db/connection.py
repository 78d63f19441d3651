"""SQLite connection factory and transaction helper.

Usage::

    from osint_graph.db.connection import get_connection, transaction

    conn = get_connection()
    with transaction(conn):
        conn.execute("DELETE FROM node WHERE id = ?", (node_id,))
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Sequence, Union

from osint_graph.config import settings


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


class Connection(sqlite3.Connection):
    """A :class:`sqlite3.Connection` carrying its own re-entrant lock.

    One connection is shared by every request handler thread.  The lock
    serialises statements and transactions on it; ``_depth`` tracks how many
    :func:`transaction` blocks are open so nested blocks become savepoints.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.lock = threading.RLock()
        self._depth = 0


def get_connection(db_path: Optional[Path | str] = None) -> Connection:
    """Open and configure a SQLite connection.

    Steps performed on every new connection:
    1. Autocommit mode (``isolation_level=None``) so :func:`transaction`
       controls ``BEGIN``/``COMMIT`` explicitly.
    2. Enable ``PRAGMA foreign_keys = ON``.
    3. Switch to WAL journal mode for concurrent readers.
    4. Register ``unicode_lower()``, a full Unicode ``lower`` (SQLite's
       built-in one only folds ASCII).

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.

    Returns:
        A configured :class:`Connection` with ``row_factory`` set to
        :class:`sqlite3.Row` so columns can be accessed by name.
    """
    path = db_path if db_path is not None else settings.db_path

    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        str(path),
        check_same_thread=False,
        isolation_level=None,
        factory=Connection,
    )
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.create_function("unicode_lower", 1, _unicode_lower, deterministic=True)

    return conn  # type: ignore[return-value]


@contextmanager
def transaction(conn: Connection, immediate: bool = True) -> Iterator[Connection]:
    """Run the block atomically.

    The outermost block issues ``BEGIN IMMEDIATE`` (or a deferred ``BEGIN``
    for read-only work) and commits on success.  Nested blocks use a
    savepoint.  Any exception, including cancellation, rolls the block back
    before propagating.
    """
    with conn.lock:
        depth = conn._depth
        savepoint = f"sp_{depth}"
        if depth == 0:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        else:
            conn.execute(f"SAVEPOINT {savepoint}")
        conn._depth += 1
        try:
            yield conn
        except BaseException:
            conn._depth -= 1
            if depth == 0:
                conn.execute("ROLLBACK")
            else:
                conn.execute(f"ROLLBACK TO {savepoint}")
                conn.execute(f"RELEASE {savepoint}")
            raise
        else:
            conn._depth -= 1
            if depth == 0:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            else:
                conn.execute(f"RELEASE {savepoint}")


def fetch_one(
    conn: Connection, sql: str, params: Union[Sequence[Any], Mapping[str, Any]] = ()
) -> Optional[sqlite3.Row]:
    """Run a single query under the connection lock and return the first row."""
    with conn.lock:
        return conn.execute(sql, params).fetchone()


def fetch_all(
    conn: Connection, sql: str, params: Union[Sequence[Any], Mapping[str, Any]] = ()
) -> list[sqlite3.Row]:
    """Run a single query under the connection lock and return every row."""
    with conn.lock:
        return conn.execute(sql, params).fetchall()
