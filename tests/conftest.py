"""Shared fixtures.

Every test gets its own in-memory SQLite database with the schema applied,
so tests are fast, isolated and never touch ``~/.cache``.
"""

from __future__ import annotations

from typing import Callable, Generator

import pytest

from osint_graph.db.connection import Connection, get_connection
from osint_graph.db.migrations import init_db
from osint_graph.db.models import Node, NodeType, Project
from osint_graph.db.nodes import create_node
from osint_graph.db.projects import upsert_project


@pytest.fixture()
def conn() -> Generator[Connection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def project(conn: Connection) -> Project:
    return upsert_project(conn, Project(name="Operation Nightjar", tags=["fraud"]))


@pytest.fixture()
def make_node(conn: Connection, project: Project) -> Callable[..., Node]:
    """Factory storing a node in ``project`` unless another project is given."""

    def _make(
        display: str = "node",
        value: str = "",
        node_type: NodeType = NodeType.PERSON,
        **kwargs,
    ) -> Node:
        kwargs.setdefault("project_id", project.id)
        return create_node(
            conn, Node(node_type=node_type, display=display, value=value or display, **kwargs)
        )

    return _make
