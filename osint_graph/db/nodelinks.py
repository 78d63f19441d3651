"""Operations on the ``node_link`` table.

Links are create-only: reusing an id is a Conflict rather than an upsert.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional
from uuid import UUID

from osint_graph.db.connection import Connection, fetch_all, fetch_one, transaction
from osint_graph.db.models import LinkType, NodeLink
from osint_graph.db.nodes import require_node
from osint_graph.db.projects import require_project
from osint_graph.errors import Conflict, InvalidRequest, NotFound, persistence_errors

logger = logging.getLogger(__name__)


def _row_to_link(row: sqlite3.Row) -> NodeLink:
    return NodeLink(
        id=UUID(row["id"]),
        left=UUID(row["left"]),
        right=UUID(row["right"]),
        project_id=UUID(row["project_id"]),
        linktype=LinkType(row["linktype"]),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_nodelink(conn: Connection, link: NodeLink) -> NodeLink:
    """Insert a link between two nodes of the same project.

    Raises:
        Conflict: If a link with ``link.id`` already exists.
        NotFound: If the project or either endpoint node does not exist.
        InvalidRequest: If an endpoint belongs to a different project.
    """
    with persistence_errors("create_nodelink", link.id), transaction(conn):
        if get_nodelink(conn, link.id) is not None:
            raise Conflict("NodeLink", link.id)
        require_project(conn, link.project_id)
        for side, node_id in (("left", link.left), ("right", link.right)):
            node = require_node(conn, node_id)
            if node.project_id != link.project_id:
                raise InvalidRequest(
                    f"{side} node {node_id} belongs to project {node.project_id}, "
                    f"not {link.project_id}",
                    field=side,
                )
        conn.execute(
            """
            INSERT INTO node_link (id, "left", "right", project_id, linktype)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(link.id),
                str(link.left),
                str(link.right),
                str(link.project_id),
                link.linktype.value,
            ),
        )
    logger.debug("Created nodelink %s (%s -> %s)", link.id, link.left, link.right)
    return link


def get_nodelink(conn: Connection, link_id: UUID) -> Optional[NodeLink]:
    """Fetch a single link by id.  Returns ``None`` if not found."""
    with persistence_errors("get_nodelink", link_id):
        row = fetch_one(conn, "SELECT * FROM node_link WHERE id = ?", (str(link_id),))
    return _row_to_link(row) if row else None


def list_nodelinks_by_project(conn: Connection, project_id: UUID) -> list[NodeLink]:
    """Return all links of a project ordered by id."""
    with persistence_errors("list_nodelinks_by_project", project_id):
        rows = fetch_all(
            conn,
            "SELECT * FROM node_link WHERE project_id = ? ORDER BY id",
            (str(project_id),),
        )
    return [_row_to_link(r) for r in rows]


def list_nodelinks_by_node(conn: Connection, node_id: UUID) -> list[NodeLink]:
    """Return all links where ``node_id`` is the left **or** the right end."""
    nid = str(node_id)
    with persistence_errors("list_nodelinks_by_node", node_id):
        rows = fetch_all(
            conn,
            'SELECT * FROM node_link WHERE "left" = ? OR "right" = ? ORDER BY id',
            (nid, nid),
        )
    return [_row_to_link(r) for r in rows]


def delete_nodelink(conn: Connection, link_id: UUID) -> None:
    """Delete a link.

    Raises:
        NotFound: If ``link_id`` does not exist.
    """
    with persistence_errors("delete_nodelink", link_id), transaction(conn):
        if conn.execute("DELETE FROM node_link WHERE id = ?", (str(link_id),)).rowcount == 0:
            raise NotFound("NodeLink", link_id)
    logger.debug("Deleted nodelink %s", link_id)
