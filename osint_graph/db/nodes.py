"""CRUD operations for the ``node`` table."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from typing import Optional
from uuid import UUID

from osint_graph.db.connection import Connection, fetch_all, fetch_one, transaction
from osint_graph.db.models import (
    Node,
    NodePatch,
    NodeType,
    apply_node_patch,
    later_than,
    parse_timestamp,
)
from osint_graph.db.projects import require_project
from osint_graph.db.urls import normalize_url
from osint_graph.errors import InvalidRequest, NotFound, persistence_errors

logger = logging.getLogger(__name__)

# Both statements take the parameters produced by _params().
_INSERT_SQL = """
    INSERT INTO node (project_id, type, display, value, updated, notes, pos_x, pos_y, id)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_UPDATE_SQL = """
    UPDATE node
    SET    project_id = ?, type = ?, display = ?, value = ?, updated = ?,
           notes = ?, pos_x = ?, pos_y = ?
    WHERE  id = ?
"""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_node(row: sqlite3.Row) -> Node:
    return Node(
        id=UUID(row["id"]),
        project_id=UUID(row["project_id"]),
        node_type=NodeType(row["type"]),
        display=row["display"],
        value=row["value"],
        updated=parse_timestamp(row["updated"]),
        notes=row["notes"],
        pos_x=row["pos_x"],
        pos_y=row["pos_y"],
    )


def _normalized(node: Node) -> Node:
    if node.node_type == NodeType.URL:
        return replace(node, value=normalize_url(node.value))
    return node


def _params(node: Node) -> tuple:
    return (
        str(node.project_id),
        node.node_type.value,
        node.display,
        node.value,
        node.updated.isoformat(),
        node.notes,
        node.pos_x,
        node.pos_y,
        str(node.id),
    )


def require_node(conn: Connection, node_id: UUID) -> Node:
    """Like :func:`get_node` but raises NotFound when absent."""
    node = get_node(conn, node_id)
    if node is None:
        raise NotFound("Node", node_id)
    return node


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_node(conn: Connection, node: Node) -> Node:
    """Store ``node`` after checking its project exists.

    A node whose id is already stored is replaced in full.  URL values are
    normalised first and ``updated`` is set to now.

    Raises:
        NotFound: If ``node.project_id`` does not exist.
        InvalidRequest: If the id is stored under another project.

    Returns:
        The stored :class:`~osint_graph.db.models.Node`.
    """
    with persistence_errors("create_node", node.id), transaction(conn):
        require_project(conn, node.project_id)
        existing = get_node(conn, node.id)
        if existing is not None and existing.project_id != node.project_id:
            # Moving a node would strand its links in the old project.
            raise InvalidRequest(
                f"Node {node.id} belongs to project {existing.project_id}",
                field="project_id",
            )
        stored = _normalized(
            replace(node, updated=later_than(existing.updated if existing else None))
        )
        if existing is None:
            conn.execute(_INSERT_SQL, _params(stored))
            logger.debug("Created node %s in project %s", stored.id, stored.project_id)
        else:
            conn.execute(_UPDATE_SQL, _params(stored))
            logger.debug("Replaced node %s in project %s", stored.id, stored.project_id)
    return stored


def get_node(conn: Connection, node_id: UUID) -> Optional[Node]:
    """Fetch a single node by id.  Returns ``None`` if not found."""
    with persistence_errors("get_node", node_id):
        row = fetch_one(conn, "SELECT * FROM node WHERE id = ?", (str(node_id),))
    return _row_to_node(row) if row else None


def list_nodes_by_project(conn: Connection, project_id: UUID) -> list[Node]:
    """Return all nodes of a project ordered by id."""
    with persistence_errors("list_nodes_by_project", project_id):
        rows = fetch_all(
            conn,
            "SELECT * FROM node WHERE project_id = ? ORDER BY id",
            (str(project_id),),
        )
    return [_row_to_node(r) for r in rows]


def update_node(conn: Connection, node_id: UUID, patch: NodePatch) -> Node:
    """Merge ``patch`` into a stored node.

    ``updated`` is always refreshed; a node that is (or becomes) a URL gets
    its value normalised.

    Raises:
        NotFound: If ``node_id`` does not exist.
    """
    with persistence_errors("update_node", node_id), transaction(conn):
        stored = _normalized(apply_node_patch(require_node(conn, node_id), patch))
        conn.execute(_UPDATE_SQL, _params(stored))
    logger.debug("Updated node %s", node_id)
    return stored


def delete_node(conn: Connection, node_id: UUID) -> None:
    """Delete a node with its attachments and every link touching it.

    Raises:
        NotFound: If ``node_id`` does not exist.
    """
    nid = str(node_id)
    with persistence_errors("delete_node", node_id), transaction(conn):
        attachments = conn.execute("DELETE FROM attachment WHERE node_id = ?", (nid,)).rowcount
        links = conn.execute(
            'DELETE FROM node_link WHERE "left" = ? OR "right" = ?', (nid, nid)
        ).rowcount
        if conn.execute("DELETE FROM node WHERE id = ?", (nid,)).rowcount == 0:
            raise NotFound("Node", node_id)
    logger.debug("Deleted node %s (%d links, %d attachments)", node_id, links, attachments)
