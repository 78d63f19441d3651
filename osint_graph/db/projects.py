"""CRUD operations for the ``project`` table.

Projects are upserted by id: saving a project whose id already exists merges
the mutable fields and refreshes ``last_updated``.  Deleting a project fans
out to its attachments, links and nodes inside one transaction.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional
from uuid import UUID

from osint_graph.db.connection import Connection, fetch_all, fetch_one, transaction
from osint_graph.db.models import (
    INBOX_ID,
    Project,
    ProjectPatch,
    apply_project_patch,
    later_than,
    parse_optional_timestamp,
    parse_timestamp,
)
from osint_graph.errors import InvalidRequest, NotFound, persistence_errors

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=UUID(row["id"]),
        name=row["name"],
        user=UUID(row["user"]),
        creationdate=parse_timestamp(row["creationdate"]),
        last_updated=parse_optional_timestamp(row["last_updated"]),
        description=row["description"],
        tags=json.loads(row["tags"] or "[]"),
    )


def _insert(conn: Connection, project: Project) -> None:
    conn.execute(
        """
        INSERT INTO project (id, name, user, creationdate, last_updated, description, tags)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            str(project.id),
            project.name,
            str(project.user),
            project.creationdate.isoformat(),
            project.last_updated.isoformat() if project.last_updated else None,
            project.description,
            json.dumps(project.tags, ensure_ascii=False),
        ),
    )


def _write(conn: Connection, project: Project) -> None:
    conn.execute(
        """
        UPDATE project
        SET    name = ?, description = ?, tags = ?, last_updated = ?
        WHERE  id = ?
        """,
        (
            project.name,
            project.description,
            json.dumps(project.tags, ensure_ascii=False),
            project.last_updated.isoformat() if project.last_updated else None,
            str(project.id),
        ),
    )


def require_project(conn: Connection, project_id: UUID) -> Project:
    """Like :func:`get_project` but raises NotFound when absent."""
    project = get_project(conn, project_id)
    if project is None:
        raise NotFound("Project", project_id)
    return project


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def upsert_project(conn: Connection, project: Project) -> Project:
    """Insert ``project`` or, if its id exists, merge it into the stored row.

    On merge ``name``, ``description`` and ``tags`` are taken from
    ``project``; ``user`` and ``creationdate`` stay as stored.  Either way
    ``last_updated`` is set to now.

    Returns:
        The stored :class:`~osint_graph.db.models.Project`.
    """
    with persistence_errors("upsert_project", project.id), transaction(conn):
        existing = get_project(conn, project.id)
        if existing is None:
            stored = Project(
                id=project.id,
                name=project.name,
                user=project.user,
                creationdate=project.creationdate,
                last_updated=later_than(None),
                description=project.description,
                tags=list(project.tags),
            )
            _insert(conn, stored)
            logger.debug("Created project %s (%r)", stored.id, stored.name)
        else:
            stored = apply_project_patch(existing, ProjectPatch.from_project(project))
            _write(conn, stored)
            logger.debug("Merged project %s (%r)", stored.id, stored.name)
    return stored


def update_project(conn: Connection, project_id: UUID, patch: ProjectPatch) -> Project:
    """Apply ``patch`` to an existing project.

    Raises:
        NotFound: If ``project_id`` does not exist.
    """
    with persistence_errors("update_project", project_id), transaction(conn):
        stored = apply_project_patch(require_project(conn, project_id), patch)
        _write(conn, stored)
    logger.debug("Updated project %s", project_id)
    return stored


def get_project(conn: Connection, project_id: UUID) -> Optional[Project]:
    """Fetch a single project by id.  Returns ``None`` if not found."""
    with persistence_errors("get_project", project_id):
        row = fetch_one(conn, "SELECT * FROM project WHERE id = ?", (str(project_id),))
    return _row_to_project(row) if row else None


def list_projects(conn: Connection) -> list[Project]:
    """Return every project, oldest first."""
    with persistence_errors("list_projects"):
        rows = fetch_all(conn, "SELECT * FROM project ORDER BY creationdate, id")
    return [_row_to_project(r) for r in rows]


def delete_project(conn: Connection, project_id: UUID) -> None:
    """Delete a project together with its nodes, links and attachments.

    Raises:
        InvalidRequest: For the Inbox project.
        NotFound: If ``project_id`` does not exist.
    """
    if project_id == INBOX_ID:
        logger.debug("Refusing to delete the Inbox project")
        raise InvalidRequest("Cannot delete the Inbox project", field="id")

    pid = str(project_id)
    with persistence_errors("delete_project", project_id), transaction(conn):
        attachments = conn.execute(
            "DELETE FROM attachment WHERE node_id IN (SELECT id FROM node WHERE project_id = ?)",
            (pid,),
        ).rowcount
        links = conn.execute("DELETE FROM node_link WHERE project_id = ?", (pid,)).rowcount
        nodes = conn.execute("DELETE FROM node WHERE project_id = ?", (pid,)).rowcount
        deleted = conn.execute("DELETE FROM project WHERE id = ?", (pid,)).rowcount
        if deleted == 0:
            raise NotFound("Project", project_id)

    logger.info(
        "Deleted project %s (%d nodes, %d links, %d attachments)",
        project_id,
        nodes,
        links,
        attachments,
    )
