"""Case-insensitive substring search across the whole database.

Three passes run inside one read transaction:

``node``
    display, value and notes of every node.
``attachment``
    attachment filenames, reported against the owning node.
``project``
    project name, description and tags, reported against the project's
    first node (by id).  Projects without nodes have nothing to point at
    and are left out.
"""

from __future__ import annotations

import logging
from uuid import UUID

from osint_graph.db.connection import Connection, fetch_all, transaction
from osint_graph.db.models import SearchResult
from osint_graph.errors import persistence_errors

logger = logging.getLogger(__name__)

_ESCAPE = "\\"


def _like_pattern(term: str) -> str:
    """Wrap ``term`` in ``%`` after escaping LIKE wildcards in it."""
    escaped = (
        term.replace(_ESCAPE, _ESCAPE * 2).replace("%", _ESCAPE + "%").replace("_", _ESCAPE + "_")
    )
    return f"%{escaped}%"


def _search_nodes(conn: Connection, pattern: str) -> list[SearchResult]:
    rows = fetch_all(
        conn,
        r"""
        SELECT id, project_id, display, type
        FROM   node
        WHERE  unicode_lower(display) LIKE :p ESCAPE '\'
           OR  unicode_lower(value)   LIKE :p ESCAPE '\'
           OR  unicode_lower(coalesce(notes, '')) LIKE :p ESCAPE '\'
        ORDER  BY id
        """,
        {"p": pattern},
    )
    return [
        SearchResult(
            id=UUID(r["id"]),
            project_id=UUID(r["project_id"]),
            title=r["display"],
            result_type={"node": r["type"]},
        )
        for r in rows
    ]


def _search_attachments(conn: Connection, pattern: str) -> list[SearchResult]:
    rows = fetch_all(
        conn,
        r"""
        SELECT n.id, n.project_id, n.display, a.filename
        FROM   attachment a
        JOIN   node n ON n.id = a.node_id
        WHERE  unicode_lower(a.filename) LIKE :p ESCAPE '\'
        ORDER  BY a.id
        """,
        {"p": pattern},
    )
    return [
        SearchResult(
            id=UUID(r["id"]),
            project_id=UUID(r["project_id"]),
            title=f"{r['display']} (attachment: {r['filename']})",
            result_type="attachment",
        )
        for r in rows
    ]


def _search_projects(conn: Connection, pattern: str) -> list[SearchResult]:
    rows = fetch_all(
        conn,
        r"""
        SELECT p.id AS project_id, p.name,
               (SELECT n.id FROM node n WHERE n.project_id = p.id ORDER BY n.id LIMIT 1)
                   AS node_id
        FROM   project p
        WHERE  unicode_lower(p.name) LIKE :p ESCAPE '\'
           OR  unicode_lower(coalesce(p.description, '')) LIKE :p ESCAPE '\'
           OR  unicode_lower(p.tags) LIKE :p ESCAPE '\'
        ORDER  BY p.creationdate, p.id
        """,
        {"p": pattern},
    )
    results = []
    for r in rows:
        if r["node_id"] is None:
            logger.debug("Project %s matched but has no nodes; omitted", r["project_id"])
            continue
        results.append(
            SearchResult(
                id=UUID(r["node_id"]),
                project_id=UUID(r["project_id"]),
                title=f"Project: {r['name']}",
                result_type="project",
            )
        )
    return results


def search(conn: Connection, term: str) -> list[SearchResult]:
    """Return node, attachment and project matches for ``term``, in that order.

    An empty or whitespace-only ``term`` matches nothing.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return []

    pattern = _like_pattern(needle)
    with persistence_errors("search"), transaction(conn, immediate=False):
        results = _search_nodes(conn, pattern)
        results.extend(_search_attachments(conn, pattern))
        results.extend(_search_projects(conn, pattern))

    logger.debug("Search %r returned %d results", needle, len(results))
    return results
