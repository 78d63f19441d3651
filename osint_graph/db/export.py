"""Whole-project snapshots.

``export_project`` reads a project and everything hanging off it inside one
read transaction, so the document never mixes two states of the graph.
``import_project`` writes such a document back inside one write transaction:
either every record lands or none does.
"""

from __future__ import annotations

import logging
from typing import Any, Union
from uuid import UUID

import osint_graph
from osint_graph.db.attachments import (
    list_attachments_by_project,
    load_attachments_by_project,
    store_attachment,
)
from osint_graph.db.connection import Connection, transaction
from osint_graph.db.models import ExportDocument, Project
from osint_graph.db.nodelinks import create_nodelink, list_nodelinks_by_project
from osint_graph.db.nodes import create_node, list_nodes_by_project
from osint_graph.db.projects import require_project, upsert_project
from osint_graph.errors import InvalidRequest, persistence_errors

logger = logging.getLogger(__name__)


def export_project(
    conn: Connection, project_id: UUID, include_attachments: bool = False
) -> ExportDocument:
    """Snapshot a project with its nodes, links and attachments.

    Every list is ordered by id.  With ``include_attachments`` each
    attachment carries its decompressed bytes; otherwise only metadata.

    Raises:
        NotFound: If ``project_id`` does not exist.
    """
    with persistence_errors("export_project", project_id), transaction(conn, immediate=False):
        project = require_project(conn, project_id)
        nodes = list_nodes_by_project(conn, project_id)
        nodelinks = list_nodelinks_by_project(conn, project_id)
        if include_attachments:
            attachments = load_attachments_by_project(conn, project_id)
        else:
            attachments = list_attachments_by_project(conn, project_id)

    logger.debug(
        "Exported project %s (%d nodes, %d links, %d attachments, data=%s)",
        project_id,
        len(nodes),
        len(nodelinks),
        len(attachments),
        include_attachments,
    )
    return ExportDocument(
        project=project,
        nodes=nodes,
        nodelinks=nodelinks,
        attachments=attachments,
        version=osint_graph.__version__,
        include_attachments=include_attachments,
    )


def _check_ownership(document: ExportDocument) -> None:
    """Every record of ``document`` must belong to its project."""
    project_id = document.project.id
    for node in document.nodes:
        if node.project_id != project_id:
            raise InvalidRequest(
                f"node {node.id} belongs to project {node.project_id}, not {project_id}",
                field="nodes",
            )
    for link in document.nodelinks:
        if link.project_id != project_id:
            raise InvalidRequest(
                f"nodelink {link.id} belongs to project {link.project_id}, not {project_id}",
                field="nodelinks",
            )
    node_ids = {node.id for node in document.nodes}
    for attachment in document.attachments:
        if attachment.node_id not in node_ids:
            raise InvalidRequest(
                f"attachment {attachment.id} points at node {attachment.node_id}, "
                "which is not part of the export",
                field="attachments",
            )


def import_project(
    conn: Connection, document: Union[ExportDocument, dict[str, Any]]
) -> Project:
    """Load an exported document into the database.

    The project is upserted, nodes are created (replacing same-id nodes of
    the same project), links are created and attachments carrying data are
    inserted.  Attachments without data cannot be restored and are skipped.

    Raises:
        InvalidRequest: If ``document`` is malformed, a node or link names
            another project, an attachment names a node outside the
            document, or a node id is stored under another project.
        NotFound: If a link points at a node that is neither stored nor
            part of the document.
        Conflict: If a link or attachment id already exists.

    Returns:
        The stored project.
    """
    if not isinstance(document, ExportDocument):
        document = ExportDocument.from_dict(document)
    project_id = document.project.id
    _check_ownership(document)

    restored = 0
    with persistence_errors("import_project", project_id), transaction(conn):
        project = upsert_project(conn, document.project)
        for node in document.nodes:
            create_node(conn, node)
        for link in document.nodelinks:
            create_nodelink(conn, link)
        for attachment in document.attachments:
            if not attachment.loaded:
                logger.warning(
                    "Skipping attachment %s (%s): export carries no data",
                    attachment.id,
                    attachment.filename,
                )
                continue
            store_attachment(conn, attachment)
            restored += 1

    logger.info(
        "Imported project %s (%d nodes, %d links, %d/%d attachments)",
        project.id,
        len(document.nodes),
        len(document.nodelinks),
        restored,
        len(document.attachments),
    )
    return project
