"""Project endpoints.

Routes
------
GET    /projects                      List all projects
POST   /project                       Create or merge a project (upsert by id)
POST   /project/import                Load an exported project document
GET    /project/{id}                  Fetch a single project
PUT    /project/{id}                  Patch name / description / tags
DELETE /project/{id}                  Delete a project and everything it owns
GET    /project/{id}/export           Snapshot as JSON (?include_attachments=)
GET    /project/{id}/nodes            Nodes of the project
GET    /project/{id}/nodelinks        Links of the project
GET    /project/{id}/attachments      Attachment metadata for the project
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Response

from osint_graph.api.deps import get_db
from osint_graph.api.schemas import (
    AttachmentResponse,
    NodeLinkResponse,
    NodeResponse,
    ProjectBody,
    ProjectResponse,
    ProjectUpdate,
)
from osint_graph.db.attachments import list_attachments_by_project
from osint_graph.db.connection import Connection
from osint_graph.db.export import export_project, import_project
from osint_graph.db.models import Project, ProjectPatch
from osint_graph.db.nodelinks import list_nodelinks_by_project
from osint_graph.db.nodes import list_nodes_by_project
from osint_graph.db.projects import (
    delete_project,
    list_projects,
    require_project,
    update_project,
    upsert_project,
)

router = APIRouter()


@router.get("/projects", response_model=list[ProjectResponse])
def list_all(conn: Connection = Depends(get_db)) -> list[dict[str, Any]]:
    """Return every project, oldest first."""
    return [p.to_dict() for p in list_projects(conn)]


@router.post("/project", response_model=ProjectResponse)
def save(body: ProjectBody, conn: Connection = Depends(get_db)) -> dict[str, Any]:
    """Create a project, or merge into the stored one with the same id."""
    project = Project.from_dict(body.model_dump())
    return upsert_project(conn, project).to_dict()


@router.post("/project/import", response_model=ProjectResponse)
def import_document(
    document: dict[str, Any] = Body(...), conn: Connection = Depends(get_db)
) -> dict[str, Any]:
    return import_project(conn, document).to_dict()


@router.get("/project/{project_id}", response_model=ProjectResponse)
def get_one(project_id: UUID, conn: Connection = Depends(get_db)) -> dict[str, Any]:
    return require_project(conn, project_id).to_dict()


@router.put("/project/{project_id}", response_model=ProjectResponse)
def update(
    project_id: UUID, body: ProjectUpdate, conn: Connection = Depends(get_db)
) -> dict[str, Any]:
    """Apply a partial update; omitted fields keep their stored value."""
    patch = ProjectPatch(**body.model_dump())
    return update_project(conn, project_id, patch).to_dict()


@router.delete("/project/{project_id}", status_code=204)
def remove(project_id: UUID, conn: Connection = Depends(get_db)) -> Response:
    """Delete a project with its nodes, links and attachments."""
    delete_project(conn, project_id)
    return Response(status_code=204)


@router.get("/project/{project_id}/export")
def export(
    project_id: UUID,
    include_attachments: bool = False,
    conn: Connection = Depends(get_db),
) -> dict[str, Any]:
    """Return the project as an export document."""
    return export_project(conn, project_id, include_attachments).to_dict()


@router.get("/project/{project_id}/nodes", response_model=list[NodeResponse])
def project_nodes(project_id: UUID, conn: Connection = Depends(get_db)) -> list[dict[str, Any]]:
    require_project(conn, project_id)
    return [n.to_dict() for n in list_nodes_by_project(conn, project_id)]


@router.get("/project/{project_id}/nodelinks", response_model=list[NodeLinkResponse])
def project_nodelinks(
    project_id: UUID, conn: Connection = Depends(get_db)
) -> list[dict[str, Any]]:
    require_project(conn, project_id)
    return [link.to_dict() for link in list_nodelinks_by_project(conn, project_id)]


@router.get("/project/{project_id}/attachments", response_model=list[AttachmentResponse])
def project_attachments(
    project_id: UUID, conn: Connection = Depends(get_db)
) -> list[dict[str, Any]]:
    """Attachment metadata for every node in the project; blobs are not read."""
    require_project(conn, project_id)
    return [a.to_dict() for a in list_attachments_by_project(conn, project_id)]
