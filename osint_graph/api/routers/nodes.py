"""Node endpoints, including the node-scoped attachment routes.

Routes
------
POST   /node                       Create a node (upsert by id within its project)
GET    /node/{id}                  Fetch a single node
PUT    /node/{id}                  Patch a node
DELETE /node/{id}                  Delete a node, its links and attachments
GET    /node/{id}/nodelinks        Links where the node is either end
POST   /node/{id}/attachment       Upload a file (multipart field ``file``)
GET    /node/{id}/attachments      Attachment metadata for the node
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile

from osint_graph.api.deps import get_db
from osint_graph.api.schemas import (
    AttachmentResponse,
    NodeBody,
    NodeLinkResponse,
    NodeResponse,
    NodeUpdate,
)
from osint_graph.config import settings
from osint_graph.db.attachments import list_attachments_by_node, upload_attachment
from osint_graph.db.connection import Connection
from osint_graph.db.models import NODE_CLEARABLE, Node, NodePatch
from osint_graph.db.nodelinks import list_nodelinks_by_node
from osint_graph.db.nodes import create_node, delete_node, require_node, update_node
from osint_graph.errors import InvalidRequest

router = APIRouter()


@router.post("/node", response_model=NodeResponse)
def create(body: NodeBody, conn: Connection = Depends(get_db)) -> dict[str, Any]:
    """Create a node in an existing project."""
    node = Node.from_dict(body.model_dump())
    return create_node(conn, node).to_dict()


@router.get("/node/{node_id}", response_model=NodeResponse)
def get_one(node_id: UUID, conn: Connection = Depends(get_db)) -> dict[str, Any]:
    return require_node(conn, node_id).to_dict()


@router.put("/node/{node_id}", response_model=NodeResponse)
def update(node_id: UUID, body: NodeUpdate, conn: Connection = Depends(get_db)) -> dict[str, Any]:
    """Merge the given fields into the node; ``updated`` is always refreshed.

    An explicit ``null`` for ``notes``, ``pos_x`` or ``pos_y`` clears it.
    """
    sent = body.model_dump(exclude_unset=True)
    cleared = frozenset(k for k, v in sent.items() if v is None) & NODE_CLEARABLE
    return update_node(conn, node_id, NodePatch(**sent, clear=cleared)).to_dict()


@router.delete("/node/{node_id}", status_code=204)
def remove(node_id: UUID, conn: Connection = Depends(get_db)) -> Response:
    delete_node(conn, node_id)
    return Response(status_code=204)


@router.get("/node/{node_id}/nodelinks", response_model=list[NodeLinkResponse])
def node_links(node_id: UUID, conn: Connection = Depends(get_db)) -> list[dict[str, Any]]:
    """Return all links where *node_id* is the left or right end."""
    require_node(conn, node_id)
    return [link.to_dict() for link in list_nodelinks_by_node(conn, node_id)]


@router.post("/node/{node_id}/attachment", response_model=AttachmentResponse, status_code=201)
def upload(
    node_id: UUID,
    file: Optional[UploadFile] = File(None),
    conn: Connection = Depends(get_db),
) -> dict[str, Any]:
    """Store an uploaded file against the node, compressed."""
    if file is None:
        raise InvalidRequest("multipart field 'file' is required", field="file")
    data = file.file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise InvalidRequest(
            f"upload exceeds {settings.max_upload_bytes} bytes", field="file"
        )
    attachment = upload_attachment(
        conn,
        node_id,
        filename=file.filename or "upload",
        content_type=file.content_type,
        data=data,
    )
    return attachment.to_dict()


@router.get("/node/{node_id}/attachments", response_model=list[AttachmentResponse])
def node_attachments(node_id: UUID, conn: Connection = Depends(get_db)) -> list[dict[str, Any]]:
    require_node(conn, node_id)
    return [a.to_dict() for a in list_attachments_by_node(conn, node_id)]
