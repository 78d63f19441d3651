"""Node link endpoints.

Routes
------
POST   /nodelink         Create a link (reusing an id is a 409)
DELETE /nodelink/{id}    Delete a link
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from osint_graph.api.deps import get_db
from osint_graph.api.schemas import NodeLinkBody, NodeLinkResponse
from osint_graph.db.connection import Connection
from osint_graph.db.models import NodeLink
from osint_graph.db.nodelinks import create_nodelink, delete_nodelink

router = APIRouter()


@router.post("/nodelink", response_model=NodeLinkResponse, status_code=201)
def create(body: NodeLinkBody, conn: Connection = Depends(get_db)) -> dict[str, Any]:
    link = NodeLink.from_dict(body.model_dump())
    return create_nodelink(conn, link).to_dict()


@router.delete("/nodelink/{link_id}", status_code=204)
def remove(link_id: UUID, conn: Connection = Depends(get_db)) -> Response:
    delete_nodelink(conn, link_id)
    return Response(status_code=204)
