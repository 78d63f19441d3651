"""Pydantic request and response bodies shared by the routers.

Request bodies only check the JSON shape; the core's ``from_dict`` does the
real validation (UUIDs, enum values) and raises InvalidRequest.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from osint_graph.db.models import LinkType, NodeType


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class ProjectBody(BaseModel):
    name: str
    id: Optional[str] = None
    user: Optional[str] = None
    creationdate: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None


class NodeBody(BaseModel):
    project_id: str
    node_type: str
    display: str = ""
    value: str = ""
    id: Optional[str] = None
    notes: Optional[str] = None
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None


class NodeUpdate(BaseModel):
    node_type: Optional[NodeType] = None
    display: Optional[str] = None
    value: Optional[str] = None
    notes: Optional[str] = None
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None


class NodeLinkBody(BaseModel):
    left: str
    right: str
    project_id: str
    linktype: LinkType = LinkType.OMNI
    id: Optional[str] = None


class AttachmentUpdate(BaseModel):
    node_id: Optional[str] = None
    # base64
    data: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ProjectResponse(BaseModel):
    id: str
    name: str
    user: str
    creationdate: str
    last_updated: Optional[str]
    description: Optional[str]
    tags: list[str]


class NodeResponse(BaseModel):
    id: str
    project_id: str
    node_type: str
    display: str
    value: str
    updated: str
    notes: Optional[str]
    pos_x: Optional[int]
    pos_y: Optional[int]


class NodeLinkResponse(BaseModel):
    id: str
    left: str
    right: str
    project_id: str
    linktype: str


class AttachmentResponse(BaseModel):
    id: str
    node_id: str
    filename: str
    content_type: str
    size: int
    created: str


class SearchResultResponse(BaseModel):
    id: str
    project_id: str
    title: str
    result_type: Union[str, dict[str, Any]]
