"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types; ``to_dict``/``from_dict`` give the JSON
shape used by the API and by project exports.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from osint_graph.errors import InvalidRequest

INBOX_ID = UUID(int=0)
INBOX_NAME = "Inbox"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def later_than(previous: Optional[datetime], now: Optional[datetime] = None) -> datetime:
    """Return ``now`` nudged forward so it is strictly after ``previous``."""
    now = now or utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------
# The values are the persisted/exported strings.  Renaming a member is fine;
# changing a value is a data migration.

class NodeType(str, Enum):
    PERSON = "person"
    DOMAIN = "domain"
    IP = "ip"
    PHONE = "phone"
    EMAIL = "email"
    URL = "url"
    IMAGE = "image"
    LOCATION = "location"
    ORGANISATION = "organisation"
    DOCUMENT = "document"
    CURRENCY = "currency"

    def __str__(self) -> str:
        return self.value


class LinkType(str, Enum):
    OMNI = "omni"
    DIRECTIONAL = "directional"

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------

def _uuid(value: Any, field_name: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidRequest(f"{field_name}: invalid UUID {value!r}", field=field_name) from exc


def parse_timestamp(value: Any, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 string (or pass a datetime through) as an aware UTC value."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError as exc:
            raise InvalidRequest(
                f"{field_name}: invalid timestamp {value!r}", field=field_name
            ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_optional_timestamp(value: Any, field_name: str = "timestamp") -> Optional[datetime]:
    return None if value is None else parse_timestamp(value, field_name)


def _enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidRequest(
            f"{field_name}: {value!r} is not one of {allowed}", field=field_name
        ) from exc


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise InvalidRequest(f"missing required field {key!r}", field=key)
    return data[key]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class Project:
    name: str
    id: UUID = field(default_factory=uuid4)
    user: UUID = INBOX_ID
    creationdate: datetime = field(default_factory=utcnow)
    last_updated: Optional[datetime] = None
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "user": str(self.user),
            "creationdate": _iso(self.creationdate),
            "last_updated": _iso(self.last_updated),
            "description": self.description,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        tags = data.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise InvalidRequest("tags: expected a list of strings", field="tags")
        return cls(
            id=_uuid(data["id"], "id") if data.get("id") else uuid4(),
            name=str(_require(data, "name")),
            user=_uuid(data.get("user") or INBOX_ID, "user"),
            creationdate=(
                parse_timestamp(data["creationdate"], "creationdate")
                if data.get("creationdate")
                else utcnow()
            ),
            last_updated=parse_optional_timestamp(data.get("last_updated"), "last_updated"),
            description=data.get("description"),
            tags=list(tags),
        )


@dataclass
class Node:
    project_id: UUID
    node_type: NodeType
    display: str
    value: str
    id: UUID = field(default_factory=uuid4)
    updated: datetime = field(default_factory=utcnow)
    notes: Optional[str] = None
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "node_type": self.node_type.value,
            "display": self.display,
            "value": self.value,
            "updated": _iso(self.updated),
            "notes": self.notes,
            "pos_x": self.pos_x,
            "pos_y": self.pos_y,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            id=_uuid(data["id"], "id") if data.get("id") else uuid4(),
            project_id=_uuid(_require(data, "project_id"), "project_id"),
            node_type=_enum(NodeType, _require(data, "node_type"), "node_type"),
            display=str(data.get("display") or ""),
            value=str(data.get("value") or ""),
            updated=(
                parse_timestamp(data["updated"], "updated") if data.get("updated") else utcnow()
            ),
            notes=data.get("notes"),
            pos_x=data.get("pos_x"),
            pos_y=data.get("pos_y"),
        )


@dataclass
class NodeLink:
    left: UUID
    right: UUID
    project_id: UUID
    linktype: LinkType = LinkType.OMNI
    id: UUID = field(default_factory=uuid4)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "left": str(self.left),
            "right": str(self.right),
            "project_id": str(self.project_id),
            "linktype": self.linktype.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeLink:
        return cls(
            id=_uuid(data["id"], "id") if data.get("id") else uuid4(),
            left=_uuid(_require(data, "left"), "left"),
            right=_uuid(_require(data, "right"), "right"),
            project_id=_uuid(_require(data, "project_id"), "project_id"),
            linktype=_enum(LinkType, data.get("linktype") or LinkType.OMNI, "linktype"),
        )


@dataclass
class Attachment:
    node_id: UUID
    filename: str
    content_type: str
    size: int
    id: UUID = field(default_factory=uuid4)
    created: datetime = field(default_factory=utcnow)
    # Empty on metadata-only reads.
    data: bytes = b""
    # False when ``data`` was never read, so an empty ``data`` is not a real blob.
    loaded: bool = field(default=True, compare=False, repr=False)

    def metadata(self) -> Attachment:
        """Copy of this record without the blob."""
        return replace(self, data=b"", loaded=False)

    def to_dict(self, include_data: bool = False) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": str(self.id),
            "node_id": str(self.node_id),
            "filename": self.filename,
            "content_type": self.content_type,
            "size": self.size,
            "created": _iso(self.created),
        }
        if include_data:
            out["data"] = base64.b64encode(self.data).decode("ascii")
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Attachment:
        raw = data.get("data")
        blob = b""
        if raw:
            try:
                blob = base64.b64decode(raw, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise InvalidRequest("data: invalid base64", field="data") from exc
        return cls(
            id=_uuid(data["id"], "id") if data.get("id") else uuid4(),
            node_id=_uuid(_require(data, "node_id"), "node_id"),
            filename=str(_require(data, "filename")),
            content_type=str(data.get("content_type") or "application/octet-stream"),
            size=int(data.get("size", len(blob))),
            created=(
                parse_timestamp(data["created"], "created") if data.get("created") else utcnow()
            ),
            data=blob,
            loaded=raw is not None,
        )


# ---------------------------------------------------------------------------
# Patches
# ---------------------------------------------------------------------------
# ``None`` means "leave the stored value alone".

@dataclass
class ProjectPatch:
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None

    @classmethod
    def from_project(cls, project: Project) -> ProjectPatch:
        return cls(name=project.name, description=project.description, tags=list(project.tags))


@dataclass
class NodePatch:
    node_type: Optional[NodeType] = None
    display: Optional[str] = None
    value: Optional[str] = None
    notes: Optional[str] = None
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None
    # Nullable fields to reset to ``None``.
    clear: frozenset[str] = frozenset()

    @classmethod
    def from_node(cls, node: Node) -> NodePatch:
        return cls(
            node_type=node.node_type,
            display=node.display,
            value=node.value,
            notes=node.notes,
            pos_x=node.pos_x,
            pos_y=node.pos_y,
        )


NODE_CLEARABLE = frozenset({"notes", "pos_x", "pos_y"})


def _changes(patch: Union[ProjectPatch, NodePatch]) -> dict[str, Any]:
    return {k: v for k, v in vars(patch).items() if v is not None}


def apply_project_patch(
    existing: Project, patch: ProjectPatch, now: Optional[datetime] = None
) -> Project:
    """Merge ``patch`` into ``existing``; ``last_updated`` always moves forward."""
    changes = _changes(patch)
    if "tags" in changes:
        changes["tags"] = list(changes["tags"])
    return replace(existing, **changes, last_updated=later_than(existing.last_updated, now))


def apply_node_patch(existing: Node, patch: NodePatch, now: Optional[datetime] = None) -> Node:
    """Merge ``patch`` into ``existing``; ``updated`` always moves forward.

    Fields named in ``patch.clear`` are set to ``None`` and win over a value
    given for the same field.

    Raises:
        InvalidRequest: If ``patch.clear`` names a field that is not nullable.
    """
    changes = _changes(patch)
    cleared = changes.pop("clear")
    unknown = cleared - NODE_CLEARABLE
    if unknown:
        raise InvalidRequest(f"cannot clear {', '.join(sorted(unknown))}", field="clear")
    changes.update(dict.fromkeys(cleared))
    return replace(existing, **changes, updated=later_than(existing.updated, now))


# ---------------------------------------------------------------------------
# Composite payloads
# ---------------------------------------------------------------------------

@dataclass
class ExportDocument:
    project: Project
    nodes: list[Node] = field(default_factory=list)
    nodelinks: list[NodeLink] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    exported_at: datetime = field(default_factory=utcnow)
    version: str = ""
    include_attachments: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "nodes": [n.to_dict() for n in self.nodes],
            "nodelinks": [link.to_dict() for link in self.nodelinks],
            "attachments": [
                a.to_dict(include_data=self.include_attachments) for a in self.attachments
            ],
            "exported_at": _iso(self.exported_at),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportDocument:
        if not isinstance(data, dict):
            raise InvalidRequest("export document must be a JSON object")
        attachments = [Attachment.from_dict(a) for a in data.get("attachments") or []]
        return cls(
            project=Project.from_dict(_require(data, "project")),
            nodes=[Node.from_dict(n) for n in data.get("nodes") or []],
            nodelinks=[NodeLink.from_dict(link) for link in data.get("nodelinks") or []],
            attachments=attachments,
            exported_at=(
                parse_timestamp(data["exported_at"], "exported_at")
                if data.get("exported_at")
                else utcnow()
            ),
            version=str(data.get("version") or ""),
            include_attachments=any("data" in a for a in data.get("attachments") or []),
        )


@dataclass
class SearchResult:
    id: UUID
    project_id: UUID
    title: str
    result_type: Union[str, dict[str, str]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "title": self.title,
            "result_type": self.result_type,
        }
