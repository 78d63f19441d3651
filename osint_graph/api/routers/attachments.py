"""Attachment endpoints.

Routes
------
GET    /attachment/{id}         Download (always decompressed, ``attachment`` disposition)
GET    /attachment/{id}/view    Inline view; the stored zstd frame is sent as-is
                                when the client accepts ``zstd``
PUT    /attachment/{id}         Re-parent and/or replace the blob (JSON, base64 data)
DELETE /attachment/{id}         Delete (missing ids are not an error)
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Response

from osint_graph.api.deps import get_db
from osint_graph.api.schemas import AttachmentResponse, AttachmentUpdate
from osint_graph.db import codec
from osint_graph.db.attachments import delete_attachment, load_attachment, update_attachment
from osint_graph.db.connection import Connection
from osint_graph.db.models import Attachment
from osint_graph.errors import InvalidRequest

router = APIRouter()


def _disposition(kind: str, filename: str) -> str:
    # RFC 6266: ASCII fallback plus the UTF-8 form.
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    return f"{kind}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _file_response(attachment: Attachment, kind: str, **headers: str) -> Response:
    return Response(
        content=attachment.data,
        media_type=attachment.content_type,
        headers={"Content-Disposition": _disposition(kind, attachment.filename), **headers},
    )


@router.get("/attachment/{attachment_id}")
def download(attachment_id: UUID, conn: Connection = Depends(get_db)) -> Response:
    """Send the original bytes as a file download."""
    return _file_response(load_attachment(conn, attachment_id), "attachment")


@router.get("/attachment/{attachment_id}/view")
def view(
    attachment_id: UUID,
    accept_encoding: Optional[str] = Header(None),
    conn: Connection = Depends(get_db),
) -> Response:
    """Send the attachment for inline display."""
    if codec.accepts_zstd(accept_encoding):
        attachment = load_attachment(conn, attachment_id, decompress=False)
        return _file_response(
            attachment,
            "inline",
            **{"Content-Encoding": codec.CONTENT_ENCODING, "Vary": "Accept-Encoding"},
        )
    attachment = load_attachment(conn, attachment_id)
    return _file_response(attachment, "inline", Vary="Accept-Encoding")


@router.put("/attachment/{attachment_id}", response_model=AttachmentResponse)
def update(
    attachment_id: UUID, body: AttachmentUpdate, conn: Connection = Depends(get_db)
) -> dict[str, Any]:
    """Move the attachment to another node and/or replace its content."""
    node_id: Optional[UUID] = None
    if body.node_id is not None:
        try:
            node_id = UUID(body.node_id)
        except ValueError as exc:
            raise InvalidRequest(
                f"node_id: invalid UUID {body.node_id!r}", field="node_id"
            ) from exc

    data: Optional[bytes] = None
    if body.data is not None:
        try:
            data = base64.b64decode(body.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidRequest("data: invalid base64", field="data") from exc

    return update_attachment(conn, attachment_id, node_id=node_id, data=data).to_dict()


@router.delete("/attachment/{attachment_id}", status_code=204)
def remove(attachment_id: UUID, conn: Connection = Depends(get_db)) -> Response:
    delete_attachment(conn, attachment_id)
    return Response(status_code=204)
