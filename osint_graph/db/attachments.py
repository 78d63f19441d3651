"""Operations on the ``attachment`` table.

Blobs are compressed on write (see :mod:`osint_graph.db.codec`).  Every
listing selects only the metadata columns, so it never reads or decompresses
``data``.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from typing import Optional
from uuid import UUID, uuid4

from osint_graph.db import codec
from osint_graph.db.connection import Connection, fetch_all, fetch_one, transaction
from osint_graph.db.models import Attachment, parse_timestamp, utcnow
from osint_graph.db.nodes import require_node
from osint_graph.errors import Conflict, NotFound, persistence_errors

logger = logging.getLogger(__name__)

# Everything except ``data``.
_METADATA_COLUMNS = "a.id, a.node_id, a.filename, a.content_type, a.size, a.created"

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _row_to_attachment(row: sqlite3.Row, data: Optional[bytes] = None) -> Attachment:
    return Attachment(
        id=UUID(row["id"]),
        node_id=UUID(row["node_id"]),
        filename=row["filename"],
        content_type=row["content_type"],
        size=row["size"],
        created=parse_timestamp(row["created"]),
        data=data if data is not None else b"",
        loaded=data is not None,
    )


def _insert(conn: Connection, attachment: Attachment, blob: bytes) -> None:
    conn.execute(
        """
        INSERT INTO attachment (id, node_id, filename, content_type, size, data, created)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            str(attachment.id),
            str(attachment.node_id),
            attachment.filename,
            attachment.content_type,
            attachment.size,
            blob,
            attachment.created.isoformat(),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def upload_attachment(
    conn: Connection,
    node_id: UUID,
    filename: str,
    content_type: Optional[str],
    data: bytes,
) -> Attachment:
    """Compress ``data`` and store it as a new attachment of ``node_id``.

    Raises:
        NotFound: If ``node_id`` does not exist.

    Returns:
        The stored attachment's metadata (``data`` left empty).
    """
    attachment = Attachment(
        id=uuid4(),
        node_id=node_id,
        filename=filename,
        content_type=content_type or DEFAULT_CONTENT_TYPE,
        size=len(data),
        created=utcnow(),
        data=bytes(data),
    )
    return store_attachment(conn, attachment)


def store_attachment(conn: Connection, attachment: Attachment) -> Attachment:
    """Insert a fully formed attachment, keeping its id and timestamp.

    ``attachment.data`` holds the uncompressed bytes; ``size`` is recomputed
    from them.

    Raises:
        Conflict: If an attachment with ``attachment.id`` already exists.
        NotFound: If ``attachment.node_id`` does not exist.
    """
    blob, size = codec.compress(attachment.data)
    stored = replace(attachment, size=size).metadata()
    with persistence_errors("store_attachment", attachment.id), transaction(conn):
        if get_attachment(conn, attachment.id) is not None:
            raise Conflict("Attachment", attachment.id)
        require_node(conn, attachment.node_id)
        _insert(conn, stored, blob)
    logger.debug(
        "Created attachment %s on node %s (%d bytes, %d stored)",
        stored.id,
        stored.node_id,
        size,
        len(blob),
    )
    return stored


def get_attachment(conn: Connection, attachment_id: UUID) -> Optional[Attachment]:
    """Fetch an attachment's metadata.  Returns ``None`` if not found."""
    with persistence_errors("get_attachment", attachment_id):
        row = fetch_one(
            conn,
            f"SELECT {_METADATA_COLUMNS} FROM attachment a WHERE a.id = ?",
            (str(attachment_id),),
        )
    return _row_to_attachment(row) if row else None


def load_attachment(
    conn: Connection, attachment_id: UUID, decompress: bool = True
) -> Attachment:
    """Fetch an attachment with its blob.

    With ``decompress=False`` the stored zstd frame is returned as-is in
    ``data``; ``size`` still reports the uncompressed length.

    Raises:
        NotFound: If ``attachment_id`` does not exist.
        EncodingFailure: If the stored blob cannot be decompressed.
    """
    with persistence_errors("load_attachment", attachment_id):
        row = fetch_one(
            conn, "SELECT * FROM attachment a WHERE a.id = ?", (str(attachment_id),)
        )
    if row is None:
        raise NotFound("Attachment", attachment_id)
    blob = bytes(row["data"])
    data = codec.decompress(blob, row["size"]) if decompress else blob
    return _row_to_attachment(row, data)


def update_attachment(
    conn: Connection,
    attachment_id: UUID,
    node_id: Optional[UUID] = None,
    data: Optional[bytes] = None,
) -> Attachment:
    """Re-parent an attachment and/or replace its blob.

    Raises:
        NotFound: If the attachment, or the new parent node, does not exist.

    Returns:
        The updated metadata.
    """
    blob: Optional[bytes] = None
    size: Optional[int] = None
    if data is not None:
        blob, size = codec.compress(data)

    with persistence_errors("update_attachment", attachment_id), transaction(conn):
        current = get_attachment(conn, attachment_id)
        if current is None:
            raise NotFound("Attachment", attachment_id)
        updated = current
        if node_id is not None and node_id != current.node_id:
            require_node(conn, node_id)
            conn.execute(
                "UPDATE attachment SET node_id = ? WHERE id = ?",
                (str(node_id), str(attachment_id)),
            )
            updated = replace(updated, node_id=node_id)
        if blob is not None:
            conn.execute(
                "UPDATE attachment SET data = ?, size = ? WHERE id = ?",
                (blob, size, str(attachment_id)),
            )
            updated = replace(updated, size=size)

    if updated == current:
        logger.debug("No changes to update for attachment %s", attachment_id)
    else:
        logger.debug("Updated attachment %s", attachment_id)
    return updated


def delete_attachment(conn: Connection, attachment_id: UUID) -> bool:
    """Delete an attachment.  Deleting a missing attachment is not an error.

    Returns:
        ``True`` if a row was removed.
    """
    with persistence_errors("delete_attachment", attachment_id), transaction(conn):
        deleted = conn.execute(
            "DELETE FROM attachment WHERE id = ?", (str(attachment_id),)
        ).rowcount
    if deleted:
        logger.debug("Deleted attachment %s", attachment_id)
    else:
        logger.debug("Attachment %s already absent", attachment_id)
    return bool(deleted)


def list_attachments_by_node(conn: Connection, node_id: UUID) -> list[Attachment]:
    """Return metadata for every attachment of a node, blob-free."""
    with persistence_errors("list_attachments_by_node", node_id):
        rows = fetch_all(
            conn,
            f"SELECT {_METADATA_COLUMNS} FROM attachment a WHERE a.node_id = ? ORDER BY a.id",
            (str(node_id),),
        )
    logger.debug("Listed %d attachments for node %s", len(rows), node_id)
    return [_row_to_attachment(r) for r in rows]


def list_attachments_by_project(conn: Connection, project_id: UUID) -> list[Attachment]:
    """Return metadata for every attachment on any node of a project, blob-free."""
    with persistence_errors("list_attachments_by_project", project_id):
        rows = fetch_all(
            conn,
            f"""
            SELECT {_METADATA_COLUMNS}
            FROM   attachment a
            JOIN   node n ON n.id = a.node_id
            WHERE  n.project_id = ?
            ORDER  BY a.id
            """,
            (str(project_id),),
        )
    return [_row_to_attachment(r) for r in rows]


def load_attachments_by_project(conn: Connection, project_id: UUID) -> list[Attachment]:
    """Like :func:`list_attachments_by_project` but with decompressed blobs."""
    with persistence_errors("load_attachments_by_project", project_id):
        rows = fetch_all(
            conn,
            """
            SELECT a.*
            FROM   attachment a
            JOIN   node n ON n.id = a.node_id
            WHERE  n.project_id = ?
            ORDER  BY a.id
            """,
            (str(project_id),),
        )
    return [_row_to_attachment(r, codec.decompress(bytes(r["data"]), r["size"])) for r in rows]
