"""Compression for attachment blobs.

Attachments are stored as zstd frames.  ``size`` is always the length of the
original bytes, measured before compression, so listings never need to touch
the blob.
"""

from __future__ import annotations

from typing import Optional

import zstandard

from osint_graph.config import settings
from osint_graph.errors import EncodingFailure

CONTENT_ENCODING = "zstd"


def compress(raw: bytes, level: Optional[int] = None) -> tuple[bytes, int]:
    """Return ``(compressed_blob, uncompressed_size)`` for ``raw``."""
    size = len(raw)
    try:
        compressor = zstandard.ZstdCompressor(
            level=settings.zstd_level if level is None else level,
            write_content_size=True,
        )
        return compressor.compress(bytes(raw)), size
    except zstandard.ZstdError as exc:
        raise EncodingFailure("compress attachment", exc) from exc


def decompress(blob: bytes, size: Optional[int] = None) -> bytes:
    """Inverse of :func:`compress`.

    When ``size`` is given the output length is checked against it.
    """
    try:
        # decompressobj also handles frames without a content size header.
        raw = zstandard.ZstdDecompressor().decompressobj().decompress(bytes(blob))
    except zstandard.ZstdError as exc:
        raise EncodingFailure("decompress attachment", exc) from exc
    if size is not None and len(raw) != size:
        raise EncodingFailure(
            "decompress attachment",
            f"expected {size} bytes, got {len(raw)}",
        )
    return raw


def accepts_zstd(accept_encoding: Optional[str]) -> bool:
    """True when an ``Accept-Encoding`` header value allows a zstd body."""
    if not accept_encoding:
        return False
    for item in accept_encoding.split(","):
        coding, _, params = item.strip().partition(";")
        if coding.strip().lower() != CONTENT_ENCODING:
            continue
        q = params.strip()
        if q.startswith("q="):
            try:
                return float(q[2:]) > 0
            except ValueError:
                return False
        return True
    return False
