"""Canonicalisation for node values of type ``url``."""

from __future__ import annotations

# Zero-width space/non-joiner/joiner, zero-width no-break space and
# pop directional isolate: invisible marks picked up when URLs are
# copy-pasted out of rich text.
INVISIBLE_CHARS = frozenset("\u200b\u200c\u200d\ufeff\u2069")

_STRIP_TABLE = {ord(ch): None for ch in INVISIBLE_CHARS}


def normalize_url(value: str) -> str:
    """Trim surrounding whitespace and drop invisible formatting characters.

    Idempotent: ``normalize_url(normalize_url(x)) == normalize_url(x)``.
    """
    cleaned = value.strip().translate(_STRIP_TABLE)
    # Removing a mark can expose whitespace that sat beside it.
    return cleaned.strip()
