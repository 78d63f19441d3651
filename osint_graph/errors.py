"""
Shared error types for the core.

Validation-shaped errors (NotFound, Conflict, InvalidRequest) are raised by
the core's own checks.  PersistenceFailure and EncodingFailure wrap a lower
layer error; their ``cause`` is for logs, not for clients.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class OsintGraphError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        """Message safe to hand back to a client."""
        return self.message


class NotFound(OsintGraphError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: UUID | str, message: Optional[str] = None):
        super().__init__(message or f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class Conflict(OsintGraphError):
    kind = "conflict"
    status_code = 409

    def __init__(self, entity: str, entity_id: UUID | str):
        super().__init__(f"{entity} {entity_id} already exists")
        self.entity = entity
        self.entity_id = entity_id


class InvalidRequest(OsintGraphError, ValueError):
    kind = "invalid_request"
    status_code = 400

    def __init__(self, message: str, field: str = "unknown"):
        super().__init__(message)
        self.field = field


class PersistenceFailure(OsintGraphError):
    kind = "persistence_failure"
    status_code = 500

    def __init__(
        self,
        operation: str,
        cause: BaseException,
        entity_id: UUID | str | None = None,
    ):
        target = f" ({entity_id})" if entity_id is not None else ""
        super().__init__(f"{operation}{target} failed: {cause}")
        self.operation = operation
        self.cause = cause
        self.entity_id = entity_id

    @property
    def public_message(self) -> str:
        return f"Storage error during {self.operation}"


class EncodingFailure(OsintGraphError):
    kind = "encoding_failure"
    status_code = 500

    def __init__(self, operation: str, cause: BaseException | str):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause

    @property
    def public_message(self) -> str:
        return f"Encoding error during {self.operation}"


@contextmanager
def persistence_errors(operation: str, entity_id: UUID | str | None = None) -> Iterator[None]:
    """Re-raise ``sqlite3.Error`` raised inside the block as PersistenceFailure."""
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("%s failed for %s: %r", operation, entity_id, exc)
        raise PersistenceFailure(operation, exc, entity_id) from exc
