"""Translate core exceptions into JSON error responses.

Every handled error produces ``{"error": <message>, "kind": <kind>}`` with the
exception's status code.  Server-side failures get a generic message; the
real cause only goes to the log.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from osint_graph.errors import OsintGraphError

logger = logging.getLogger(__name__)


async def osint_graph_error_handler(request: Request, exc: OsintGraphError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.debug("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message, "kind": exc.kind},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OsintGraphError, osint_graph_error_handler)  # type: ignore[arg-type]
