"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests through the :func:`~osint_graph.api.deps.get_db` dependency) and
brings the schema up to date.  On shutdown it closes the connection.  A
connection passed to :func:`create_app` is used as-is and left open.

Routers
-------
Every endpoint group is mounted under ``/api/v1``:

    /projects, /project   project CRUD, export and import
    /node                 node CRUD and node-scoped attachments
    /nodelink             link create / delete
    /attachment           download, view, update, delete
    /search               substring search
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

import osint_graph
from osint_graph.api.errors import install_error_handlers
from osint_graph.api.routers import attachments as attachments_router
from osint_graph.api.routers import nodelinks as nodelinks_router
from osint_graph.api.routers import nodes as nodes_router
from osint_graph.api.routers import projects as projects_router
from osint_graph.api.routers import search as search_router
from osint_graph.config import settings
from osint_graph.db import get_connection, init_db
from osint_graph.db.connection import Connection

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(conn: Optional[Connection] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        conn: An already initialised connection to serve from.  When omitted
            the lifespan opens ``settings.db_path`` and runs migrations.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if conn is not None:
            app.state.db = conn
            yield
            return
        opened = get_connection()
        init_db(opened)
        app.state.db = opened
        logger.info("Serving database %s", settings.db_path)
        try:
            yield
        finally:
            opened.close()

    app = FastAPI(
        title="osint-graph API",
        description=(
            "REST interface for OSINT investigation graphs: projects, typed "
            "nodes, links between them, compressed file attachments, "
            "export/import and search."
        ),
        version=osint_graph.__version__,
        lifespan=lifespan,
    )
    if conn is not None:
        app.state.db = conn

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    app.include_router(projects_router.router, prefix=API_PREFIX, tags=["projects"])
    app.include_router(nodes_router.router, prefix=API_PREFIX, tags=["nodes"])
    app.include_router(nodelinks_router.router, prefix=API_PREFIX, tags=["nodelinks"])
    app.include_router(attachments_router.router, prefix=API_PREFIX, tags=["attachments"])
    app.include_router(search_router.router, prefix=API_PREFIX, tags=["search"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn osint_graph.api.app:app --reload
app = create_app()
