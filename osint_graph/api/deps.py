"""
Dependency helpers for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Request

from osint_graph.db.connection import Connection


def get_db(request: Request) -> Connection:
    """Return the connection opened by the app's lifespan."""
    conn = getattr(request.app.state, "db", None)
    if conn is None:
        raise RuntimeError("Database not initialized - app.state.db is None")
    return conn
