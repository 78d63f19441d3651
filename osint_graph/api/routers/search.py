"""Search endpoint.

Routes
------
GET /search?q=<term>    Substring match over nodes, attachment filenames and projects
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from osint_graph.api.deps import get_db
from osint_graph.api.schemas import SearchResultResponse
from osint_graph.db.connection import Connection
from osint_graph.db.search import search

router = APIRouter()


@router.get("/search", response_model=list[SearchResultResponse])
def search_all(
    q: str = Query("", description="Case-insensitive substring; blank returns nothing."),
    conn: Connection = Depends(get_db),
) -> list[dict[str, Any]]:
    return [r.to_dict() for r in search(conn, q)]
