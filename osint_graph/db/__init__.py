"""Database layer package.

Public re-exports so callers can write::

    from osint_graph.db import get_connection, init_db, transaction
    from osint_graph.db import projects, nodes
"""

from osint_graph.db.connection import get_connection, transaction
from osint_graph.db.migrations import current_version, init_db
from osint_graph.db import attachments, export, nodelinks, nodes, projects, search

__all__ = [
    "get_connection",
    "transaction",
    "init_db",
    "current_version",
    "attachments",
    "export",
    "nodelinks",
    "nodes",
    "projects",
    "search",
]
