"""osint-graph CLI: entry-point for server and database operations.

Usage:
    osint-graph --help
    python cli/main.py --help

Command groups:
    serve     run the HTTP API
    db        schema initialisation and version
    project   list / create / delete / export / import projects
    search    substring search across the database
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from osint_graph.xxx import
# ...` works when the CLI is invoked as `python cli/main.py`.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

import typer

from osint_graph.config import settings
from osint_graph.db import current_version, get_connection, init_db
from osint_graph.db.connection import Connection
from osint_graph.db.export import export_project, import_project
from osint_graph.db.models import Project
from osint_graph.db.projects import delete_project, list_projects, upsert_project
from osint_graph.db.search import search as search_db
from osint_graph.errors import OsintGraphError
from osint_graph.log import setup_logging

app = typer.Typer(
    name="osint-graph",
    help="osint-graph backend CLI.",
    no_args_is_help=True,
)


@contextmanager
def _database() -> Iterator[Connection]:
    """Open the configured database, migrate it, and report core errors."""
    conn = get_connection()
    try:
        init_db(conn)
        yield conn
    except OsintGraphError as exc:
        typer.echo(f"Error: {exc.public_message}", err=True)
        raise typer.Exit(1) from exc
    finally:
        conn.close()


def _parse_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{value!r} is not a UUID") from exc


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option(settings.host, help="Bind address."),
    port: int = typer.Option(settings.port, help="Port to listen on."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    setup_logging(debug=debug)
    uvicorn.run(
        "osint_graph.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level="debug" if debug else settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Create the database and apply pending migrations."""
    with _database() as conn:
        version = current_version(conn)
    typer.echo(f"[db init] Database ready at {settings.db_path} (schema v{version})")


@db_app.command("version")
def db_version() -> None:
    """Print the applied schema version."""
    with _database() as conn:
        typer.echo(str(current_version(conn)))


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------
project_app = typer.Typer(help="Manage investigation projects.", no_args_is_help=True)
app.add_typer(project_app, name="project")


@project_app.command("list")
def project_list() -> None:
    """List all projects."""
    with _database() as conn:
        projects = list_projects(conn)
    for p in projects:
        tags = f"  [{', '.join(p.tags)}]" if p.tags else ""
        typer.echo(f"  {p.id}  {p.name!r}{tags}")


@project_app.command("new")
def project_new(
    name: str = typer.Argument(..., help="Name of the new project."),
    description: Optional[str] = typer.Option(None, help="Free-text description."),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)."),
) -> None:
    """Create a new project."""
    project = Project(name=name, description=description, tags=list(tag or []))
    with _database() as conn:
        stored = upsert_project(conn, project)
    typer.echo(f"Project created: {stored.name} ({stored.id})")


@project_app.command("delete")
def project_delete(
    project_id: str = typer.Argument(..., help="Project UUID."),
) -> None:
    """Delete a project with all of its nodes, links and attachments."""
    pid = _parse_id(project_id)
    with _database() as conn:
        delete_project(conn, pid)
    typer.echo(f"Deleted project {pid}")


@project_app.command("export")
def project_export(
    project_id: str = typer.Argument(..., help="Project UUID."),
    attachments: bool = typer.Option(False, "--attachments", help="Embed attachment bytes."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file."),
) -> None:
    """Export a project as JSON to stdout or a file."""
    pid = _parse_id(project_id)
    with _database() as conn:
        document = export_project(conn, pid, include_attachments=attachments)
    text = json.dumps(document.to_dict(), indent=2)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    typer.echo(f"Exported {len(document.nodes)} nodes to {output}")


@project_app.command("import")
def project_import(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export JSON file."),
) -> None:
    """Import a project from an export file."""
    try:
        document = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        typer.echo(f"Error: {file} is not valid JSON: {exc}", err=True)
        raise typer.Exit(1) from exc
    with _database() as conn:
        project = import_project(conn, document)
    typer.echo(f"Imported project {project.name!r} ({project.id})")


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
@app.command("search")
def search(term: str = typer.Argument(..., help="Text to look for.")) -> None:
    """Search nodes, attachment filenames and projects."""
    with _database() as conn:
        results = search_db(conn, term)
    if not results:
        typer.echo(f"No results for {term!r}.")
        return
    for r in results:
        kind = r.result_type if isinstance(r.result_type, str) else r.result_type["node"]
        typer.echo(f"  {r.id}  [{kind}]  {r.title}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
