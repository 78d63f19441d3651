"""Tests for the osint-graph CLI."""

from __future__ import annotations

import json
from pathlib import Path
from uuid import UUID

import pytest
from typer.testing import CliRunner

from cli.main import app
from osint_graph.db import get_connection
from osint_graph.db.models import INBOX_ID, Node, NodeType
from osint_graph.db.nodes import create_node
from osint_graph.db.projects import list_projects

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    """Point the CLI at a fresh on-disk database for each test."""
    path = tmp_path / "graph.sqlite3"
    monkeypatch.setattr("osint_graph.config.settings.db_path", path)
    return path


def _project_id(db_path: Path, name: str) -> str:
    conn = get_connection(db_path)
    try:
        return next(str(p.id) for p in list_projects(conn) if p.name == name)
    finally:
        conn.close()


def test_db_init_and_version(db_path: Path) -> None:
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0, result.output
    assert db_path.exists()
    assert "schema v3" in result.output

    result = runner.invoke(app, ["db", "version"])
    assert result.exit_code == 0
    assert result.output.strip().endswith("3")


def test_project_new_and_list(db_path: Path) -> None:
    args = ["project", "new", "Nightjar", "--description", "fraud ring", "--tag", "a", "--tag", "b"]
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    assert "Project created: Nightjar" in result.output

    result = runner.invoke(app, ["project", "list"])
    assert result.exit_code == 0
    assert "'Nightjar'  [a, b]" in result.output
    assert str(INBOX_ID) in result.output


def test_project_delete(db_path: Path) -> None:
    runner.invoke(app, ["project", "new", "Doomed"])
    pid = _project_id(db_path, "Doomed")
    result = runner.invoke(app, ["project", "delete", pid])
    assert result.exit_code == 0, result.output
    assert "Doomed" not in runner.invoke(app, ["project", "list"]).output


def test_delete_inbox_fails(db_path: Path) -> None:
    result = runner.invoke(app, ["project", "delete", str(INBOX_ID)])
    assert result.exit_code == 1
    assert "Inbox" in result.output


def test_delete_bad_id(db_path: Path) -> None:
    result = runner.invoke(app, ["project", "delete", "not-a-uuid"])
    assert result.exit_code != 0


def test_export_import_round_trip(db_path: Path, tmp_path: Path) -> None:
    runner.invoke(app, ["project", "new", "Portable"])
    pid = _project_id(db_path, "Portable")
    conn = get_connection(db_path)
    try:
        create_node(
            conn,
            Node(project_id=UUID(pid), node_type=NodeType.EMAIL, display="m", value="m@x.test"),
        )
    finally:
        conn.close()

    out = tmp_path / "export.json"
    result = runner.invoke(app, ["project", "export", pid, "--attachments", "--output", str(out)])
    assert result.exit_code == 0, result.output
    document = json.loads(out.read_text())
    assert document["project"]["name"] == "Portable"
    assert len(document["nodes"]) == 1

    assert runner.invoke(app, ["project", "delete", pid]).exit_code == 0
    result = runner.invoke(app, ["project", "import", str(out)])
    assert result.exit_code == 0, result.output
    assert "Imported project 'Portable'" in result.output

    result = runner.invoke(app, ["search", "m@x.test"])
    assert result.exit_code == 0
    assert "[email]" in result.output


def test_import_invalid_json(db_path: Path, tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    result = runner.invoke(app, ["project", "import", str(bad)])
    assert result.exit_code == 1


def test_search_no_results(db_path: Path) -> None:
    result = runner.invoke(app, ["search", "nothing-here"])
    assert result.exit_code == 0
    assert "No results" in result.output
