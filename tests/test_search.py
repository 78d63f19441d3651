"""Search tests."""

from __future__ import annotations

import pytest

from osint_graph.db.attachments import upload_attachment
from osint_graph.db.connection import Connection
from osint_graph.db.models import NodeType, Project
from osint_graph.db.projects import upsert_project
from osint_graph.db.search import search


@pytest.mark.parametrize("term", ["", "   ", "\t\n"])
def test_blank_term_returns_nothing(conn: Connection, make_node, term: str) -> None:
    make_node("Alice")
    assert search(conn, term) == []


def test_node_fields(conn: Connection, make_node) -> None:
    by_display = make_node("Alice Liddell", value="x1")
    by_value = make_node("contact", value="liddell@example.com", node_type=NodeType.EMAIL)
    by_notes = make_node("someone", value="x2", notes="Cousin of the LIDDELL family")
    make_node("Bob", value="bob")

    results = search(conn, "liddell")
    node_hits = {r.id: r for r in results if isinstance(r.result_type, dict)}
    assert set(node_hits) == {by_display.id, by_value.id, by_notes.id}
    assert node_hits[by_value.id].result_type == {"node": "email"}
    assert node_hits[by_display.id].title == "Alice Liddell"


def test_case_insensitive_and_trimmed(conn: Connection, make_node) -> None:
    node = make_node("Example Domain", node_type=NodeType.DOMAIN)
    assert [r.id for r in search(conn, "  EXAMPLE dom  ")] == [node.id]


def test_attachment_filename_resolves_to_node(conn: Connection, project: Project, make_node) -> None:
    node = make_node("Alice")
    upload_attachment(conn, node.id, "Passport-Scan.pdf", "application/pdf", b"%PDF")
    results = [r for r in search(conn, "passport") if r.result_type == "attachment"]
    assert len(results) == 1
    assert results[0].id == node.id
    assert results[0].project_id == project.id
    assert results[0].title == "Alice (attachment: Passport-Scan.pdf)"


def test_project_match_points_at_first_node(conn: Connection, make_node) -> None:
    project = upsert_project(
        conn, Project(name="Nightowl", description="phishing ring", tags=["telegram"])
    )
    nodes = [make_node(f"n{i}", project_id=project.id) for i in range(3)]
    first = min(nodes, key=lambda n: str(n.id))

    for term in ("nightowl", "phishing", "telegram"):
        results = [r for r in search(conn, term) if r.result_type == "project"]
        assert len(results) == 1, term
        assert results[0].id == first.id
        assert results[0].project_id == project.id
        assert results[0].title == "Project: Nightowl"


def test_project_without_nodes_omitted(conn: Connection) -> None:
    upsert_project(conn, Project(name="Empty Shell"))
    assert search(conn, "empty shell") == []


def test_wildcards_are_literal(conn: Connection, make_node) -> None:
    make_node("100 percent", value="plain")
    literal = make_node("50% off", value="promo")
    make_node("a_b", value="underscore")
    make_node("axb", value="other")

    assert [r.id for r in search(conn, "%")] == [literal.id]
    assert {r.title for r in search(conn, "a_b")} == {"a_b"}


def test_to_dict_shape(conn: Connection, make_node) -> None:
    node = make_node("Alice", node_type=NodeType.PERSON)
    (result,) = search(conn, "alice")
    assert result.to_dict() == {
        "id": str(node.id),
        "project_id": str(node.project_id),
        "title": "Alice",
        "result_type": {"node": "person"},
    }


def test_non_ascii_tag(conn: Connection, make_node) -> None:
    project = upsert_project(conn, Project(name="Alpha", tags=["café", "Ørsted"]))
    node = make_node("n", project_id=project.id)
    for term in ("café", "ørsted"):
        results = [r for r in search(conn, term) if r.result_type == "project"]
        assert [r.id for r in results] == [node.id], term


def test_non_ascii_case_folding(conn: Connection, make_node) -> None:
    node = make_node("ÉCOLE Polytechnique", value="x")
    assert [r.id for r in search(conn, "école")] == [node.id]
    assert [r.id for r in search(conn, "ÉCOLE")] == [node.id]
