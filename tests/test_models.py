"""Entity model tests: enums, dict conversion and patch merging."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from osint_graph.db.models import (
    INBOX_ID,
    Attachment,
    ExportDocument,
    LinkType,
    Node,
    NodeLink,
    NodePatch,
    NodeType,
    Project,
    ProjectPatch,
    apply_node_patch,
    apply_project_patch,
    later_than,
    parse_timestamp,
)
from osint_graph.errors import InvalidRequest

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestEnums:
    def test_node_type_storage_strings(self) -> None:
        assert [t.value for t in NodeType] == [
            "person",
            "domain",
            "ip",
            "phone",
            "email",
            "url",
            "image",
            "location",
            "organisation",
            "document",
            "currency",
        ]

    def test_link_type_storage_strings(self) -> None:
        assert [t.value for t in LinkType] == ["omni", "directional"]

    def test_str_is_value(self) -> None:
        assert str(NodeType.EMAIL) == "email"
        assert str(LinkType.DIRECTIONAL) == "directional"

    def test_decode_is_case_sensitive(self) -> None:
        with pytest.raises(InvalidRequest) as excinfo:
            Node.from_dict({"project_id": str(INBOX_ID), "node_type": "Email"})
        assert excinfo.value.field == "node_type"


class TestTimestamps:
    def test_later_than_none(self) -> None:
        assert later_than(None, T0) == T0

    def test_later_than_moves_forward(self) -> None:
        assert later_than(T0, T0) > T0
        assert later_than(T0, T0 - timedelta(seconds=5)) > T0

    def test_later_than_keeps_newer_now(self) -> None:
        now = T0 + timedelta(seconds=1)
        assert later_than(T0, now) == now

    def test_naive_timestamp_becomes_utc(self) -> None:
        parsed = parse_timestamp("2024-05-01T12:00:00")
        assert parsed == T0

    def test_bad_timestamp(self) -> None:
        with pytest.raises(InvalidRequest):
            parse_timestamp("yesterday-ish", "updated")


class TestFromDict:
    def test_project_defaults(self) -> None:
        project = Project.from_dict({"name": "Case"})
        assert isinstance(project.id, UUID)
        assert project.user == INBOX_ID
        assert project.tags == []
        assert project.creationdate.tzinfo is not None

    def test_project_requires_name(self) -> None:
        with pytest.raises(InvalidRequest) as excinfo:
            Project.from_dict({"description": "no name"})
        assert excinfo.value.field == "name"

    def test_project_rejects_non_string_tags(self) -> None:
        with pytest.raises(InvalidRequest):
            Project.from_dict({"name": "Case", "tags": ["ok", 3]})

    def test_bad_uuid(self) -> None:
        with pytest.raises(InvalidRequest) as excinfo:
            NodeLink.from_dict({"left": "nope", "right": str(uuid4()), "project_id": str(uuid4())})
        assert excinfo.value.field == "left"

    def test_link_defaults_to_omni(self) -> None:
        link = NodeLink.from_dict(
            {"left": str(uuid4()), "right": str(uuid4()), "project_id": str(uuid4())}
        )
        assert link.linktype is LinkType.OMNI

    def test_node_dict_round_trip(self) -> None:
        node = Node(
            project_id=uuid4(),
            node_type=NodeType.IP,
            display="gateway",
            value="10.0.0.1",
            updated=T0,
            notes="seen twice",
            pos_x=10,
            pos_y=-4,
        )
        assert Node.from_dict(node.to_dict()) == node

    def test_attachment_data_is_base64(self) -> None:
        attachment = Attachment(
            node_id=uuid4(), filename="a.bin", content_type="application/pdf", size=3, data=b"\x00\x01\x02"
        )
        out = attachment.to_dict(include_data=True)
        assert out["data"] == base64.b64encode(b"\x00\x01\x02").decode()
        assert Attachment.from_dict(out).data == b"\x00\x01\x02"
        assert "data" not in attachment.to_dict()

    def test_attachment_bad_base64(self) -> None:
        with pytest.raises(InvalidRequest) as excinfo:
            Attachment.from_dict({"node_id": str(uuid4()), "filename": "x", "data": "!!!"})
        assert excinfo.value.field == "data"

    def test_metadata_drops_blob(self) -> None:
        attachment = Attachment(node_id=uuid4(), filename="a", content_type="text/plain", size=1, data=b"a")
        assert attachment.metadata().data == b""
        assert attachment.data == b"a"

    def test_export_document_detects_embedded_data(self) -> None:
        project = Project(name="Case")
        payload = {
            "project": project.to_dict(),
            "attachments": [
                {"node_id": str(uuid4()), "filename": "f", "size": 1, "data": "YQ=="}
            ],
        }
        document = ExportDocument.from_dict(payload)
        assert document.include_attachments
        assert document.attachments[0].data == b"a"
        assert document.project.id == project.id

    def test_attachment_without_data_is_not_loaded(self) -> None:
        entry = {"node_id": str(uuid4()), "filename": "f", "size": 4}
        assert not Attachment.from_dict(entry).loaded
        assert Attachment.from_dict({**entry, "data": ""}).loaded
        stored = Attachment(node_id=uuid4(), filename="a", content_type="x", size=1, data=b"a")
        assert stored.loaded
        assert not stored.metadata().loaded

    def test_export_document_must_be_object(self) -> None:
        with pytest.raises(InvalidRequest):
            ExportDocument.from_dict(["not", "a", "dict"])  # type: ignore[arg-type]


class TestPatches:
    def _node(self) -> Node:
        return Node(
            project_id=uuid4(),
            node_type=NodeType.EMAIL,
            display="Alice",
            value="alice@example.com",
            updated=T0,
            notes="original",
            pos_x=1,
            pos_y=2,
        )

    def test_empty_node_patch_only_bumps_updated(self) -> None:
        node = self._node()
        patched = apply_node_patch(node, NodePatch(), now=T0 + timedelta(minutes=1))
        assert patched.updated == T0 + timedelta(minutes=1)
        assert (patched.display, patched.value, patched.notes, patched.pos_x, patched.pos_y) == (
            "Alice",
            "alice@example.com",
            "original",
            1,
            2,
        )

    def test_node_patch_sets_only_given_fields(self) -> None:
        node = self._node()
        patched = apply_node_patch(node, NodePatch(display="Alice B.", pos_y=9), now=T0)
        assert patched.display == "Alice B."
        assert patched.pos_y == 9
        assert patched.value == node.value
        assert patched.notes == node.notes
        assert patched.node_type == node.node_type
        assert patched.updated > node.updated

    def test_node_patch_is_pure(self) -> None:
        node = self._node()
        apply_node_patch(node, NodePatch(display="changed"))
        assert node.display == "Alice"

    def test_node_patch_clear_resets_nullable_fields(self) -> None:
        node = self._node()
        patched = apply_node_patch(node, NodePatch(pos_x=5, clear=frozenset({"notes", "pos_x"})))
        assert patched.notes is None
        assert patched.pos_x is None
        assert patched.pos_y == 2
        assert patched.display == "Alice"

    def test_node_patch_cannot_clear_required_fields(self) -> None:
        with pytest.raises(InvalidRequest) as excinfo:
            apply_node_patch(self._node(), NodePatch(clear=frozenset({"display"})))
        assert excinfo.value.field == "clear"

    def test_project_patch_keeps_identity(self) -> None:
        project = Project(name="Case", description="d", tags=["a"], creationdate=T0, last_updated=T0)
        patched = apply_project_patch(project, ProjectPatch(tags=["b", "c"]), now=T0)
        assert patched.tags == ["b", "c"]
        assert patched.name == "Case"
        assert patched.description == "d"
        assert patched.id == project.id
        assert patched.creationdate == T0
        assert patched.last_updated > T0

    def test_project_patch_from_project(self) -> None:
        patch = ProjectPatch.from_project(Project(name="n", description=None, tags=[]))
        assert patch.name == "n"
        assert patch.description is None
        assert patch.tags == []
