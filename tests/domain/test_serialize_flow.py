from __future__ import annotations

from datetime import UTC, datetime

import pytest

from domain.errors import InvalidFlowDocumentError
from domain.graph import initial_graph
from domain.ids import IdFactory
from domain.services.edit_process_graph import ProcessGraphEditor
from domain.services.serialize_flow import (
    build_flow_document,
    dump_flow_document,
    isoformat_utc,
    load_flow_graph,
    mint_flow_id,
    parse_flow_document,
)

NOW = datetime(2024, 5, 6, 7, 8, 9, 123000, tzinfo=UTC)


def test_round_trip_preserves_graph(editor: ProcessGraphEditor, id_factory: IdFactory) -> None:
    graph = initial_graph(id_factory)
    graph = editor.split_connection(graph, graph.connections[0].id, "conditionBranch").graph
    document = build_flow_document(
        graph,
        name="Purchase approval",
        description="Two-step",
        process_type="approval",
        business_flow_id="bf-1",
        now=NOW,
    )

    restored = load_flow_graph(parse_flow_document(dump_flow_document(document)))

    assert restored == graph
    assert [node.position for node in restored.nodes] == [node.position for node in graph.nodes]


def test_document_metadata_uses_camel_case_and_utc() -> None:
    document = build_flow_document(
        initial_graph(lambda prefix: f"{prefix}1"),
        name="Flow",
        description="",
        process_type="project",
        now=NOW,
    )

    payload = dump_flow_document(document)

    assert payload["metadata"]["id"] == mint_flow_id(NOW)
    assert payload["metadata"]["lastModified"] == "2024-05-06T07:08:09.123Z"
    assert payload["metadata"]["processType"] == "project"
    assert "businessFlowId" not in payload["metadata"]
    start = payload["nodes"][0]
    assert start["isDeletable"] is False
    assert start["isEditable"] is False


def test_explicit_flow_id_is_kept() -> None:
    document = build_flow_document(
        initial_graph(),
        name="Flow",
        description="",
        process_type="project",
        flow_id="flow_existing",
        now=NOW,
    )

    assert document.flow_id == "flow_existing"


def test_legacy_palette_types_are_normalized_on_load() -> None:
    payload = {
        "nodes": [
            {"id": "start", "type": "start", "label": "开始", "position": {"x": 400, "y": 100}},
            {
                "id": "n1",
                "type": "projectNode",
                "label": "Build",
                "position": {"x": 400, "y": 200},
            },
            {
                "id": "n2",
                "type": "approvalNode",
                "label": "Sign off",
                "position": {"x": 400, "y": 300},
                "approvers": "alice, bob",
            },
            {"id": "end", "type": "end", "label": "结束", "position": {"x": 400, "y": 400}},
        ],
        "connections": [],
        "metadata": {"name": "Legacy", "processType": "project"},
    }

    graph = load_flow_graph(parse_flow_document(payload))

    assert [node.type for node in graph.nodes] == ["start", "task", "approval", "end"]
    approval = graph.node("n2")
    assert approval is not None
    assert approval.approvers == ["alice", "bob"]


def test_fixed_node_flags_are_forced_on_load() -> None:
    payload = {
        "nodes": [
            {
                "id": "start",
                "type": "start",
                "position": {"x": 0, "y": 0},
                "isDeletable": True,
                "isEditable": True,
            }
        ],
        "connections": [],
    }

    graph = load_flow_graph(parse_flow_document(payload))

    start = graph.node("start")
    assert start is not None
    assert start.is_deletable is False
    assert start.is_editable is False


@pytest.mark.parametrize(
    "payload",
    [
        {"nodes": [{"id": "x", "type": "gateway", "position": {"x": 0, "y": 0}}]},
        {
            "nodes": [
                {"id": "x", "type": "task", "position": {"x": 0, "y": 0}},
                {"id": "x", "type": "task", "position": {"x": 0, "y": 0}},
            ]
        },
        {"metadata": {"processType": "other"}},
    ],
)
def test_invalid_documents_raise(payload: dict) -> None:
    with pytest.raises(InvalidFlowDocumentError) as exc_info:
        parse_flow_document(payload)

    assert exc_info.value.errors


def test_isoformat_utc_converts_offsets() -> None:
    moment = datetime.fromisoformat("2024-01-01T03:00:00+03:00")

    assert isoformat_utc(moment) == "2024-01-01T00:00:00.000Z"
