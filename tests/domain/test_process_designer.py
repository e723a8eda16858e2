from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest

from adapters.filesystem.flow_repository import FileSystemFlowRepository
from domain.errors import LookupFailedError
from domain.graph import initial_graph
from domain.ids import IdFactory
from domain.models import FlowDocument, Point, Position
from domain.records import BusinessFlow
from domain.services.edit_process_graph import ProcessGraphEditor
from domain.services.manage_flows import ManageProcessFlows
from domain.services.process_designer import DEFAULT_PROCESS_NAME, ProcessDesigner
from domain.services.serialize_flow import build_flow_document
from domain.services.viewport import Viewport

NOW = datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC)


class StaticLookup:
    def __init__(self, flows: dict[str, BusinessFlow]) -> None:
        self.flows = flows
        self.calls: list[str] = []

    async def get_business_flow(self, business_flow_id: str) -> BusinessFlow | None:
        self.calls.append(business_flow_id)
        return self.flows.get(business_flow_id)


class FailingLookup:
    async def get_business_flow(self, business_flow_id: str) -> BusinessFlow | None:
        raise LookupFailedError(f"lookup of {business_flow_id} timed out")


def _designer(
    editor: ProcessGraphEditor,
    id_factory: IdFactory,
    saved: list[FlowDocument] | None = None,
    **kwargs: object,
) -> ProcessDesigner:
    sink = saved if saved is not None else []
    designer = ProcessDesigner(
        "project",
        editor,
        sink.append,
        graph=initial_graph(id_factory),
        **kwargs,  # type: ignore[arg-type]
    )
    designer.viewport = Viewport(pan=Point(0.0, 0.0), zoom=1.0)
    return designer


def test_click_then_palette_add_opens_draft(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)

    staged = designer.click_canvas(120.0, 80.0)
    draft = designer.add_from_palette("projectNode")

    assert staged == Position(x=120.0, y=80.0)
    assert draft is not None
    assert draft.type == "task"
    assert designer.graph.has_node(draft.id)
    assert 120.0 <= draft.position.x < 130.0


def test_node_draft_is_isolated_until_confirm(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)
    created = designer.split(designer.graph.connections[0].id, "approvalNode")
    node_id = created[0]

    designer.open_node(node_id)
    designer.edit_node_draft(label="Finance sign-off", approvers="alice,bob", approval_type="all")

    stored = designer.graph.node(node_id)
    assert stored is not None and stored.label == "审批节点"

    designer.confirm_node()

    stored = designer.graph.node(node_id)
    assert stored is not None
    assert stored.label == "Finance sign-off"
    assert stored.approvers == ["alice", "bob"]
    assert stored.approval_type == "all"
    assert designer.node_draft is None


def test_cancelled_node_draft_is_discarded(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)
    node_id = designer.split(designer.graph.connections[0].id, "projectNode")[0]
    before = designer.graph

    designer.open_node(node_id)
    designer.edit_node_draft(label="Changed")
    designer.cancel_node()

    assert designer.graph is before
    assert designer.node_draft is None


def test_fixed_node_draft_cannot_be_edited(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)

    designer.open_node("start")
    draft = designer.edit_node_draft(label="Begin")
    designer.confirm_node()

    assert draft is not None and draft.label == "开始"
    start = designer.graph.node("start")
    assert start is not None and start.label == "开始"


def test_connection_draft_edits_label_and_condition_only(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)
    connection_id = designer.graph.connections[0].id

    designer.open_connection(connection_id)
    designer.edit_connection_draft(label="always", source="elsewhere")
    designer.confirm_connection()

    connection = designer.graph.connection(connection_id)
    assert connection is not None
    assert connection.label == "always"
    assert connection.source == "start"


def test_drag_moves_node_until_released(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)
    node_id = designer.split(designer.graph.connections[0].id, "projectNode")[0]

    designer.start_drag(node_id, 410.0, 210.0)
    designer.drag_to(460.0, 260.0)
    designer.end_drag()
    designer.drag_to(900.0, 900.0)

    node = designer.graph.node(node_id)
    assert node is not None
    assert node.position == Position(x=450.0, y=250.0)
    assert designer.is_dragging is False


def test_mouse_leave_ends_drag(editor: ProcessGraphEditor, id_factory: IdFactory) -> None:
    designer = _designer(editor, id_factory)

    designer.start_drag("end", 400.0, 300.0)
    designer.mouse_leave()
    designer.drag_to(0.0, 0.0)

    end = designer.graph.node("end")
    assert end is not None
    assert end.position == Position(x=400.0, y=300.0)


def test_zoom_is_clamped(editor: ProcessGraphEditor, id_factory: IdFactory) -> None:
    designer = _designer(editor, id_factory)

    for _ in range(30):
        designer.zoom_in()
    assert designer.viewport.zoom == 2.0

    for _ in range(30):
        designer.zoom_out()
    assert designer.viewport.zoom == 0.5


def test_delete_decision_through_session(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)
    created = designer.split(designer.graph.connections[0].id, "conditionBranch")

    designer.delete_node(created[0])

    assert designer.graph.node_ids() == {"start", "end"}


def test_default_name_comes_from_business_flow(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    lookup = StaticLookup({"bf-12345678": BusinessFlow(id="bf-12345678", name="采购流程")})
    designer = _designer(editor, id_factory, business_flow_id="bf-12345678")

    name = asyncio.run(designer.load_default_name(lookup))

    assert name == "采购流程"
    assert designer.process_name == "采购流程"
    assert lookup.calls == ["bf-12345678"]
    assert designer.is_loading_name is False


@pytest.mark.parametrize("lookup", [FailingLookup(), StaticLookup({})])
def test_default_name_falls_back_on_failure(
    editor: ProcessGraphEditor, id_factory: IdFactory, lookup: object
) -> None:
    designer = _designer(editor, id_factory, business_flow_id="bf-12345678")

    name = asyncio.run(designer.load_default_name(lookup))  # type: ignore[arg-type]

    assert name == "新流程 (业务流: bf-12...)"


def test_default_name_without_ids(editor: ProcessGraphEditor, id_factory: IdFactory) -> None:
    lookup = StaticLookup({})
    designer = _designer(editor, id_factory)

    name = asyncio.run(designer.load_default_name(lookup))

    assert name == DEFAULT_PROCESS_NAME
    assert lookup.calls == []


def test_existing_flow_keeps_its_name(editor: ProcessGraphEditor, id_factory: IdFactory) -> None:
    document = build_flow_document(
        initial_graph(id_factory),
        name="Stored flow",
        description="",
        process_type="approval",
        business_flow_id="bf-1",
        flow_id="flow_1",
        now=NOW,
    )
    designer = ProcessDesigner.from_document(document, editor, lambda _: None)
    lookup = StaticLookup({})

    name = asyncio.run(designer.load_default_name(lookup))

    assert name == "Stored flow"
    assert designer.process_type == "approval"
    assert lookup.calls == []


def test_save_hands_document_to_callback(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    saved: list[FlowDocument] = []
    designer = _designer(editor, id_factory, saved, business_flow_id="bf-1")
    designer.process_name = "Hiring"

    document = designer.save(NOW)

    assert saved == [document]
    assert document.metadata.name == "Hiring"
    assert document.metadata.business_flow_id == "bf-1"
    assert document.metadata.id == ""
    assert designer.flow_id is None
    assert len(document.nodes) == 2


def test_save_adopts_id_assigned_by_store(
    editor: ProcessGraphEditor, id_factory: IdFactory, tmp_path: Path
) -> None:
    manager = ManageProcessFlows(FileSystemFlowRepository(tmp_path / "process-flows.json"))
    first = ProcessDesigner("project", editor, manager.save_flow, graph=initial_graph(id_factory))
    second = ProcessDesigner("approval", editor, manager.save_flow, graph=initial_graph(id_factory))
    first.process_name = "First"
    second.process_name = "Second"

    stored_first = first.save(NOW)
    stored_second = second.save(NOW)
    first.process_name = "First, renamed"
    first.save(NOW)

    assert first.flow_id == stored_first.metadata.id
    assert second.flow_id == stored_second.metadata.id
    assert first.flow_id != second.flow_id
    names = sorted(flow.metadata.name for flow in manager.list_flows())
    assert names == ["First, renamed", "Second"]


def test_save_failure_propagates_and_keeps_graph(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    def _fail(document: FlowDocument) -> None:
        raise OSError("disk full")

    designer = ProcessDesigner("project", editor, _fail, graph=initial_graph(id_factory))
    designer.split(designer.graph.connections[0].id, "projectNode")
    before = designer.graph

    with pytest.raises(OSError, match="disk full"):
        designer.save(NOW)

    assert designer.graph is before
    assert designer.flow_id is None


def test_publish_and_cancel_callbacks(editor: ProcessGraphEditor, id_factory: IdFactory) -> None:
    events: list[str] = []
    designer = _designer(
        editor,
        id_factory,
        on_publish=lambda: events.append("publish"),
        on_cancel=lambda: events.append("cancel"),
    )
    designer.open_node("start")

    designer.publish()
    designer.cancel()

    assert events == ["publish", "cancel"]
    assert designer.node_draft is None


def test_publish_without_callback_is_noop(
    editor: ProcessGraphEditor, id_factory: IdFactory
) -> None:
    designer = _designer(editor, id_factory)

    designer.publish()
