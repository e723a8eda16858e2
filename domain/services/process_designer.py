"""Editing session behind the visual process designer.

One instance owns one graph for the length of an editing session. Every UI
event maps to a method here; structural edits go through
:class:`ProcessGraphEditor` and the resulting snapshot replaces the current one
in a single assignment.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from domain.errors import LookupFailedError
from domain.graph import ProcessGraph, initial_graph
from domain.models import FlowDocument, Position, ProcessConnection, ProcessNode, ProcessType
from domain.ports.lookup import BusinessFlowLookup
from domain.services.edit_process_graph import ProcessGraphEditor
from domain.services.serialize_flow import build_flow_document, load_flow_graph
from domain.services.viewport import DragState, Viewport

logger = logging.getLogger(__name__)

DEFAULT_PROCESS_NAME = "新流程"

SaveCallback = Callable[[FlowDocument], Any]
Callback = Callable[[], Any]


def fallback_process_name(business_flow_id: str) -> str:
    return f"{DEFAULT_PROCESS_NAME} (业务流: {business_flow_id[:5]}...)"


class ProcessDesigner:
    def __init__(
        self,
        process_type: ProcessType,
        editor: ProcessGraphEditor,
        on_save: SaveCallback,
        *,
        on_publish: Callback | None = None,
        on_cancel: Callback | None = None,
        flow_id: str | None = None,
        business_flow_id: str | None = None,
        graph: ProcessGraph | None = None,
    ) -> None:
        self.process_type: ProcessType = process_type
        self.flow_id = flow_id
        self.business_flow_id = business_flow_id
        self.process_name = DEFAULT_PROCESS_NAME
        self.process_description = ""
        self.graph = graph or initial_graph()
        self.viewport = Viewport()
        self.staged_position = Position()
        self.node_draft: ProcessNode | None = None
        self.connection_draft: ProcessConnection | None = None
        self.is_loading_name = False
        self._editor = editor
        self._drag = DragState()
        self._on_save = on_save
        self._on_publish = on_publish
        self._on_cancel = on_cancel

    @classmethod
    def from_document(
        cls,
        document: FlowDocument,
        editor: ProcessGraphEditor,
        on_save: SaveCallback,
        **callbacks: Any,
    ) -> ProcessDesigner:
        designer = cls(
            document.metadata.process_type,
            editor,
            on_save,
            flow_id=document.metadata.id or None,
            business_flow_id=document.metadata.business_flow_id,
            graph=load_flow_graph(document),
            **callbacks,
        )
        designer.process_name = document.metadata.name or DEFAULT_PROCESS_NAME
        designer.process_description = document.metadata.description
        return designer

    @property
    def is_dragging(self) -> bool:
        return self._drag.is_dragging

    async def load_default_name(self, lookup: BusinessFlowLookup) -> str:
        if self.flow_id or not self.business_flow_id:
            if not self.flow_id:
                self.process_name = DEFAULT_PROCESS_NAME
            return self.process_name
        self.is_loading_name = True
        try:
            business_flow = await lookup.get_business_flow(self.business_flow_id)
        except (LookupFailedError, ValueError) as exc:
            logger.warning("Error fetching business flow name: %s", exc)
            business_flow = None
        finally:
            self.is_loading_name = False
        if business_flow is not None and business_flow.name:
            self.process_name = business_flow.name
        else:
            self.process_name = fallback_process_name(self.business_flow_id)
        return self.process_name

    def click_canvas(self, screen_x: float, screen_y: float) -> Position:
        self.staged_position = self.viewport.to_logical(screen_x, screen_y)
        self.node_draft = None
        self.connection_draft = None
        return self.staged_position

    def add_from_palette(self, template_id: str) -> ProcessNode | None:
        result = self._editor.add_node(self.graph, template_id, self.staged_position)
        self.graph = result.graph
        if not result.created_node_ids:
            return None
        return self.open_node(result.created_node_ids[0])

    def split(self, connection_id: str, template_id: str) -> tuple[str, ...]:
        result = self._editor.split_connection(self.graph, connection_id, template_id)
        self.graph = result.graph
        return result.created_node_ids

    def delete_node(self, node_id: str) -> None:
        self.graph = self._editor.delete_node(self.graph, node_id)
        if self.node_draft is not None and not self.graph.has_node(self.node_draft.id):
            self.node_draft = None

    def delete_connection(self, connection_id: str) -> None:
        self.graph = self._editor.delete_connection(self.graph, connection_id)
        if self.connection_draft is not None and self.connection_draft.id == connection_id:
            self.connection_draft = None

    def open_node(self, node_id: str) -> ProcessNode | None:
        node = self.graph.node(node_id)
        self.node_draft = node.model_copy(deep=True) if node else None
        return self.node_draft

    def edit_node_draft(self, **fields: Any) -> ProcessNode | None:
        if self.node_draft is None:
            return None
        if not self.node_draft.is_editable:
            logger.warning("Node %s is not editable.", self.node_draft.id)
            return self.node_draft
        payload = {**self.node_draft.model_dump(), **fields}
        self.node_draft = ProcessNode.model_validate(payload)
        return self.node_draft

    def confirm_node(self) -> None:
        if self.node_draft is None:
            return
        self.graph = self._editor.update_node(self.graph, self.node_draft)
        self.node_draft = None

    def cancel_node(self) -> None:
        self.node_draft = None

    def open_connection(self, connection_id: str) -> ProcessConnection | None:
        connection = self.graph.connection(connection_id)
        self.connection_draft = connection.model_copy(deep=True) if connection else None
        return self.connection_draft

    def edit_connection_draft(self, **fields: Any) -> ProcessConnection | None:
        if self.connection_draft is None:
            return None
        editable = {key: value for key, value in fields.items() if key in {"label", "condition"}}
        self.connection_draft = self.connection_draft.model_copy(update=editable)
        return self.connection_draft

    def confirm_connection(self) -> None:
        if self.connection_draft is None:
            return
        self.graph = self._editor.update_connection(self.graph, self.connection_draft)
        self.connection_draft = None

    def cancel_connection(self) -> None:
        self.connection_draft = None

    def start_drag(self, node_id: str, screen_x: float, screen_y: float) -> None:
        node = self.graph.node(node_id)
        if node is None:
            return
        self._drag.start(node_id, node.position, self.viewport.to_logical(screen_x, screen_y))

    def drag_to(self, screen_x: float, screen_y: float) -> None:
        target = self._drag.target_position(self.viewport.to_logical(screen_x, screen_y))
        if target is None or self._drag.node_id is None:
            return
        self.graph = self._editor.move_node(self.graph, self._drag.node_id, target)

    def end_drag(self) -> None:
        self._drag.stop()

    def mouse_leave(self) -> None:
        self._drag.stop()

    def zoom_in(self) -> float:
        self.viewport = self.viewport.zoom_in()
        return self.viewport.zoom

    def zoom_out(self) -> float:
        self.viewport = self.viewport.zoom_out()
        return self.viewport.zoom

    def pan_by(self, dx: float, dy: float) -> None:
        self.viewport = self.viewport.pan_by(dx, dy)

    def build_document(self, now: datetime | None = None) -> FlowDocument:
        return build_flow_document(
            self.graph,
            name=self.process_name,
            description=self.process_description,
            process_type=self.process_type,
            business_flow_id=self.business_flow_id,
            flow_id=self.flow_id,
            now=now,
        )

    def save(self, now: datetime | None = None) -> FlowDocument:
        document = self.build_document(now)
        if self.flow_id is None:
            # The store assigns ids to flows it has not seen yet.
            document = document.model_copy(
                update={"metadata": document.metadata.model_copy(update={"id": ""})}
            )
        stored = self._on_save(document)
        if isinstance(stored, FlowDocument):
            document = stored
        self.flow_id = document.metadata.id or None
        return document

    def publish(self) -> None:
        if self._on_publish is None:
            logger.warning("Publish is not available for this designer.")
            return
        self._on_publish()

    def cancel(self) -> None:
        self.node_draft = None
        self.connection_draft = None
        self._drag.stop()
        if self._on_cancel is not None:
            self._on_cancel()
