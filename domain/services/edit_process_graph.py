from __future__ import annotations

import logging
from dataclasses import dataclass

from domain.graph import ProcessGraph
from domain.ids import IdFactory, generate_id
from domain.models import Position, ProcessConnection, ProcessNode
from domain.node_templates import (
    ADDABLE_TEMPLATE_IDS,
    BRANCH_LABELS,
    BRANCH_NODE_LABELS,
    CONDITION_BRANCH,
    SPLIT_TEMPLATE_IDS,
    NodeTemplate,
    color_for_type,
    get_template,
)
from domain.ports.layout import LayoutEngine
from domain.services.cascade_delete import apply_removal, compute_removal_set

logger = logging.getLogger(__name__)

# Fields an edit dialog may never change.
_LOCKED_NODE_FIELDS = ("id", "type", "is_deletable", "is_editable")


@dataclass(frozen=True)
class EditResult:
    graph: ProcessGraph
    created_node_ids: tuple[str, ...] = ()
    created_connection_ids: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.created_node_ids or self.created_connection_ids)


class ProcessGraphEditor:
    def __init__(self, layout: LayoutEngine, id_factory: IdFactory = generate_id) -> None:
        self.layout = layout
        self._new_id = id_factory

    def add_node(self, graph: ProcessGraph, template_id: str, staged: Position) -> EditResult:
        template = get_template(template_id)
        if template is None or template.template_id not in ADDABLE_TEMPLATE_IDS:
            logger.warning("Template %r cannot be added from the palette.", template_id)
            return EditResult(graph)
        node = self._build_node(template, self.layout.palette_position(staged))
        return EditResult(graph.with_nodes([*graph.nodes, node]), created_node_ids=(node.id,))

    def split_connection(
        self, graph: ProcessGraph, connection_id: str, template_id: str
    ) -> EditResult:
        connection = graph.connection(connection_id)
        if connection is None:
            logger.warning("No connection %r to split.", connection_id)
            return EditResult(graph)
        source = graph.node(connection.source)
        target = graph.node(connection.target)
        if source is None or target is None:
            logger.warning("Connection %r references a missing node.", connection_id)
            return EditResult(graph)
        if template_id not in SPLIT_TEMPLATE_IDS:
            logger.warning("Template %r cannot be inserted on a connection.", template_id)
            return EditResult(graph)
        if template_id == CONDITION_BRANCH:
            return self._insert_branch(graph, connection, source, target)
        return self._insert_node(graph, connection, source, target, template_id)

    def delete_node(self, graph: ProcessGraph, node_id: str) -> ProcessGraph:
        node = graph.node(node_id)
        if node is None:
            logger.warning("No node %r to delete.", node_id)
            return graph
        if node.is_fixed or not node.is_deletable:
            logger.warning("Start, end, or non-deletable nodes cannot be deleted: %s", node_id)
            return graph
        return apply_removal(graph, compute_removal_set(graph, node_id))

    def delete_connection(self, graph: ProcessGraph, connection_id: str) -> ProcessGraph:
        if graph.connection(connection_id) is None:
            logger.warning("No connection %r to delete.", connection_id)
            return graph
        return graph.with_connections(
            [connection for connection in graph.connections if connection.id != connection_id]
        )

    def update_node(self, graph: ProcessGraph, updated: ProcessNode) -> ProcessGraph:
        current = graph.node(updated.id)
        if current is None:
            logger.warning("No node %r to update.", updated.id)
            return graph
        if current.is_fixed or not current.is_editable:
            logger.warning("Start, end, or non-editable nodes cannot be edited: %s", updated.id)
            return graph
        changes = updated.model_dump(exclude=set(_LOCKED_NODE_FIELDS))
        merged = ProcessNode.model_validate({**current.model_dump(), **changes})
        return graph.with_nodes([merged if node.id == merged.id else node for node in graph.nodes])

    def update_connection(self, graph: ProcessGraph, updated: ProcessConnection) -> ProcessGraph:
        current = graph.connection(updated.id)
        if current is None:
            logger.warning("No connection %r to update.", updated.id)
            return graph
        merged = current.model_copy(update={"label": updated.label, "condition": updated.condition})
        return graph.with_connections(
            [merged if connection.id == merged.id else connection for connection in graph.connections]
        )

    def move_node(self, graph: ProcessGraph, node_id: str, position: Position) -> ProcessGraph:
        if not graph.has_node(node_id):
            logger.warning("No node %r to move.", node_id)
            return graph
        return graph.with_nodes(
            [
                node.model_copy(update={"position": position}) if node.id == node_id else node
                for node in graph.nodes
            ]
        )

    def _insert_node(
        self,
        graph: ProcessGraph,
        connection: ProcessConnection,
        source: ProcessNode,
        target: ProcessNode,
        template_id: str,
    ) -> EditResult:
        template = get_template(template_id)
        assert template is not None
        node = self._build_node(template, self.layout.split_position(source, target))
        links = [
            self._connect(source.id, node.id),
            self._connect(node.id, target.id),
        ]
        shifted = self.layout.relayout(graph.nodes, source.position.y, self.layout.split_shift())
        return EditResult(
            ProcessGraph.of([*shifted, node], self._replace_connection(graph, connection, links)),
            created_node_ids=(node.id,),
            created_connection_ids=tuple(link.id for link in links),
        )

    def _insert_branch(
        self,
        graph: ProcessGraph,
        connection: ProcessConnection,
        source: ProcessNode,
        target: ProcessNode,
    ) -> EditResult:
        decision_pos, left_pos, right_pos, merge_pos = self.layout.branch_positions(source, target)
        decision = self._build_typed_node("decision_", "decision", "条件判断", decision_pos)
        left = self._build_typed_node("branch1_", "task", BRANCH_NODE_LABELS[0], left_pos)
        right = self._build_typed_node("branch2_", "task", BRANCH_NODE_LABELS[1], right_pos)
        merge = self._build_typed_node("merge_", "merge", "合并", merge_pos)
        created = [decision, left, right, merge]
        links = [
            self._connect(source.id, decision.id),
            self._connect(decision.id, left.id, label=BRANCH_LABELS[0]),
            self._connect(decision.id, right.id, label=BRANCH_LABELS[1]),
            self._connect(left.id, merge.id),
            self._connect(right.id, merge.id),
            self._connect(merge.id, target.id),
        ]
        shifted = self.layout.relayout(graph.nodes, source.position.y, self.layout.branch_shift())
        return EditResult(
            ProcessGraph.of([*shifted, *created], self._replace_connection(graph, connection, links)),
            created_node_ids=tuple(node.id for node in created),
            created_connection_ids=tuple(link.id for link in links),
        )

    def _replace_connection(
        self,
        graph: ProcessGraph,
        removed: ProcessConnection,
        added: list[ProcessConnection],
    ) -> list[ProcessConnection]:
        kept = [connection for connection in graph.connections if connection.id != removed.id]
        return [*kept, *added]

    def _build_node(self, template: NodeTemplate, position: Position) -> ProcessNode:
        assert template.node_type is not None
        return ProcessNode(
            id=self._new_id("node_"),
            type=template.node_type,
            label=template.label,
            description="",
            position=position,
            color=template.color,
            is_deletable=True,
            is_editable=True,
        )

    def _build_typed_node(
        self, prefix: str, node_type: str, label: str, position: Position
    ) -> ProcessNode:
        return ProcessNode(
            id=self._new_id(prefix),
            type=node_type,  # type: ignore[arg-type]
            label=label,
            description="",
            position=position,
            color=color_for_type(node_type),
        )

    def _connect(self, source_id: str, target_id: str, label: str | None = None) -> ProcessConnection:
        return ProcessConnection(
            id=self._new_id("conn_"), source=source_id, target=target_id, label=label
        )
