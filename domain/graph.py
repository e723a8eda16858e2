from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from domain.ids import IdFactory, generate_id
from domain.models import (
    END_NODE_ID,
    START_NODE_ID,
    Position,
    ProcessConnection,
    ProcessNode,
)
from domain.node_templates import color_for_type

START_POSITION = Position(x=400.0, y=100.0)
END_POSITION = Position(x=400.0, y=300.0)


@dataclass(frozen=True)
class ProcessGraph:
    """Immutable snapshot of the designer graph.

    Editing operations never mutate a snapshot; they build a new one, so a
    renderer holding the previous snapshot never sees a half-applied edit.
    """

    nodes: tuple[ProcessNode, ...] = ()
    connections: tuple[ProcessConnection, ...] = ()
    _node_index: dict[str, ProcessNode] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "connections", tuple(self.connections))
        object.__setattr__(self, "_node_index", {node.id: node for node in self.nodes})

    @classmethod
    def of(
        cls,
        nodes: Iterable[ProcessNode],
        connections: Iterable[ProcessConnection],
    ) -> ProcessGraph:
        return cls(nodes=tuple(nodes), connections=tuple(connections))

    def node(self, node_id: str) -> ProcessNode | None:
        return self._node_index.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def connection(self, connection_id: str) -> ProcessConnection | None:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None

    def outgoing(self, node_id: str) -> list[ProcessConnection]:
        return [connection for connection in self.connections if connection.source == node_id]

    def incoming(self, node_id: str) -> list[ProcessConnection]:
        return [connection for connection in self.connections if connection.target == node_id]

    def node_ids(self) -> set[str]:
        return set(self._node_index)

    def adjacency(self) -> dict[str, list[str]]:
        adjacency: dict[str, list[str]] = {node.id: [] for node in self.nodes}
        for connection in self.connections:
            adjacency.setdefault(connection.source, []).append(connection.target)
        return adjacency

    def with_nodes(self, nodes: Iterable[ProcessNode]) -> ProcessGraph:
        return replace(self, nodes=tuple(nodes))

    def with_connections(self, connections: Iterable[ProcessConnection]) -> ProcessGraph:
        return replace(self, connections=tuple(connections))


def build_start_node() -> ProcessNode:
    return ProcessNode(
        id=START_NODE_ID,
        type="start",
        label="开始",
        description="流程开始",
        position=START_POSITION,
        color=color_for_type("start"),
    )


def build_end_node() -> ProcessNode:
    return ProcessNode(
        id=END_NODE_ID,
        type="end",
        label="结束",
        description="流程结束",
        position=END_POSITION,
        color=color_for_type("end"),
    )


def initial_graph(id_factory: IdFactory = generate_id) -> ProcessGraph:
    start = build_start_node()
    end = build_end_node()
    return ProcessGraph.of(
        [start, end],
        [ProcessConnection(id=id_factory("conn_"), source=start.id, target=end.id)],
    )
