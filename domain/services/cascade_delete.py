from __future__ import annotations

from dataclasses import dataclass

from domain.graph import ProcessGraph


@dataclass(frozen=True)
class RemovalSet:
    node_ids: frozenset[str]
    connection_ids: frozenset[str]

    def is_empty(self) -> bool:
        return not self.node_ids


def compute_removal_set(graph: ProcessGraph, node_id: str) -> RemovalSet:
    """Collect everything that goes away together with ``node_id``.

    A decision node takes its direct branch targets with it, and a merge node
    fed by those branches when every incoming connection of the merge comes
    from them. Only direct branch -> merge connections are inspected, so a
    merge fed through nested branches is retained. Nodes that are not
    deletable never enter the set.
    """
    node = graph.node(node_id)
    if node is None or not node.is_deletable:
        return RemovalSet(frozenset(), frozenset())

    removed_nodes: set[str] = {node_id}
    removed_connections: set[str] = set()

    if node.type == "decision":
        outgoing = graph.outgoing(node_id)
        removed_connections.update(connection.id for connection in outgoing)
        branch_ids = [
            connection.target
            for connection in outgoing
            if _is_deletable(graph, connection.target) and connection.target != node_id
        ]
        removed_nodes.update(branch_ids)

        merge_candidates: dict[str, int] = {}
        for branch_id in branch_ids:
            for connection in graph.outgoing(branch_id):
                removed_connections.add(connection.id)
                target = graph.node(connection.target)
                if target is not None and target.type == "merge":
                    merge_candidates[target.id] = merge_candidates.get(target.id, 0) + 1

        branch_set = set(branch_ids)
        for merge_id in merge_candidates:
            if not _is_deletable(graph, merge_id):
                continue
            incoming = graph.incoming(merge_id)
            from_branches = [connection for connection in incoming if connection.source in branch_set]
            if len(incoming) == len(from_branches):
                removed_nodes.add(merge_id)
                removed_connections.update(connection.id for connection in graph.outgoing(merge_id))

    for connection in graph.connections:
        if connection.source in removed_nodes or connection.target in removed_nodes:
            removed_connections.add(connection.id)

    return RemovalSet(frozenset(removed_nodes), frozenset(removed_connections))


def apply_removal(graph: ProcessGraph, removal: RemovalSet) -> ProcessGraph:
    if removal.is_empty():
        return graph
    return ProcessGraph.of(
        [node for node in graph.nodes if node.id not in removal.node_ids],
        [
            connection
            for connection in graph.connections
            if connection.id not in removal.connection_ids
            and connection.source not in removal.node_ids
            and connection.target not in removal.node_ids
        ],
    )


def _is_deletable(graph: ProcessGraph, node_id: str) -> bool:
    node = graph.node(node_id)
    return node is not None and node.is_deletable
