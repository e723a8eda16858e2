from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal

from domain.graph import ProcessGraph
from domain.models import END_NODE_ID, START_NODE_ID

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class GraphIssue:
    severity: Severity
    code: str
    message: str
    subject_id: str | None = None


def find_dangling_connections(graph: ProcessGraph) -> list[str]:
    known = graph.node_ids()
    return [
        connection.id
        for connection in graph.connections
        if connection.source not in known or connection.target not in known
    ]


def reachable_from(graph: ProcessGraph, root_id: str) -> set[str]:
    if not graph.has_node(root_id):
        return set()
    adjacency = graph.adjacency()
    seen = {root_id}
    queue = deque([root_id])
    while queue:
        current = queue.popleft()
        for neighbor in adjacency.get(current, []):
            if neighbor in seen:
                continue
            seen.add(neighbor)
            queue.append(neighbor)
    return seen


def check_graph(graph: ProcessGraph) -> list[GraphIssue]:
    issues: list[GraphIssue] = []
    for node_type, expected_id in (("start", START_NODE_ID), ("end", END_NODE_ID)):
        matches = [node for node in graph.nodes if node.type == node_type]
        if len(matches) != 1:
            issues.append(
                GraphIssue(
                    "error",
                    f"{node_type}_count",
                    f"Expected exactly one {node_type} node, found {len(matches)}",
                )
            )
        elif matches[0].id != expected_id:
            issues.append(
                GraphIssue(
                    "warning",
                    f"{node_type}_id",
                    f"The {node_type} node uses id {matches[0].id!r}",
                    matches[0].id,
                )
            )

    for connection_id in find_dangling_connections(graph):
        issues.append(
            GraphIssue("error", "dangling_connection", "Connection references a missing node", connection_id)
        )

    start_nodes = [node for node in graph.nodes if node.type == "start"]
    if start_nodes:
        reachable = reachable_from(graph, start_nodes[0].id)
        for node in graph.nodes:
            if node.id not in reachable:
                issues.append(
                    GraphIssue("warning", "unreachable_node", "Node is not reachable from start", node.id)
                )
    return issues


def has_errors(issues: list[GraphIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)
