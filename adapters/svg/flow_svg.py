from __future__ import annotations

import html
import logging

from adapters.layout.flow_layout import FlowLayoutEngine
from domain.graph import ProcessGraph
from domain.models import ProcessNode

logger = logging.getLogger(__name__)

# Tailwind palette classes stored on nodes, resolved for standalone SVG output.
_FILL_BY_COLOR_CLASS: dict[str, str] = {
    "bg-blue-400": "#60a5fa",
    "bg-blue-600": "#2563eb",
    "bg-red-600": "#dc2626",
    "bg-purple-400": "#c084fc",
    "bg-purple-600": "#9333ea",
}
_DEFAULT_FILL = "#6b7280"
_EDGE_COLOR = "#9ca3af"
_LABEL_COLOR = "#666666"


class FlowSvgRenderer:
    def __init__(self, layout: FlowLayoutEngine) -> None:
        self.layout = layout

    def render(self, graph: ProcessGraph) -> str:
        origin, size = self.layout.canvas_bounds(list(graph.nodes))
        parts = [
            '<svg xmlns="http://www.w3.org/2000/svg" '
            f'viewBox="{origin.x:.0f} {origin.y:.0f} {size.width:.0f} {size.height:.0f}" '
            f'width="{size.width:.0f}" height="{size.height:.0f}">',
            "<defs>"
            '<marker id="arrowhead" markerWidth="10" markerHeight="7" refX="9" refY="3.5" orient="auto">'
            f'<polygon points="0 0, 10 3.5, 0 7" fill="{_EDGE_COLOR}"/>'
            "</marker>"
            "</defs>",
        ]
        parts.extend(self._render_connections(graph))
        parts.extend(self._render_node(node) for node in graph.nodes)
        parts.append("</svg>")
        return "\n".join(parts)

    def _render_connections(self, graph: ProcessGraph) -> list[str]:
        rendered: list[str] = []
        for connection in graph.connections:
            source = graph.node(connection.source)
            target = graph.node(connection.target)
            if source is None or target is None:
                logger.debug("Skipping connection %s with a missing endpoint", connection.id)
                continue
            geometry = self.layout.connection_geometry(source, target)
            rendered.append(
                f'<path data-connection-id="{html.escape(connection.id)}" d="{geometry.svg_path()}" '
                f'fill="none" stroke="{_EDGE_COLOR}" stroke-width="2.5" marker-end="url(#arrowhead)"/>'
            )
            if connection.label:
                rendered.append(
                    f'<text x="{geometry.label.x:.1f}" y="{geometry.label.y:.1f}" '
                    f'text-anchor="middle" fill="{_LABEL_COLOR}" font-size="12">'
                    f"{html.escape(connection.label)}</text>"
                )
        return rendered

    def _render_node(self, node: ProcessNode) -> str:
        width = self.layout.config.node_size.width
        height = self.layout.config.node_size.height
        fill = _FILL_BY_COLOR_CLASS.get(node.color or "", _DEFAULT_FILL)
        x = node.position.x
        y = node.position.y
        label = html.escape(node.label)
        return (
            f'<g data-node-id="{html.escape(node.id)}" data-node-type="{node.type}">'
            f'<rect x="{x:.1f}" y="{y:.1f}" width="{width:.0f}" height="{height:.0f}" '
            f'rx="8" fill="{fill}"/>'
            f'<text x="{x + width / 2:.1f}" y="{y + height / 2:.1f}" text-anchor="middle" '
            f'dominant-baseline="middle" fill="#ffffff" font-size="14">{label}</text>'
            "</g>"
        )
