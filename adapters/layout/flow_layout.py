from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from domain.models import Point, Position, ProcessNode, Size
from domain.ports.layout import LayoutEngine

JITTER_MAX = 10.0


@dataclass(frozen=True)
class LayoutConfig:
    node_size: Size = Size(180, 70)
    vertical_spacing: float = 100.0
    branch_spacing: float = 200.0
    curve_factor: float = 1 / 1.5
    label_offset: float = 8.0


@dataclass(frozen=True)
class ConnectionGeometry:
    start: Point
    control_start: Point
    control_end: Point
    end: Point
    handle: Point
    label: Point

    def svg_path(self) -> str:
        return (
            f"M {_fmt(self.start.x)} {_fmt(self.start.y)} "
            f"C {_fmt(self.control_start.x)} {_fmt(self.control_start.y)}, "
            f"{_fmt(self.control_end.x)} {_fmt(self.control_end.y)}, "
            f"{_fmt(self.end.x)} {_fmt(self.end.y)}"
        )


def relayout(
    nodes: Sequence[ProcessNode],
    anchor_y: float,
    shift: float,
    exclude: Iterable[str] = (),
) -> list[ProcessNode]:
    """Push every node strictly below ``anchor_y`` down by ``shift``.

    Coarse heuristic for a top-to-bottom flow: nodes sharing a vertical band
    with siblings, or reached through back-edges, are shifted the same way.
    """
    skipped = set(exclude)
    shifted: list[ProcessNode] = []
    for node in nodes:
        if node.id in skipped or node.position.y <= anchor_y:
            shifted.append(node)
            continue
        shifted.append(node.model_copy(update={"position": node.position.shifted(dy=shift)}))
    return shifted


def cubic_point(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    u = 1 - t
    x = u**3 * p0.x + 3 * u**2 * t * p1.x + 3 * u * t**2 * p2.x + t**3 * p3.x
    y = u**3 * p0.y + 3 * u**2 * t * p1.y + 3 * u * t**2 * p2.y + t**3 * p3.y
    return Point(x, y)


class FlowLayoutEngine(LayoutEngine):
    def __init__(self, config: LayoutConfig | None = None, rng: random.Random | None = None) -> None:
        self.config = config or LayoutConfig()
        self._rng = rng or random.Random()

    def palette_position(self, staged: Position) -> Position:
        return staged.shifted(
            dx=self._rng.random() * JITTER_MAX,
            dy=self._rng.random() * JITTER_MAX,
        )

    def split_position(self, source: ProcessNode, target: ProcessNode) -> Position:
        return Position(
            x=(source.position.x + target.position.x) / 2,
            y=(source.position.y + target.position.y) / 2,
        )

    def branch_positions(
        self, source: ProcessNode, target: ProcessNode
    ) -> tuple[Position, Position, Position, Position]:
        mid = self.split_position(source, target)
        spacing = self.config.vertical_spacing
        decision = mid
        left = mid.shifted(dx=-self.config.branch_spacing, dy=spacing)
        right = mid.shifted(dx=self.config.branch_spacing, dy=spacing)
        merge = mid.shifted(dy=spacing * 2 + self.config.node_size.height)
        return decision, left, right, merge

    def split_shift(self) -> float:
        return self.config.node_size.height + self.config.vertical_spacing

    def branch_shift(self) -> float:
        return (self.config.vertical_spacing + self.config.node_size.height) * 2

    def relayout(
        self,
        nodes: Sequence[ProcessNode],
        anchor_y: float,
        shift: float,
        exclude: Iterable[str] = (),
    ) -> list[ProcessNode]:
        return relayout(nodes, anchor_y, shift, exclude)

    def connection_anchors(self, source: ProcessNode, target: ProcessNode) -> tuple[Point, Point]:
        width = self.config.node_size.width
        start = Point(source.position.x + width / 2, source.position.y + self.config.node_size.height)
        end = Point(target.position.x + width / 2, target.position.y)
        return start, end

    def connection_geometry(self, source: ProcessNode, target: ProcessNode) -> ConnectionGeometry:
        start, end = self.connection_anchors(source, target)
        bend = self.config.vertical_spacing * self.config.curve_factor
        control_start = Point(start.x, start.y + bend)
        control_end = Point(end.x, end.y - bend)
        return ConnectionGeometry(
            start=start,
            control_start=control_start,
            control_end=control_end,
            end=end,
            handle=cubic_point(start, control_start, control_end, end, 0.5),
            label=Point((start.x + end.x) / 2, (start.y + end.y) / 2 - self.config.label_offset),
        )

    def canvas_bounds(self, nodes: Sequence[ProcessNode], padding: float = 50.0) -> tuple[Point, Size]:
        if not nodes:
            return Point(0.0, 0.0), Size(padding * 2, padding * 2)
        min_x = min(node.position.x for node in nodes) - padding
        min_y = min(node.position.y for node in nodes) - padding
        max_x = max(node.position.x for node in nodes) + self.config.node_size.width + padding
        max_y = max(node.position.y for node in nodes) + self.config.node_size.height + padding
        return Point(min_x, min_y), Size(max_x - min_x, max_y - min_y)


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")
