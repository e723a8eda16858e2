from __future__ import annotations

from dataclasses import dataclass, replace

from domain.models import Point, Position

ZOOM_MIN = 0.5
ZOOM_MAX = 2.0
ZOOM_STEP = 0.1
DEFAULT_ZOOM = 0.8
DEFAULT_PAN = Point(100.0, 50.0)


def clamp_zoom(value: float) -> float:
    return round(min(max(value, ZOOM_MIN), ZOOM_MAX), 1)


@dataclass(frozen=True)
class Viewport:
    pan: Point = DEFAULT_PAN
    zoom: float = DEFAULT_ZOOM

    def to_logical(self, screen_x: float, screen_y: float) -> Position:
        return Position(x=(screen_x - self.pan.x) / self.zoom, y=(screen_y - self.pan.y) / self.zoom)

    def to_screen(self, position: Position) -> Point:
        return Point(position.x * self.zoom + self.pan.x, position.y * self.zoom + self.pan.y)

    def zoom_in(self) -> Viewport:
        return replace(self, zoom=clamp_zoom(self.zoom + ZOOM_STEP))

    def zoom_out(self) -> Viewport:
        return replace(self, zoom=clamp_zoom(self.zoom - ZOOM_STEP))

    def pan_by(self, dx: float, dy: float) -> Viewport:
        return replace(self, pan=Point(self.pan.x + dx, self.pan.y + dy))


@dataclass
class DragState:
    is_dragging: bool = False
    node_id: str | None = None
    offset: Point = Point(0.0, 0.0)

    def start(self, node_id: str, node_position: Position, pointer: Position) -> None:
        self.is_dragging = True
        self.node_id = node_id
        self.offset = Point(node_position.x - pointer.x, node_position.y - pointer.y)

    def target_position(self, pointer: Position) -> Position | None:
        if not self.is_dragging or self.node_id is None:
            return None
        return Position(x=pointer.x + self.offset.x, y=pointer.y + self.offset.y)

    def stop(self) -> None:
        self.is_dragging = False
        self.node_id = None
