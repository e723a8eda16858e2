from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from domain.models import Point, Position, ProcessNode


class LayoutEngine(Protocol):
    def palette_position(self, staged: Position) -> Position: ...

    def split_position(self, source: ProcessNode, target: ProcessNode) -> Position: ...

    def branch_positions(
        self, source: ProcessNode, target: ProcessNode
    ) -> tuple[Position, Position, Position, Position]: ...

    def split_shift(self) -> float: ...

    def branch_shift(self) -> float: ...

    def relayout(
        self,
        nodes: Sequence[ProcessNode],
        anchor_y: float,
        shift: float,
        exclude: Iterable[str] = (),
    ) -> list[ProcessNode]: ...

    def connection_anchors(self, source: ProcessNode, target: ProcessNode) -> tuple[Point, Point]: ...
