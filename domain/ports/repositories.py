from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, TypeVar

from domain.models import FlowDocument
from domain.records import BusinessFlow

RecordT = TypeVar("RecordT")


class FlowRepository(Protocol):
    def list_all(self) -> Sequence[FlowDocument]: ...

    def get(self, flow_id: str) -> FlowDocument | None: ...

    def save(self, document: FlowDocument) -> None: ...

    def add(self, document: FlowDocument) -> bool: ...

    def delete(self, flow_id: str) -> bool: ...


class BusinessFlowRepository(Protocol):
    def load_tree(self) -> list[BusinessFlow]: ...

    def save_tree(self, flows: Sequence[BusinessFlow]) -> None: ...

    def update_tree(
        self, change: Callable[[list[BusinessFlow]], list[BusinessFlow]]
    ) -> list[BusinessFlow]: ...


class RecordRepository(Protocol[RecordT]):
    def list_all(self) -> list[RecordT]: ...

    def save_all(self, records: Sequence[RecordT]) -> None: ...

    def update(self, change: Callable[[list[RecordT]], list[RecordT]]) -> list[RecordT]: ...
