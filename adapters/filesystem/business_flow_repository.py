from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from adapters.filesystem.json_utils import load_json_list, locked, write_json_atomic
from domain.ports.lookup import BusinessFlowLookup
from domain.ports.repositories import BusinessFlowRepository
from domain.records import BusinessFlow
from domain.services.business_flow_tree import find_business_flow


class FileSystemBusinessFlowRepository(BusinessFlowRepository):
    def __init__(self, path: Path) -> None:
        self.path = path

    def load_tree(self) -> list[BusinessFlow]:
        return [
            BusinessFlow.model_validate(payload)
            for payload in load_json_list(self.path)
            if isinstance(payload, dict)
        ]

    def save_tree(self, flows: Sequence[BusinessFlow]) -> None:
        with locked(self.path):
            self._write(flows)

    def update_tree(
        self, change: Callable[[list[BusinessFlow]], list[BusinessFlow]]
    ) -> list[BusinessFlow]:
        with locked(self.path):
            tree = change(self.load_tree())
            self._write(tree)
            return tree

    def _write(self, flows: Sequence[BusinessFlow]) -> None:
        write_json_atomic(self.path, [flow.to_payload() for flow in flows])


class RepositoryBusinessFlowLookup(BusinessFlowLookup):
    def __init__(self, repository: BusinessFlowRepository) -> None:
        self._repository = repository

    async def get_business_flow(self, business_flow_id: str) -> BusinessFlow | None:
        return find_business_flow(self._repository.load_tree(), business_flow_id)
