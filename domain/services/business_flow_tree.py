from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime

from domain.ids import IdFactory, generate_id
from domain.ports.repositories import BusinessFlowRepository
from domain.records import BusinessFlow, BusinessFlowDraft
from domain.services.serialize_flow import isoformat_utc

logger = logging.getLogger(__name__)


def iter_business_flows(flows: Sequence[BusinessFlow]) -> Iterator[BusinessFlow]:
    for flow in flows:
        yield flow
        yield from iter_business_flows(flow.children)


def find_business_flow(flows: Sequence[BusinessFlow], business_flow_id: str) -> BusinessFlow | None:
    for flow in iter_business_flows(flows):
        if flow.id == business_flow_id:
            return flow
    return None


def count_business_flows(flows: Sequence[BusinessFlow]) -> int:
    return sum(1 for _ in iter_business_flows(flows))


def build_business_flow(
    draft: BusinessFlowDraft,
    *,
    id_factory: IdFactory = generate_id,
    now: datetime | None = None,
) -> BusinessFlow:
    flow_id = id_factory("bf-")
    return BusinessFlow(
        id=flow_id,
        name=draft.name,
        description=draft.description,
        detail_page_id=f"bf_detail_{flow_id}",
        parent_id=draft.parent_id,
        last_accessed=isoformat_utc(now or datetime.now(tz=UTC)),
    )


def insert_business_flow(flows: Sequence[BusinessFlow], created: BusinessFlow) -> list[BusinessFlow]:
    """Return a new tree with ``created`` under its parent, or at the root.

    An unknown parent id falls back to the root level.
    """
    if not created.parent_id:
        return [*flows, created]
    updated, found = _insert_child(flows, created.parent_id, created)
    if not found:
        logger.warning(
            "Parent id %s not found for business flow %s; adding to root level.",
            created.parent_id,
            created.name,
        )
        return [*flows, created]
    return updated


def _insert_child(
    flows: Sequence[BusinessFlow], parent_id: str, child: BusinessFlow
) -> tuple[list[BusinessFlow], bool]:
    result: list[BusinessFlow] = []
    found = False
    for flow in flows:
        if found:
            result.append(flow)
            continue
        if flow.id == parent_id:
            result.append(flow.model_copy(update={"children": [*flow.children, child]}))
            found = True
            continue
        children, found = _insert_child(flow.children, parent_id, child)
        result.append(flow.model_copy(update={"children": children}) if found else flow)
    return result, found


class ManageBusinessFlows:
    def __init__(
        self,
        repository: BusinessFlowRepository,
        *,
        id_factory: IdFactory = generate_id,
    ) -> None:
        self._repository = repository
        self._new_id = id_factory

    def list_tree(self) -> list[BusinessFlow]:
        return self._repository.load_tree()

    def get(self, business_flow_id: str) -> BusinessFlow | None:
        return find_business_flow(self._repository.load_tree(), business_flow_id)

    def create(self, draft: BusinessFlowDraft) -> BusinessFlow:
        created = build_business_flow(draft, id_factory=self._new_id)
        self._repository.update_tree(lambda tree: insert_business_flow(tree, created))
        return created
