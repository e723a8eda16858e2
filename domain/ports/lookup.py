from __future__ import annotations

from typing import Protocol

from domain.records import BusinessFlow


class BusinessFlowLookup(Protocol):
    async def get_business_flow(self, business_flow_id: str) -> BusinessFlow | None: ...
