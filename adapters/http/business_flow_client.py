from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from domain.errors import LookupFailedError
from domain.ports.lookup import BusinessFlowLookup
from domain.records import BusinessFlow
from domain.services.business_flow_tree import find_business_flow


class HttpBusinessFlowLookup(BusinessFlowLookup):
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def get_business_flow(self, business_flow_id: str) -> BusinessFlow | None:
        url = f"{self.base_url}/api/business-flows/{business_flow_id}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            msg = f"Failed to fetch business flow details for {business_flow_id}"
            raise LookupFailedError(msg) from exc
        return _extract_business_flow(payload, business_flow_id)


def _extract_business_flow(payload: Any, business_flow_id: str) -> BusinessFlow | None:
    try:
        if isinstance(payload, dict) and isinstance(payload.get("businessFlows"), list):
            flows = [BusinessFlow.model_validate(item) for item in payload["businessFlows"]]
            return find_business_flow(flows, business_flow_id)
        if isinstance(payload, list):
            flows = [BusinessFlow.model_validate(item) for item in payload]
            return find_business_flow(flows, business_flow_id)
        if isinstance(payload, dict) and payload.get("name"):
            return BusinessFlow.model_validate({"id": business_flow_id, **payload})
    except ValidationError as exc:
        msg = f"Unexpected business flow payload for {business_flow_id}"
        raise LookupFailedError(msg) from exc
    return None
