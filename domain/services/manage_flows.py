from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from domain.errors import FlowNotFoundError, PublishNotSupportedError
from domain.models import FlowDocument
from domain.ports.repositories import FlowRepository
from domain.services.serialize_flow import isoformat_utc, mint_flow_id

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class ManageProcessFlows:
    def __init__(
        self,
        repository: FlowRepository,
        *,
        publish_enabled: bool = False,
        clock: Clock = _utc_now,
    ) -> None:
        self._repository = repository
        self._publish_enabled = publish_enabled
        self._clock = clock

    def list_flows(self, business_flow_id: str | None = None) -> list[FlowDocument]:
        flows = list(self._repository.list_all())
        if business_flow_id:
            flows = [flow for flow in flows if flow.metadata.business_flow_id == business_flow_id]
        return flows

    def get_flow(self, flow_id: str) -> FlowDocument:
        document = self._repository.get(flow_id)
        if document is None:
            raise FlowNotFoundError(flow_id)
        return document

    def create_flow(self, document: FlowDocument) -> FlowDocument:
        moment = self._clock()
        stamp = isoformat_utc(moment)
        stored = self._stamp_new(document, document.metadata.id or mint_flow_id(moment), stamp)
        while not self._repository.add(stored):
            # Ids are millisecond stamps; step forward past ones already stored.
            logger.info("Process flow id %s is taken, minting another.", stored.metadata.id)
            moment += timedelta(milliseconds=1)
            stored = self._stamp_new(document, mint_flow_id(moment), stamp)
        logger.info("Created process flow %s", stored.metadata.id)
        return stored

    @staticmethod
    def _stamp_new(document: FlowDocument, flow_id: str, stamp: str) -> FlowDocument:
        metadata = document.metadata.model_copy(
            update={
                "id": flow_id,
                "created_at": stamp,
                "updated_at": stamp,
                "last_modified": document.metadata.last_modified or stamp,
                "status": "draft",
            }
        )
        return document.model_copy(update={"metadata": metadata})

    def update_flow(self, document: FlowDocument) -> FlowDocument:
        existing = self.get_flow(document.metadata.id)
        metadata = document.metadata.model_copy(
            update={
                "created_at": existing.metadata.created_at,
                "updated_at": isoformat_utc(self._clock()),
                "status": existing.metadata.status,
            }
        )
        stored = document.model_copy(update={"metadata": metadata})
        self._repository.save(stored)
        return stored

    def save_flow(self, document: FlowDocument) -> FlowDocument:
        if document.metadata.id and self._repository.get(document.metadata.id) is not None:
            return self.update_flow(document)
        return self.create_flow(document)

    def delete_flow(self, flow_id: str) -> None:
        if not self._repository.delete(flow_id):
            raise FlowNotFoundError(flow_id)

    def publish_flow(self, flow_id: str) -> FlowDocument:
        if not self._publish_enabled:
            raise PublishNotSupportedError("Publishing process flows is not enabled")
        existing = self.get_flow(flow_id)
        metadata = existing.metadata.model_copy(
            update={"status": "active", "updated_at": isoformat_utc(self._clock())}
        )
        published = existing.model_copy(update={"metadata": metadata})
        self._repository.save(published)
        logger.info("Published process flow %s", flow_id)
        return published
