from __future__ import annotations

from pathlib import Path

from adapters.filesystem.json_utils import load_json_list, locked, write_json_atomic
from domain.models import FlowDocument
from domain.ports.repositories import FlowRepository
from domain.services.serialize_flow import dump_flow_document, parse_flow_document


class FileSystemFlowRepository(FlowRepository):
    def __init__(self, path: Path) -> None:
        self.path = path

    def list_all(self) -> list[FlowDocument]:
        return [
            parse_flow_document(payload)
            for payload in load_json_list(self.path)
            if isinstance(payload, dict)
        ]

    def get(self, flow_id: str) -> FlowDocument | None:
        for document in self.list_all():
            if document.metadata.id == flow_id:
                return document
        return None

    def save(self, document: FlowDocument) -> None:
        with locked(self.path):
            documents = self.list_all()
            payload: list[dict] = []
            replaced = False
            for existing in documents:
                if existing.metadata.id == document.metadata.id:
                    payload.append(dump_flow_document(document))
                    replaced = True
                else:
                    payload.append(dump_flow_document(existing))
            if not replaced:
                payload.append(dump_flow_document(document))
            write_json_atomic(self.path, payload)

    def add(self, document: FlowDocument) -> bool:
        with locked(self.path):
            documents = self.list_all()
            if any(existing.metadata.id == document.metadata.id for existing in documents):
                return False
            payload = [dump_flow_document(existing) for existing in documents]
            write_json_atomic(self.path, [*payload, dump_flow_document(document)])
            return True

    def delete(self, flow_id: str) -> bool:
        with locked(self.path):
            documents = self.list_all()
            kept = [document for document in documents if document.metadata.id != flow_id]
            if len(kept) == len(documents):
                return False
            write_json_atomic(self.path, [dump_flow_document(document) for document in kept])
            return True
