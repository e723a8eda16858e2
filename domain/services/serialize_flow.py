from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from domain.errors import InvalidFlowDocumentError
from domain.graph import ProcessGraph
from domain.ids import epoch_millis
from domain.models import FlowDocument, FlowMetadata, ProcessType


def mint_flow_id(now: datetime | None = None) -> str:
    moment = now or datetime.now(tz=UTC)
    return f"flow_{epoch_millis(moment.timestamp)}"


def isoformat_utc(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_flow_document(
    graph: ProcessGraph,
    *,
    name: str,
    description: str,
    process_type: ProcessType,
    business_flow_id: str | None = None,
    flow_id: str | None = None,
    now: datetime | None = None,
) -> FlowDocument:
    moment = now or datetime.now(tz=UTC)
    metadata = FlowMetadata(
        name=name,
        description=description,
        process_type=process_type,
        business_flow_id=business_flow_id or None,
        id=flow_id or mint_flow_id(moment),
        last_modified=isoformat_utc(moment),
    )
    return FlowDocument(
        nodes=[node.model_copy(deep=True) for node in graph.nodes],
        connections=[connection.model_copy(deep=True) for connection in graph.connections],
        metadata=metadata,
    )


def load_flow_graph(document: FlowDocument) -> ProcessGraph:
    return ProcessGraph.of(
        [node.model_copy(deep=True) for node in document.nodes],
        [connection.model_copy(deep=True) for connection in document.connections],
    )


def dump_flow_document(document: FlowDocument) -> dict[str, Any]:
    return document.to_payload()


def parse_flow_document(payload: Mapping[str, Any]) -> FlowDocument:
    try:
        return FlowDocument.model_validate(dict(payload))
    except ValidationError as exc:
        msg = f"Invalid flow document: {exc.error_count()} validation error(s)"
        errors = exc.errors(include_url=False, include_context=False)
        raise InvalidFlowDocumentError(msg, errors=errors) from exc


def parse_graph(payload: Mapping[str, Any]) -> ProcessGraph:
    document = parse_flow_document(
        {"nodes": payload.get("nodes", []), "connections": payload.get("connections", [])}
    )
    return load_flow_graph(document)


def dump_graph(graph: ProcessGraph) -> dict[str, Any]:
    return {
        "nodes": [node.to_payload() for node in graph.nodes],
        "connections": [connection.to_payload() for connection in graph.connections],
    }
