from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, ORJSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import Field, ValidationError

from adapters.layout.flow_layout import FlowLayoutEngine
from adapters.svg.flow_svg import FlowSvgRenderer
from app.config import AppSettings, load_settings
from app.designer_wiring import (
    build_assistant_item_manager,
    build_business_flow_lookup,
    build_business_flow_manager,
    build_business_flow_repository,
    build_editor,
    build_flow_manager,
    build_project_manager,
    build_resource_manager,
    build_website_manager,
)
from domain.errors import (
    FlowNotFoundError,
    InvalidFlowDocumentError,
    PublishNotSupportedError,
    RecordNotFoundError,
    StoreReadError,
)
from domain.graph import ProcessGraph
from domain.models import (
    CamelModel,
    FlowDocument,
    Position,
    ProcessConnection,
    ProcessNode,
    ProcessType,
)
from domain.node_templates import (
    ADDABLE_TEMPLATE_IDS,
    SPLIT_TEMPLATE_IDS,
    NodeTemplate,
    palette_templates,
)
from domain.ports.lookup import BusinessFlowLookup
from domain.records import AssistantItem, BusinessFlowDraft, Project, Resource, Website
from domain.services.business_flow_tree import ManageBusinessFlows, count_business_flows
from domain.services.edit_process_graph import EditResult, ProcessGraphEditor
from domain.services.graph_checks import GraphIssue, check_graph, has_errors
from domain.services.manage_flows import ManageProcessFlows
from domain.services.manage_records import ManageRecords
from domain.services.process_designer import ProcessDesigner
from domain.services.serialize_flow import (
    dump_flow_document,
    dump_graph,
    load_flow_graph,
    parse_flow_document,
    parse_graph,
)

TEMPLATES_DIR = Path(__file__).parent / "web" / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesignerContext:
    settings: AppSettings
    flows: ManageProcessFlows
    business_flows: ManageBusinessFlows
    lookup: BusinessFlowLookup
    projects: ManageRecords[Project]
    resources: ManageRecords[Resource]
    websites: ManageRecords[Website]
    assistant_items: ManageRecords[AssistantItem]
    editor: ProcessGraphEditor
    renderer: FlowSvgRenderer


class GraphRequest(CamelModel):
    graph: dict[str, Any] = Field(default_factory=dict)


class NewDesignerRequest(CamelModel):
    process_type: ProcessType = "project"
    business_flow_id: str | None = None
    flow_id: str | None = None


class SplitConnectionRequest(GraphRequest):
    connection_id: str
    template_id: str


class AddNodeRequest(GraphRequest):
    template_id: str
    position: Position = Field(default_factory=Position)


class NodeIdRequest(GraphRequest):
    node_id: str


class ConnectionIdRequest(GraphRequest):
    connection_id: str


class UpdateNodeRequest(GraphRequest):
    node: ProcessNode


class UpdateConnectionRequest(GraphRequest):
    connection: ProcessConnection


class MoveNodeRequest(GraphRequest):
    node_id: str
    position: Position


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title=settings.designer.title)

    business_flow_repo = build_business_flow_repository(settings)
    editor = build_editor(settings)
    context = DesignerContext(
        settings=settings,
        flows=build_flow_manager(settings),
        business_flows=build_business_flow_manager(business_flow_repo),
        lookup=build_business_flow_lookup(settings, business_flow_repo),
        projects=build_project_manager(settings),
        resources=build_resource_manager(settings),
        websites=build_website_manager(settings),
        assistant_items=build_assistant_item_manager(settings),
        editor=editor,
        renderer=FlowSvgRenderer(cast(FlowLayoutEngine, editor.layout)),
    )
    app.state.context = context

    @app.get("/")
    def index() -> RedirectResponse:
        return RedirectResponse(url="/flows")

    @app.get("/health")
    def health() -> ORJSONResponse:
        return ORJSONResponse({"status": "ok"})

    @app.get("/flows", response_class=HTMLResponse)
    def flows_view(
        request: Request,
        business_flow_id: str | None = Query(default=None, alias="businessFlowId"),
        context: DesignerContext = Depends(get_context),
    ) -> HTMLResponse:
        flows = load_flows(context, business_flow_id)
        return templates.TemplateResponse(
            request,
            "flows.html",
            {
                "settings": context.settings,
                "flows": flows,
                "business_flow_id": business_flow_id or "",
            },
        )

    @app.get("/flows/{flow_id}", response_class=HTMLResponse)
    def flow_view(
        request: Request,
        flow_id: str,
        context: DesignerContext = Depends(get_context),
    ) -> HTMLResponse:
        flow = get_flow_or_404(context, flow_id)
        graph = load_flow_graph(flow)
        return templates.TemplateResponse(
            request,
            "flow_detail.html",
            {
                "settings": context.settings,
                "flow": flow,
                "svg": context.renderer.render(graph),
                "issues": check_graph(graph),
            },
        )

    @app.get("/api/process-flows")
    def api_get_process_flows(
        flow_id: str | None = Query(default=None, alias="flowId"),
        business_flow_id: str | None = Query(default=None, alias="businessFlowId"),
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        if flow_id:
            return ORJSONResponse(dump_flow_document(get_flow_or_404(context, flow_id)))
        flows = load_flows(context, business_flow_id)
        return ORJSONResponse({"flows": [dump_flow_document(flow) for flow in flows]})

    @app.post("/api/process-flows")
    def api_create_process_flow(
        payload: dict[str, Any] = Body(...),
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        metadata = payload.get("metadata")
        if not isinstance(metadata, dict):
            raise HTTPException(status_code=400, detail="Process metadata is required")
        if not metadata.get("name") or not metadata.get("processType"):
            raise HTTPException(status_code=400, detail="Process name and type are required")
        document = parse_document_or_400(payload)
        ensure_storable(document)
        created = context.flows.create_flow(document)
        return ORJSONResponse(
            {"success": True, "flow": dump_flow_document(created)}, status_code=201
        )

    @app.put("/api/process-flows")
    def api_update_process_flow(
        payload: dict[str, Any] = Body(...),
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        metadata = payload.get("metadata")
        if not isinstance(metadata, dict) or not metadata.get("id"):
            raise HTTPException(status_code=400, detail="Process flow ID is required")
        document = parse_document_or_400(payload)
        ensure_storable(document)
        try:
            updated = context.flows.update_flow(document)
        except FlowNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return ORJSONResponse({"success": True, "flow": dump_flow_document(updated)})

    @app.delete("/api/process-flows")
    def api_delete_process_flow(
        flow_id: str | None = Query(default=None, alias="flowId"),
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        if not flow_id:
            raise HTTPException(status_code=400, detail="Process flow ID is required")
        try:
            context.flows.delete_flow(flow_id)
        except FlowNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return ORJSONResponse({"success": True})

    @app.post("/api/process-flows/{flow_id}/publish")
    def api_publish_process_flow(
        flow_id: str,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        try:
            published = context.flows.publish_flow(flow_id)
        except PublishNotSupportedError as exc:
            raise HTTPException(status_code=501, detail=str(exc)) from exc
        except FlowNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return ORJSONResponse({"success": True, "flow": dump_flow_document(published)})

    @app.get("/api/process-flows/{flow_id}/svg")
    def api_process_flow_svg(
        flow_id: str,
        context: DesignerContext = Depends(get_context),
    ) -> Response:
        flow = get_flow_or_404(context, flow_id)
        svg = context.renderer.render(load_flow_graph(flow))
        return Response(content=svg, media_type="image/svg+xml")

    @app.get("/api/designer/palette")
    def api_designer_palette() -> ORJSONResponse:
        return ORJSONResponse(
            {"templates": [palette_entry(template) for template in palette_templates()]}
        )

    @app.post("/api/designer/new")
    async def api_designer_new(
        request: NewDesignerRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        designer = open_designer(context, request)
        name = await designer.load_default_name(context.lookup)
        return ORJSONResponse(
            {
                "name": name,
                "processType": designer.process_type,
                "flowId": designer.flow_id,
                "businessFlowId": designer.business_flow_id,
                "viewport": {
                    "zoom": designer.viewport.zoom,
                    "pan": {"x": designer.viewport.pan.x, "y": designer.viewport.pan.y},
                },
                "graph": dump_graph(designer.graph),
            }
        )

    @app.post("/api/designer/split-connection")
    def api_split_connection(
        request: SplitConnectionRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        result = context.editor.split_connection(graph, request.connection_id, request.template_id)
        return edit_response(result)

    @app.post("/api/designer/add-node")
    def api_add_node(
        request: AddNodeRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        result = context.editor.add_node(graph, request.template_id, request.position)
        return edit_response(result)

    @app.post("/api/designer/delete-node")
    def api_delete_node(
        request: NodeIdRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        return graph_response(context.editor.delete_node(graph, request.node_id))

    @app.post("/api/designer/delete-connection")
    def api_delete_connection(
        request: ConnectionIdRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        return graph_response(context.editor.delete_connection(graph, request.connection_id))

    @app.post("/api/designer/update-node")
    def api_update_node(
        request: UpdateNodeRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        return graph_response(context.editor.update_node(graph, request.node))

    @app.post("/api/designer/update-connection")
    def api_update_connection(
        request: UpdateConnectionRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        return graph_response(context.editor.update_connection(graph, request.connection))

    @app.post("/api/designer/move-node")
    def api_move_node(
        request: MoveNodeRequest,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        graph = parse_graph_or_400(request.graph)
        return graph_response(context.editor.move_node(graph, request.node_id, request.position))

    @app.get("/api/business-flows")
    def api_list_business_flows(
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        tree = context.business_flows.list_tree()
        return ORJSONResponse({"businessFlows": [flow.to_payload() for flow in tree]})

    @app.get("/api/business-flows/{business_flow_id}")
    def api_get_business_flow(
        business_flow_id: str,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        business_flow = context.business_flows.get(business_flow_id)
        if business_flow is None:
            raise HTTPException(status_code=404, detail="Business flow not found")
        return ORJSONResponse(business_flow.to_payload())

    @app.post("/api/business-flows")
    def api_create_business_flow(
        draft: BusinessFlowDraft,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        created = context.business_flows.create(draft)
        return ORJSONResponse({"success": True, "flow": created.to_payload()}, status_code=201)

    @app.exception_handler(StoreReadError)
    async def store_read_error(request: Request, exc: StoreReadError) -> ORJSONResponse:
        logger.error("Data store is unreadable: %s", exc)
        return ORJSONResponse({"detail": str(exc)}, status_code=500)

    register_record_routes(app, "projects", lambda context: context.projects)
    register_record_routes(app, "resources", lambda context: context.resources)
    register_record_routes(app, "websites", lambda context: context.websites)
    register_record_routes(
        app, "assistant", lambda context: context.assistant_items, collection="items"
    )

    @app.get("/api/dashboard")
    def api_dashboard(
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        return ORJSONResponse(
            {
                "stats": {
                    "businessFlows": count_business_flows(context.business_flows.list_tree()),
                    "projects": len(context.projects.list_records()),
                    "resources": len(context.resources.list_records()),
                    "websites": len(context.websites.list_records()),
                    "processFlows": len(load_flows(context, None)),
                }
            }
        )

    return app


def register_record_routes(
    app: FastAPI,
    name: str,
    select: Callable[[DesignerContext], ManageRecords[Any]],
    *,
    collection: str | None = None,
) -> None:
    key = collection or name

    @app.get(f"/api/{name}", name=f"list_{name}")
    def list_records(context: DesignerContext = Depends(get_context)) -> ORJSONResponse:
        manager = select(context)
        return ORJSONResponse({key: [record.to_payload() for record in manager.list_records()]})

    @app.post(f"/api/{name}", name=f"create_{name}")
    def create_record(
        payload: dict[str, Any] = Body(...),
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = select(context)
        try:
            record = manager.create(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400, detail=exc.errors(include_url=False, include_context=False)
            ) from exc
        return ORJSONResponse(record.to_payload(), status_code=201)

    @app.put(f"/api/{name}/{{record_id}}", name=f"update_{name}")
    def update_record(
        record_id: str,
        payload: dict[str, Any] = Body(...),
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = select(context)
        try:
            record = manager.update(record_id, payload)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Record not found") from exc
        except ValidationError as exc:
            raise HTTPException(
                status_code=400, detail=exc.errors(include_url=False, include_context=False)
            ) from exc
        return ORJSONResponse(record.to_payload())

    @app.delete(f"/api/{name}/{{record_id}}", name=f"delete_{name}")
    def delete_record(
        record_id: str,
        context: DesignerContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = select(context)
        try:
            manager.delete(record_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Record not found") from exc
        return ORJSONResponse({"success": True})


def get_context(request: Request) -> DesignerContext:
    return cast(DesignerContext, request.app.state.context)


def load_flows(context: DesignerContext, business_flow_id: str | None) -> list[FlowDocument]:
    try:
        return context.flows.list_flows(business_flow_id)
    except InvalidFlowDocumentError as exc:
        logger.exception("Process flow store is unreadable.")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def get_flow_or_404(context: DesignerContext, flow_id: str) -> FlowDocument:
    try:
        return context.flows.get_flow(flow_id)
    except FlowNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def parse_document_or_400(payload: dict[str, Any]) -> FlowDocument:
    try:
        return parse_flow_document(payload)
    except InvalidFlowDocumentError as exc:
        raise HTTPException(status_code=400, detail=exc.errors or str(exc)) from exc


def parse_graph_or_400(payload: dict[str, Any]) -> ProcessGraph:
    try:
        return parse_graph(payload)
    except InvalidFlowDocumentError as exc:
        raise HTTPException(status_code=400, detail=exc.errors or str(exc)) from exc


def ensure_storable(document: FlowDocument) -> None:
    issues = check_graph(load_flow_graph(document))
    if has_errors(issues):
        raise HTTPException(status_code=400, detail=[issue_payload(issue) for issue in issues])


def issue_payload(issue: GraphIssue) -> dict[str, Any]:
    return {
        "severity": issue.severity,
        "code": issue.code,
        "message": issue.message,
        "subjectId": issue.subject_id,
    }


def open_designer(context: DesignerContext, request: NewDesignerRequest) -> ProcessDesigner:
    if request.flow_id:
        stored = get_flow_or_404(context, request.flow_id)
        return ProcessDesigner.from_document(stored, context.editor, context.flows.save_flow)
    return ProcessDesigner(
        request.process_type,
        context.editor,
        context.flows.save_flow,
        business_flow_id=request.business_flow_id,
    )


def palette_entry(template: NodeTemplate) -> dict[str, Any]:
    return {
        "templateId": template.template_id,
        "label": template.label,
        "color": template.color,
        "nodeType": template.node_type,
        "canAdd": template.template_id in ADDABLE_TEMPLATE_IDS,
        "canSplit": template.template_id in SPLIT_TEMPLATE_IDS,
    }


def graph_response(graph: ProcessGraph) -> ORJSONResponse:
    return ORJSONResponse({"graph": dump_graph(graph)})


def edit_response(result: EditResult) -> ORJSONResponse:
    return ORJSONResponse(
        {
            "graph": dump_graph(result.graph),
            "createdNodeIds": list(result.created_node_ids),
            "createdConnectionIds": list(result.created_connection_ids),
        }
    )


app = create_app(load_settings())
