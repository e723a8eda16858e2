from __future__ import annotations

from pathlib import Path
from typing import cast, get_args

import orjson
import typer
from rich.console import Console
from rich.table import Table

from adapters.filesystem.json_utils import load_json
from adapters.svg.flow_svg import FlowSvgRenderer
from app.config import AppSettings, load_settings
from app.designer_wiring import build_flow_manager, build_layout
from domain.errors import FlowNotFoundError, InvalidFlowDocumentError, StoreReadError
from domain.graph import initial_graph
from domain.models import ProcessType
from domain.services.graph_checks import check_graph, has_errors
from domain.services.process_designer import DEFAULT_PROCESS_NAME
from domain.services.serialize_flow import (
    build_flow_document,
    dump_flow_document,
    load_flow_graph,
    parse_flow_document,
)

app = typer.Typer(no_args_is_help=True)
flows_app = typer.Typer(no_args_is_help=True)
app.add_typer(flows_app, name="flows")
console = Console()

PROCESS_TYPES = get_args(ProcessType)


def _settings(config: Path | None) -> AppSettings:
    try:
        return load_settings(config)
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc


@app.command("validate")
def validate(
    input_path: Path = typer.Argument(..., help="Flow document JSON file to validate."),
) -> None:
    if not input_path.exists():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)

    try:
        payload = load_json(input_path)
    except StoreReadError as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    try:
        if not isinstance(payload, dict):
            raise InvalidFlowDocumentError("Flow document must be a JSON object")
        document = parse_flow_document(payload)
    except InvalidFlowDocumentError as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        for error in exc.errors:
            location = ".".join(str(part) for part in error.get("loc", ()))
            console.print(f"  {location}: {error.get('msg', '')}")
        raise typer.Exit(code=1) from exc

    issues = check_graph(load_flow_graph(document))
    for issue in issues:
        color = "red" if issue.severity == "error" else "yellow"
        console.print(f"[{color}]{issue.severity}[/] {issue.code}: {issue.message}")
    if has_errors(issues):
        console.print(f"[red]Validation failed:[/] {input_path}")
        raise typer.Exit(code=1)
    console.print(f"[green]Valid flow document:[/] {input_path}")


@flows_app.command("list")
def list_flows(
    business_flow_id: str | None = typer.Option(None, help="Only flows of this business flow."),
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
) -> None:
    manager = build_flow_manager(_settings(config))
    try:
        flows = manager.list_flows(business_flow_id)
    except (InvalidFlowDocumentError, StoreReadError) as exc:
        console.print(f"[red]Cannot read process flows:[/] {exc}")
        raise typer.Exit(code=1) from exc
    if not flows:
        console.print("[yellow]No process flows found[/]")
        raise typer.Exit(code=0)

    table = Table("ID", "Name", "Type", "Status", "Nodes", "Last modified")
    for flow in flows:
        table.add_row(
            flow.metadata.id,
            flow.metadata.name,
            flow.metadata.process_type,
            flow.metadata.status,
            str(len(flow.nodes)),
            flow.metadata.last_modified,
        )
    console.print(table)


@flows_app.command("show")
def show_flow(
    flow_id: str = typer.Argument(..., help="Process flow id."),
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
) -> None:
    manager = build_flow_manager(_settings(config))
    try:
        document = manager.get_flow(flow_id)
    except (FlowNotFoundError, InvalidFlowDocumentError, StoreReadError) as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    console.print_json(orjson.dumps(dump_flow_document(document)).decode("utf-8"))


@flows_app.command("export-svg")
def export_svg(
    flow_id: str = typer.Argument(..., help="Process flow id."),
    output_path: Path = typer.Argument(..., help="SVG file to write."),
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
) -> None:
    settings = _settings(config)
    manager = build_flow_manager(settings)
    try:
        document = manager.get_flow(flow_id)
    except (FlowNotFoundError, InvalidFlowDocumentError, StoreReadError) as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    renderer = FlowSvgRenderer(build_layout(settings))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(renderer.render(load_flow_graph(document)), encoding="utf-8")
    console.print(f"[green]Wrote[/] {output_path}")


@flows_app.command("new")
def new_flow(
    process_type: str = typer.Option("project", "--type", help="project or approval."),
    name: str = typer.Option(DEFAULT_PROCESS_NAME, help="Process name."),
    business_flow_id: str | None = typer.Option(None, help="Owning business flow id."),
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
) -> None:
    if process_type not in PROCESS_TYPES:
        console.print(f"[red]Unknown process type:[/] {process_type}")
        raise typer.Exit(code=1)
    manager = build_flow_manager(_settings(config))
    document = build_flow_document(
        initial_graph(),
        name=name,
        description="",
        process_type=cast(ProcessType, process_type),
        business_flow_id=business_flow_id,
    )
    try:
        created = manager.create_flow(document)
    except (InvalidFlowDocumentError, StoreReadError) as exc:
        console.print(f"[red]Cannot read process flows:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Created[/] {created.metadata.id}")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
) -> None:
    import uvicorn

    uvicorn.run("app.web_main:app", host=host, port=port)


if __name__ == "__main__":
    app()
