from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient

from app.config import AppSettings
from app.web_main import create_app
from domain.graph import initial_graph
from domain.services.serialize_flow import dump_graph
from tests.helpers.flow_fixtures import diamond_graph, flow_payload


def _client(app_settings: AppSettings) -> TestClient:
    return TestClient(create_app(app_settings))


def _post(client: TestClient, path: str, body: dict[str, Any]) -> dict[str, Any]:
    response = client.post(f"/api/designer/{path}", json=body)
    assert response.status_code == 200, response.text
    return response.json()


def test_new_designer_returns_initial_graph(app_settings: AppSettings) -> None:
    client = _client(app_settings)

    body = _post(client, "new", {"processType": "approval"})

    assert body["name"] == "新流程"
    assert body["processType"] == "approval"
    assert body["viewport"] == {"zoom": 0.8, "pan": {"x": 100.0, "y": 50.0}}
    nodes = {node["id"]: node for node in body["graph"]["nodes"]}
    assert set(nodes) == {"start", "end"}
    assert nodes["start"]["position"] == {"x": 400.0, "y": 100.0}
    assert nodes["end"]["isDeletable"] is False
    assert len(body["graph"]["connections"]) == 1


def test_new_designer_names_flow_after_business_flow(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    created = client.post("/api/business-flows", json={"name": "采购流程"}).json()["flow"]

    known = _post(client, "new", {"processType": "project", "businessFlowId": created["id"]})
    unknown = _post(client, "new", {"processType": "project", "businessFlowId": "bf-unknown"})

    assert known["name"] == "采购流程"
    assert unknown["name"] == "新流程 (业务流: bf-un...)"


def test_new_designer_opens_stored_flow(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    stored = client.post("/api/process-flows", json=flow_payload(diamond_graph(), name="Stored"))
    flow_id = stored.json()["flow"]["metadata"]["id"]

    body = _post(client, "new", {"flowId": flow_id})

    assert body["name"] == "Stored"
    assert body["flowId"] == flow_id
    assert len(body["graph"]["nodes"]) == 6
    assert client.post("/api/designer/new", json={"flowId": "flow_missing"}).status_code == 404


def test_split_connection_with_branch(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    graph = dump_graph(initial_graph())

    body = _post(
        client,
        "split-connection",
        {
            "graph": graph,
            "connectionId": graph["connections"][0]["id"],
            "templateId": "conditionBranch",
        },
    )

    assert len(body["graph"]["nodes"]) == 6
    assert len(body["graph"]["connections"]) == 6
    assert len(body["createdNodeIds"]) == 4
    labels = sorted(c["label"] for c in body["graph"]["connections"] if c.get("label"))
    assert labels == ["条件 A", "条件 B"]


def test_rejected_edits_return_graph_unchanged(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    graph = dump_graph(initial_graph())

    deleted = _post(client, "delete-node", {"graph": graph, "nodeId": "start"})
    split = _post(
        client,
        "split-connection",
        {"graph": graph, "connectionId": "missing", "templateId": "projectNode"},
    )

    assert deleted["graph"] == graph
    assert split["graph"] == graph
    assert split["createdNodeIds"] == []


def test_add_move_update_and_delete_node(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    graph = dump_graph(initial_graph())

    added = _post(
        client,
        "add-node",
        {"graph": graph, "templateId": "approvalNode", "position": {"x": 50, "y": 60}},
    )
    node_id = added["createdNodeIds"][0]
    moved = _post(
        client,
        "move-node",
        {"graph": added["graph"], "nodeId": node_id, "position": {"x": 700, "y": 120}},
    )
    node = next(n for n in moved["graph"]["nodes"] if n["id"] == node_id)
    assert node["position"] == {"x": 700.0, "y": 120.0}

    node["label"] = "Legal review"
    node["approvers"] = ["alice"]
    updated = _post(client, "update-node", {"graph": moved["graph"], "node": node})
    stored = next(n for n in updated["graph"]["nodes"] if n["id"] == node_id)
    assert stored["label"] == "Legal review"
    assert stored["approvers"] == ["alice"]

    removed = _post(client, "delete-node", {"graph": updated["graph"], "nodeId": node_id})
    assert {n["id"] for n in removed["graph"]["nodes"]} == {"start", "end"}


def test_update_and_delete_connection(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    graph = dump_graph(diamond_graph())
    connection = {"id": "c2", "source": "d", "target": "a", "label": "amount > 100"}

    updated = _post(client, "update-connection", {"graph": graph, "connection": connection})
    labels = {c["id"]: c.get("label") for c in updated["graph"]["connections"]}
    assert labels["c2"] == "amount > 100"

    removed = _post(client, "delete-connection", {"graph": graph, "connectionId": "c2"})
    assert "c2" not in {c["id"] for c in removed["graph"]["connections"]}


def test_delete_decision_cascades(app_settings: AppSettings) -> None:
    client = _client(app_settings)

    body = _post(client, "delete-node", {"graph": dump_graph(diamond_graph()), "nodeId": "d"})

    assert {n["id"] for n in body["graph"]["nodes"]} == {"start", "end"}
    assert body["graph"]["connections"] == []


def test_invalid_graph_payload_is_rejected(app_settings: AppSettings) -> None:
    client = _client(app_settings)
    graph = {"nodes": [{"id": "x", "type": "gateway"}], "connections": []}

    response = client.post("/api/designer/delete-node", json={"graph": graph, "nodeId": "x"})

    assert response.status_code == 400


def test_palette_lists_insertable_templates(app_settings: AppSettings) -> None:
    client = _client(app_settings)

    templates = client.get("/api/designer/palette").json()["templates"]

    assert [template["templateId"] for template in templates] == [
        "projectNode",
        "approvalNode",
        "conditionBranch",
    ]
    branch = templates[2]
    assert branch["nodeType"] is None
    assert branch["canSplit"] is True
    assert branch["canAdd"] is False
    assert templates[0]["label"] == "项目节点"
