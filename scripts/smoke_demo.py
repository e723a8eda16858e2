from __future__ import annotations

import argparse
import json
import time
import urllib.error
import urllib.request
from typing import Any


def fetch(url: str, payload: dict[str, Any] | None = None) -> tuple[int, bytes]:
    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    req = urllib.request.Request(url, data=data)
    if data is not None:
        req.add_header("Content-Type", "application/json")
    with urllib.request.urlopen(req, timeout=10) as resp:
        return resp.status, resp.read()


def wait_for(url: str, timeout: int) -> bytes:
    deadline = time.time() + timeout
    last_error: Exception | None = None
    while time.time() < deadline:
        try:
            status, body = fetch(url)
            if status == 200:
                return body
        except (urllib.error.URLError, OSError) as exc:
            last_error = exc
        time.sleep(1)
    raise RuntimeError(f"Timed out waiting for {url}: {last_error}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Smoke test for a running designer server.")
    parser.add_argument("--base", default="http://localhost:8000")
    parser.add_argument("--timeout", type=int, default=60)
    args = parser.parse_args()

    base = args.base.rstrip("/")
    wait_for(f"{base}/health", args.timeout)

    _, body = fetch(f"{base}/api/designer/new", {"processType": "project"})
    designer = json.loads(body.decode("utf-8"))
    graph = designer["graph"]
    if len(graph.get("nodes", [])) != 2:
        raise RuntimeError("New designer graph must hold start and end")

    connection_id = graph["connections"][0]["id"]
    _, body = fetch(
        f"{base}/api/designer/split-connection",
        {"graph": graph, "connectionId": connection_id, "templateId": "conditionBranch"},
    )
    graph = json.loads(body.decode("utf-8"))["graph"]
    if len(graph["nodes"]) != 6:
        raise RuntimeError("Branch insertion did not add four nodes")

    status, body = fetch(
        f"{base}/api/process-flows",
        {
            "nodes": graph["nodes"],
            "connections": graph["connections"],
            "metadata": {"name": "Smoke flow", "processType": "project"},
        },
    )
    if status != 201:
        raise RuntimeError(f"Saving the flow returned {status}")
    flow_id = json.loads(body.decode("utf-8"))["flow"]["metadata"]["id"]

    wait_for(f"{base}/api/process-flows/{flow_id}/svg", args.timeout)
    wait_for(f"{base}/flows/{flow_id}", args.timeout)

    print("Smoke test passed.")


if __name__ == "__main__":
    main()
