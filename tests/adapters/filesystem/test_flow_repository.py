from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from adapters.filesystem.flow_repository import FileSystemFlowRepository
from adapters.filesystem.json_utils import load_json_list
from domain.errors import StoreReadError
from domain.graph import initial_graph
from domain.models import FlowDocument
from domain.services.serialize_flow import build_flow_document


def _document(flow_id: str, name: str = "Flow") -> FlowDocument:
    return build_flow_document(
        initial_graph(),
        name=name,
        description="",
        process_type="project",
        flow_id=flow_id,
    )


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    repository = FileSystemFlowRepository(tmp_path / "process-flows.json")

    assert repository.list_all() == []
    assert repository.get("flow_1") is None


def test_save_upserts_and_writes_camel_case_json(tmp_path: Path) -> None:
    path = tmp_path / "data" / "process-flows.json"
    repository = FileSystemFlowRepository(path)

    repository.save(_document("flow_1", "First"))
    repository.save(_document("flow_2", "Second"))
    repository.save(_document("flow_1", "First, renamed"))

    raw = orjson.loads(path.read_bytes())
    assert [item["metadata"]["id"] for item in raw] == ["flow_1", "flow_2"]
    assert raw[0]["metadata"]["name"] == "First, renamed"
    assert raw[0]["metadata"]["processType"] == "project"
    assert not path.with_suffix(".json.tmp").exists()
    stored = repository.get("flow_1")
    assert stored is not None and stored.metadata.name == "First, renamed"


def test_delete_reports_whether_anything_was_removed(tmp_path: Path) -> None:
    repository = FileSystemFlowRepository(tmp_path / "process-flows.json")
    repository.save(_document("flow_1"))

    assert repository.delete("flow_1") is True
    assert repository.delete("flow_1") is False
    assert repository.list_all() == []


def test_unreadable_file_is_not_silently_replaced(tmp_path: Path) -> None:
    path = tmp_path / "process-flows.json"
    path.write_text("{not json", encoding="utf-8")
    repository = FileSystemFlowRepository(path)

    with pytest.raises(StoreReadError):
        repository.list_all()
    with pytest.raises(StoreReadError):
        repository.save(_document("flow_1"))

    assert path.read_text(encoding="utf-8") == "{not json"


def test_empty_file_reads_as_empty_list(tmp_path: Path) -> None:
    path = tmp_path / "process-flows.json"
    path.write_text("  \n", encoding="utf-8")

    assert load_json_list(path) == []


@pytest.mark.parametrize("content", ['{"flows": []}', '"flow_1"', "42"])
def test_non_list_file_is_not_silently_replaced(tmp_path: Path, content: str) -> None:
    path = tmp_path / "process-flows.json"
    path.write_text(content, encoding="utf-8")
    repository = FileSystemFlowRepository(path)

    with pytest.raises(StoreReadError):
        repository.list_all()
    with pytest.raises(StoreReadError):
        repository.add(_document("flow_1"))

    assert path.read_text(encoding="utf-8") == content


def test_add_refuses_taken_id(tmp_path: Path) -> None:
    repository = FileSystemFlowRepository(tmp_path / "process-flows.json")

    assert repository.add(_document("flow_1", "First")) is True
    assert repository.add(_document("flow_1", "Second")) is False

    stored = repository.get("flow_1")
    assert stored is not None and stored.metadata.name == "First"
    assert len(repository.list_all()) == 1
