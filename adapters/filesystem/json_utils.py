from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import orjson
from filelock import FileLock

from domain.errors import StoreReadError


def load_json(path: Path) -> Any:
    raw = path.read_bytes()
    if not raw.strip():
        return None
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        msg = f"Unreadable JSON in {path}"
        raise StoreReadError(msg) from exc


def load_json_list(path: Path) -> list[Any]:
    if not path.exists():
        return []
    data = load_json(path)
    if data is None:
        return []
    if not isinstance(data, list):
        msg = f"Expected a JSON list in {path}"
        raise StoreReadError(msg)
    return data


def dump_json_bytes(payload: Any) -> bytes:
    try:
        return orjson.dumps(payload, option=orjson.OPT_INDENT_2)
    except TypeError:
        return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_bytes(dump_json_bytes(payload))
    tmp_path.replace(path)


@contextmanager
def locked(path: Path) -> Iterator[None]:
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = path.with_suffix(f"{path.suffix}.lock")
    with FileLock(str(lock_path)):
        yield
