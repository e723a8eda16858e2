from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Generic, TypeVar

from adapters.filesystem.json_utils import load_json_list, locked, write_json_atomic
from domain.models import CamelModel

RecordT = TypeVar("RecordT", bound=CamelModel)


class FileSystemRecordRepository(Generic[RecordT]):
    """Flat JSON array of records, one file per record kind."""

    def __init__(self, path: Path, model: type[RecordT]) -> None:
        self.path = path
        self.model = model

    def list_all(self) -> list[RecordT]:
        return [
            self.model.model_validate(payload)
            for payload in load_json_list(self.path)
            if isinstance(payload, dict)
        ]

    def save_all(self, records: Sequence[RecordT]) -> None:
        with locked(self.path):
            self._write(records)

    def update(self, change: Callable[[list[RecordT]], list[RecordT]]) -> list[RecordT]:
        """Apply ``change`` to the stored records while holding the file lock."""
        with locked(self.path):
            records = change(self.list_all())
            self._write(records)
            return records

    def _write(self, records: Sequence[RecordT]) -> None:
        write_json_atomic(self.path, [record.to_payload() for record in records])
