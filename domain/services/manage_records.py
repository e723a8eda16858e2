from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from domain.errors import RecordNotFoundError
from domain.ids import IdFactory, generate_id
from domain.models import CamelModel
from domain.ports.repositories import RecordRepository

RecordT = TypeVar("RecordT", bound=CamelModel)


class ManageRecords(Generic[RecordT]):
    def __init__(
        self,
        repository: RecordRepository[RecordT],
        model: type[RecordT],
        *,
        id_prefix: str,
        id_factory: IdFactory = generate_id,
    ) -> None:
        self._repository = repository
        self._model = model
        self._id_prefix = id_prefix
        self._new_id = id_factory

    def list_records(self) -> list[RecordT]:
        return self._repository.list_all()

    def create(self, payload: Mapping[str, Any]) -> RecordT:
        data = {key: value for key, value in payload.items() if key != "id"}
        record = self._model.model_validate({**data, "id": self._new_id(self._id_prefix)})
        self._repository.update(lambda records: [*records, record])
        return record

    def update(self, record_id: str, changes: Mapping[str, Any]) -> RecordT:
        updated: list[RecordT] = []

        def _apply(records: list[RecordT]) -> list[RecordT]:
            for index, record in enumerate(records):
                if getattr(record, "id", None) != record_id:
                    continue
                merged = {**record.to_payload(), **dict(changes), "id": record_id}
                updated.append(self._model.model_validate(merged))
                return [*records[:index], updated[0], *records[index + 1 :]]
            raise RecordNotFoundError(record_id)

        self._repository.update(_apply)
        return updated[0]

    def delete(self, record_id: str) -> None:
        def _apply(records: list[RecordT]) -> list[RecordT]:
            kept = [record for record in records if getattr(record, "id", None) != record_id]
            if len(kept) == len(records):
                raise RecordNotFoundError(record_id)
            return kept

        self._repository.update(_apply)
