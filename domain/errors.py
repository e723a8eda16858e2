from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class FlowNotFoundError(KeyError):
    def __init__(self, flow_id: str) -> None:
        super().__init__(flow_id)
        self.flow_id = flow_id

    def __str__(self) -> str:
        return f"Process flow not found: {self.flow_id}"


class PublishNotSupportedError(RuntimeError):
    pass


class InvalidFlowDocumentError(ValueError):
    def __init__(self, message: str, errors: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


class LookupFailedError(RuntimeError):
    pass


class RecordNotFoundError(KeyError):
    pass


class StoreReadError(ValueError):
    """A data file exists but does not hold a readable JSON list."""
