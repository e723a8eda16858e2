from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

NodeType = Literal["start", "end", "task", "approval", "decision", "merge"]
ProcessType = Literal["project", "approval"]
ApprovalType = Literal["single", "all", "sequential", "majority"]
NodeStatus = Literal["pending", "completed", "rejected"]
FlowStatus = Literal["draft", "active"]

START_NODE_ID = "start"
END_NODE_ID = "end"
FIXED_NODE_TYPES = frozenset({"start", "end"})

# Palette ids written into the type field by older clients.
_LEGACY_NODE_TYPES: dict[str, str] = {
    "projectNode": "task",
    "approvalNode": "approval",
}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


class Position(CamelModel):
    x: float = 0.0
    y: float = 0.0

    def shifted(self, dx: float = 0.0, dy: float = 0.0) -> Position:
        return Position(x=self.x + dx, y=self.y + dy)


class ReminderRule(CamelModel):
    days_before: int = Field(..., ge=0)
    repeat: bool = False


class EscalationRule(CamelModel):
    after_days: int = Field(..., ge=0)
    escalate_to: Optional[str] = None
    auto_action: Optional[Literal["approve", "reject"]] = None


class ProjectResourceLink(CamelModel):
    name: str
    link: str = ""


class ProcessNode(CamelModel):
    id: str = Field(..., min_length=1)
    type: NodeType
    label: str = ""
    description: str = ""
    position: Position = Field(default_factory=Position)
    color: Optional[str] = None
    is_deletable: bool = True
    is_editable: bool = True
    assignee: Optional[str] = None
    status: Optional[NodeStatus] = None

    approval_type: Optional[ApprovalType] = None
    approvers: Optional[List[str]] = None
    approval_order: Optional[List[str]] = None
    due_date: Optional[str] = None
    reminder_rules: Optional[List[ReminderRule]] = None
    escalation_rules: Optional[EscalationRule] = None
    require_comments_for_rejection: Optional[bool] = None
    allow_comments_for_approval: Optional[bool] = None

    project_lead: Optional[str] = None
    tasks: Optional[str] = None
    overall_due_date: Optional[str] = None
    project_resources: Optional[List[ProjectResourceLink]] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_legacy_type(cls, value: object) -> object:
        if isinstance(value, str):
            return _LEGACY_NODE_TYPES.get(value, value)
        return value

    @field_validator("approvers", "approval_order", mode="before")
    @classmethod
    def split_people(cls, value: object) -> object:
        if isinstance(value, str):
            return [token.strip() for token in value.split(",") if token.strip()]
        return value

    @model_validator(mode="after")
    def lock_fixed_nodes(self) -> ProcessNode:
        if self.type in FIXED_NODE_TYPES:
            self.is_deletable = False
            self.is_editable = False
        return self

    @property
    def is_fixed(self) -> bool:
        return self.type in FIXED_NODE_TYPES


class ProcessConnection(CamelModel):
    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    label: Optional[str] = None
    condition: Optional[str] = None


class FlowMetadata(CamelModel):
    name: str = ""
    description: str = ""
    process_type: ProcessType = "project"
    business_flow_id: Optional[str] = None
    id: str = ""
    last_modified: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    status: FlowStatus = "draft"


class FlowDocument(CamelModel):
    nodes: List[ProcessNode] = Field(default_factory=list)
    connections: List[ProcessConnection] = Field(default_factory=list)
    metadata: FlowMetadata = Field(default_factory=FlowMetadata)

    @field_validator("nodes", mode="after")
    @classmethod
    def ensure_unique_node_ids(cls, nodes: List[ProcessNode]) -> List[ProcessNode]:
        seen: set[str] = set()
        for node in nodes:
            if node.id in seen:
                msg = f"Duplicate node id found: {node.id}"
                raise ValueError(msg)
            seen.add(node.id)
        return nodes

    @property
    def flow_id(self) -> str:
        return self.metadata.id
