from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from domain.models import NodeType

TemplateId = Literal[
    "start",
    "end",
    "projectNode",
    "approvalNode",
    "conditionBranch",
    "decision",
    "merge",
]
SplitTemplateId = Literal["projectNode", "approvalNode", "conditionBranch"]

CONDITION_BRANCH = "conditionBranch"
BRANCH_LABELS = ("条件 A", "条件 B")
BRANCH_NODE_LABELS = ("分支 A", "分支 B")


@dataclass(frozen=True)
class NodeTemplate:
    template_id: str
    label: str
    color: str
    node_type: NodeType | None  # None for the branch trigger, which expands into several nodes
    is_deletable: bool = True
    is_editable: bool = True
    in_palette: bool = True


NODE_TEMPLATES: tuple[NodeTemplate, ...] = (
    NodeTemplate("start", "开始节点", "bg-blue-400", "start", False, False, in_palette=False),
    NodeTemplate("end", "结束节点", "bg-blue-400", "end", False, False, in_palette=False),
    NodeTemplate("projectNode", "项目节点", "bg-blue-600", "task"),
    NodeTemplate("approvalNode", "审批节点", "bg-red-600", "approval"),
    NodeTemplate(CONDITION_BRANCH, "条件分支", "bg-purple-600", None),
    NodeTemplate("decision", "条件判断", "bg-purple-400", "decision", in_palette=False),
    NodeTemplate("merge", "合并点", "bg-purple-400", "merge", in_palette=False),
)

_BY_ID: dict[str, NodeTemplate] = {template.template_id: template for template in NODE_TEMPLATES}
_BY_TYPE: dict[str, NodeTemplate] = {
    template.node_type: template for template in NODE_TEMPLATES if template.node_type is not None
}

# Templates a single node can be created from at a staged canvas position.
ADDABLE_TEMPLATE_IDS = frozenset({"projectNode", "approvalNode", "decision", "merge"})
SPLIT_TEMPLATE_IDS = frozenset({"projectNode", "approvalNode", CONDITION_BRANCH})


def get_template(template_id: str) -> NodeTemplate | None:
    return _BY_ID.get(str(template_id or "").strip())


def template_for_type(node_type: str) -> NodeTemplate | None:
    return _BY_TYPE.get(node_type)


def color_for_type(node_type: str) -> str | None:
    template = template_for_type(node_type)
    return template.color if template else None


def palette_templates() -> list[NodeTemplate]:
    return [template for template in NODE_TEMPLATES if template.in_palette]
