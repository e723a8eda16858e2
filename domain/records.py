from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from domain.models import CamelModel

ProjectStatus = Literal["active", "completed", "pending"]
ResourceStatus = Literal["active", "deprecated", "pending"]


class BusinessFlow(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    detail_page_id: str = ""
    parent_id: Optional[str] = None
    projects: int = 0
    resources: int = 0
    last_accessed: str = ""
    children: List[BusinessFlow] = Field(default_factory=list)


class BusinessFlowDraft(CamelModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    parent_id: Optional[str] = None


class Project(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    type: str = ""
    status: ProjectStatus = "pending"
    department: str = ""
    owner: str = ""
    start_date: str = ""
    end_date: Optional[str] = None


class Resource(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    type: str = ""
    category: str = ""
    status: ResourceStatus = "active"
    owner: str = ""
    last_updated: str = ""
    expiry_date: str = ""


class Website(CamelModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    category: str = ""
    subcategory: Optional[str] = None
    description: str = ""


class AssistantItem(CamelModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: str = ""
    subcategory: Optional[str] = None
    url: str = ""
    description: str = ""
