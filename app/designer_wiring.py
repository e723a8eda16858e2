from __future__ import annotations

from adapters.filesystem.business_flow_repository import (
    FileSystemBusinessFlowRepository,
    RepositoryBusinessFlowLookup,
)
from adapters.filesystem.flow_repository import FileSystemFlowRepository
from adapters.filesystem.record_repository import FileSystemRecordRepository
from adapters.http.business_flow_client import HttpBusinessFlowLookup
from adapters.layout.flow_layout import FlowLayoutEngine
from app.config import AppSettings
from domain.ports.lookup import BusinessFlowLookup
from domain.ports.repositories import BusinessFlowRepository
from domain.records import AssistantItem, Project, Resource, Website
from domain.services.business_flow_tree import ManageBusinessFlows
from domain.services.edit_process_graph import ProcessGraphEditor
from domain.services.manage_flows import ManageProcessFlows
from domain.services.manage_records import ManageRecords


def build_layout(settings: AppSettings) -> FlowLayoutEngine:
    return FlowLayoutEngine(settings.designer.layout.to_layout_config())


def build_editor(settings: AppSettings) -> ProcessGraphEditor:
    return ProcessGraphEditor(build_layout(settings))


def build_flow_manager(settings: AppSettings) -> ManageProcessFlows:
    return ManageProcessFlows(
        FileSystemFlowRepository(settings.storage.process_flows_path),
        publish_enabled=settings.designer.publish_enabled,
    )


def build_business_flow_repository(settings: AppSettings) -> FileSystemBusinessFlowRepository:
    return FileSystemBusinessFlowRepository(settings.storage.business_flows_path)


def build_business_flow_manager(repository: BusinessFlowRepository) -> ManageBusinessFlows:
    return ManageBusinessFlows(repository)


def build_business_flow_lookup(
    settings: AppSettings, repository: BusinessFlowRepository
) -> BusinessFlowLookup:
    if settings.designer.lookup_base_url:
        return HttpBusinessFlowLookup(
            settings.designer.lookup_base_url,
            timeout_seconds=settings.designer.lookup_timeout_seconds,
        )
    return RepositoryBusinessFlowLookup(repository)


def build_project_manager(settings: AppSettings) -> ManageRecords[Project]:
    return ManageRecords(
        FileSystemRecordRepository(settings.storage.projects_path, Project),
        Project,
        id_prefix="proj-",
    )


def build_resource_manager(settings: AppSettings) -> ManageRecords[Resource]:
    return ManageRecords(
        FileSystemRecordRepository(settings.storage.resources_path, Resource),
        Resource,
        id_prefix="res-",
    )


def build_website_manager(settings: AppSettings) -> ManageRecords[Website]:
    return ManageRecords(
        FileSystemRecordRepository(settings.storage.websites_path, Website),
        Website,
        id_prefix="web-",
    )


def build_assistant_item_manager(settings: AppSettings) -> ManageRecords[AssistantItem]:
    return ManageRecords(
        FileSystemRecordRepository(settings.storage.assistant_items_path, AssistantItem),
        AssistantItem,
        id_prefix="ai-",
    )
