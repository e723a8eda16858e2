from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.flow_layout import LayoutConfig
from domain.models import Size

DEFAULT_CONFIG_PATH = Path("config/app.yaml")


class StorageSettings(BaseModel):
    data_dir: Path = Path("data")
    process_flows_file: str = "process-flows.json"
    business_flows_file: str = "business-flows.json"
    projects_file: str = "projects.json"
    resources_file: str = "resources.json"
    websites_file: str = "websites.json"
    assistant_items_file: str = "assistant-items.json"

    @property
    def process_flows_path(self) -> Path:
        return self.data_dir / self.process_flows_file

    @property
    def business_flows_path(self) -> Path:
        return self.data_dir / self.business_flows_file

    @property
    def projects_path(self) -> Path:
        return self.data_dir / self.projects_file

    @property
    def resources_path(self) -> Path:
        return self.data_dir / self.resources_file

    @property
    def websites_path(self) -> Path:
        return self.data_dir / self.websites_file

    @property
    def assistant_items_path(self) -> Path:
        return self.data_dir / self.assistant_items_file


class LayoutSettings(BaseModel):
    node_width: float = Field(default=180.0, gt=0)
    node_height: float = Field(default=70.0, gt=0)
    vertical_spacing: float = Field(default=100.0, ge=0)
    branch_spacing: float = Field(default=200.0, ge=0)

    def to_layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            node_size=Size(self.node_width, self.node_height),
            vertical_spacing=self.vertical_spacing,
            branch_spacing=self.branch_spacing,
        )


class DesignerSettings(BaseModel):
    title: str = "Process Designer"
    publish_enabled: bool = False
    lookup_base_url: str | None = None
    lookup_timeout_seconds: float = Field(default=5.0, gt=0)
    layout: LayoutSettings = LayoutSettings()

    @field_validator("lookup_base_url", mode="before")
    @classmethod
    def normalize_lookup_base_url(cls, value: object) -> str | None:
        raw = str(value or "").strip()
        if not raw:
            return None
        if not is_absolute_url(raw):
            msg = "designer.lookup_base_url must be an absolute http(s) URL"
            raise ValueError(msg)
        return raw.rstrip("/")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PFD_", env_nested_delimiter="__")

    storage: StorageSettings = StorageSettings()
    designer: DesignerSettings = DesignerSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("PFD_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous


def is_absolute_url(value: str) -> bool:
    raw = str(value or "").strip()
    if not raw:
        return False
    parsed = urlparse(raw)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)
