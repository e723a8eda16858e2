from __future__ import annotations

import os
import random
from collections.abc import Callable, Generator
from itertools import count
from pathlib import Path

import pytest

from adapters.layout.flow_layout import FlowLayoutEngine
from app.config import AppSettings, DesignerSettings, StorageSettings
from domain.ids import IdFactory
from domain.services.edit_process_graph import ProcessGraphEditor


def _clear_pfd_env() -> None:
    for key in list(os.environ):
        if key.startswith("PFD_"):
            os.environ.pop(key, None)


_clear_pfd_env()


@pytest.fixture(autouse=True)
def clear_pfd_env() -> Generator[None, None, None]:
    _clear_pfd_env()
    yield
    _clear_pfd_env()


@pytest.fixture
def id_factory() -> IdFactory:
    counter = count(1)

    def _factory(prefix: str) -> str:
        return f"{prefix}{next(counter)}"

    return _factory


@pytest.fixture
def layout() -> FlowLayoutEngine:
    return FlowLayoutEngine(rng=random.Random(7))


@pytest.fixture
def editor(layout: FlowLayoutEngine, id_factory: IdFactory) -> ProcessGraphEditor:
    return ProcessGraphEditor(layout, id_factory)


@pytest.fixture
def storage_settings(tmp_path: Path) -> StorageSettings:
    return StorageSettings(data_dir=tmp_path / "data")


@pytest.fixture
def designer_settings() -> DesignerSettings:
    return DesignerSettings(title="Test Designer", publish_enabled=False)


@pytest.fixture
def designer_settings_factory(
    designer_settings: DesignerSettings,
) -> Callable[..., DesignerSettings]:
    def _factory(**overrides: object) -> DesignerSettings:
        return designer_settings.model_copy(update=overrides)

    return _factory


@pytest.fixture
def app_settings(
    storage_settings: StorageSettings, designer_settings: DesignerSettings
) -> AppSettings:
    return AppSettings(storage=storage_settings, designer=designer_settings)


@pytest.fixture
def app_settings_factory(
    storage_settings: StorageSettings,
    designer_settings_factory: Callable[..., DesignerSettings],
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(storage=storage_settings, designer=designer_settings_factory(**overrides))

    return _factory
