from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from disposables.core.bus import Bus
from disposables.core.config import ConfigManager
from disposables.core.global_paths import GlobalPath
from disposables.lifecycle import Owners, VisibilityCoordinator, VisibilityEnvironment
from disposables.util.log import Log, LogFormat, LogLevel


@pytest.fixture(autouse=True)
def bus_context() -> Iterator[None]:
    token = Bus.provide(Bus())
    try:
        yield
    finally:
        Bus.restore(token)


@pytest.fixture(autouse=True)
def config_context(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    config_dir = tmp_path / "global-config"
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.setattr(GlobalPath, "config", classmethod(lambda cls: str(config_dir)))
    monkeypatch.delenv("DISPOSABLES_CONFIG_CONTENT", raising=False)
    monkeypatch.chdir(workdir)
    token = ConfigManager.provide(ConfigManager())
    try:
        yield
    finally:
        ConfigManager.restore(token)


@pytest.fixture(autouse=True)
def _log_teardown() -> Iterator[None]:
    yield
    Log.clear_sinks()
    Log.configure(level=LogLevel.INFO, format=LogFormat.KV, console=False, file=False)


@pytest.fixture
def records() -> Iterator[list[dict[str, Any]]]:
    captured: list[dict[str, Any]] = []
    remove = Log.add_sink(captured.append)
    yield captured
    remove()


@pytest.fixture
def environment() -> VisibilityEnvironment:
    return VisibilityEnvironment()


@pytest.fixture
def coordinator(environment: VisibilityEnvironment) -> VisibilityCoordinator:
    return VisibilityCoordinator(environment)


@pytest.fixture
def owners(coordinator: VisibilityCoordinator) -> Owners:
    return Owners(coordinator)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
