from __future__ import annotations

import json

import pytest

from disposables.core.bus import Bus, VisibilityChanged
from disposables.core.config import ConfigError
from disposables.runtime import AppContext


@pytest.mark.anyio
async def test_startup_binds_bus_and_applies_lifecycle_config(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv(
        "DISPOSABLES_CONFIG_CONTENT",
        json.dumps({"lifecycle": {"autoKeyPrefix": "res_", "startHidden": True}}),
    )
    outer = Bus._current()
    app = AppContext()

    await app.startup()
    try:
        assert app.started is True
        assert Bus._current() is app.bus
        assert app.visibility.is_hidden() is True

        owner = app.owners.mount("panel")
        owner.add(lambda: lambda: None)
        assert owner.keys() == ["res_0"]
    finally:
        await app.shutdown()

    assert Bus._current() is outer


@pytest.mark.anyio
async def test_visibility_round_trip_through_runtime() -> None:
    events: list[str] = []
    app = AppContext()
    await app.startup()
    try:
        owner = app.owners.mount("panel")

        def poll():
            events.append("start")
            return lambda: events.append("stop")

        owner.add(poll, "poll")
        assert Bus.subscriber_count(VisibilityChanged) == 1

        app.visibility.hide()
        app.visibility.hide()
        app.visibility.show()
        assert events == ["start", "stop", "start"]
    finally:
        await app.shutdown()

    assert events == ["start", "stop", "start", "stop"]


@pytest.mark.anyio
async def test_shutdown_releases_owners_and_subscription() -> None:
    disposed: list[str] = []
    app = AppContext()
    await app.startup()

    owner = app.owners.mount("panel")
    app.owners.mount("panel")
    owner.add(lambda: lambda: disposed.append("panel"))

    await app.shutdown()
    await app.shutdown()

    assert disposed == ["panel"]
    assert app.started is False
    assert app.coordinator.subscribed is False
    assert len(app.owners) == 0


@pytest.mark.anyio
async def test_pause_on_hidden_can_be_disabled_by_config(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv(
        "DISPOSABLES_CONFIG_CONTENT", json.dumps({"lifecycle": {"pauseOnHidden": False}})
    )
    events: list[str] = []
    app = AppContext()
    await app.startup()
    try:
        owner = app.owners.mount("panel")
        owner.add(lambda: events.append("start") or (lambda: events.append("stop")))
        app.visibility.hide()
        assert events == ["start"]
    finally:
        await app.shutdown()


@pytest.mark.anyio
async def test_startup_failure_restores_bus(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("DISPOSABLES_CONFIG_CONTENT", json.dumps({"unknown": 1}))
    outer = Bus._current()
    app = AppContext()

    with pytest.raises(ConfigError):
        await app.startup()

    assert app.started is False
    assert Bus._current() is outer
