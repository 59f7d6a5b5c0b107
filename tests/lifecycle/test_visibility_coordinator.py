from __future__ import annotations

from typing import Callable

from disposables.core.bus import Bus, VisibilityChanged
from disposables.lifecycle import (
    DisposalRegistry,
    Owners,
    VisibilityCoordinator,
    VisibilityEnvironment,
)


def _tracked(events: list[str], name: str):
    def setup():
        events.append(f"{name} setup")
        return lambda: events.append(f"{name} teardown")

    return setup


class FakeSource:
    def __init__(self) -> None:
        self.hidden = False
        self.subscribes = 0
        self.unsubscribes = 0
        self.callbacks: list[Callable[[bool], None]] = []

    def is_hidden(self) -> bool:
        return self.hidden

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        self.subscribes += 1
        self.callbacks.append(callback)

        def unsubscribe() -> None:
            self.unsubscribes += 1
            self.callbacks.remove(callback)

        return unsubscribe

    def emit(self, hidden: bool) -> None:
        self.hidden = hidden
        for callback in list(self.callbacks):
            callback(hidden)


def test_listener_attached_once_and_detached_with_last_owner() -> None:
    source = FakeSource()
    coordinator = VisibilityCoordinator(source)

    coordinator.register("a", DisposalRegistry("a"))
    coordinator.register("b", DisposalRegistry("b"))
    coordinator.register("a", DisposalRegistry("a"))

    assert source.subscribes == 1
    assert coordinator.subscribed is True
    assert coordinator.owners() == ["a", "b"]

    coordinator.unregister("a")
    assert source.unsubscribes == 0

    coordinator.unregister("missing")
    coordinator.unregister("b")
    assert source.unsubscribes == 1
    assert coordinator.subscribed is False

    coordinator.register("c", DisposalRegistry("c"))
    assert source.subscribes == 2


def test_bus_listener_count_tracks_registered_owners(environment: VisibilityEnvironment) -> None:
    coordinator = VisibilityCoordinator(environment)

    assert Bus.subscriber_count(VisibilityChanged) == 0
    for name in ("a", "b", "c"):
        coordinator.register(name, DisposalRegistry(name))
    assert Bus.subscriber_count(VisibilityChanged) == 1

    for name in ("a", "b", "c"):
        coordinator.unregister(name)
    assert Bus.subscriber_count(VisibilityChanged) == 0


def test_hidden_edge_pauses_and_visible_edge_resumes(environment: VisibilityEnvironment) -> None:
    events: list[str] = []
    coordinator = VisibilityCoordinator(environment)
    registry = DisposalRegistry("owner")
    registry.add(_tracked(events, "poll"), "poll")
    registry.add(_tracked(events, "socket"), "socket", pausable=False)
    coordinator.register("owner", registry)

    environment.hide()
    assert events == ["poll setup", "socket setup", "poll teardown"]
    assert coordinator.hidden is True

    environment.show()
    assert events == ["poll setup", "socket setup", "poll teardown", "poll setup"]
    assert registry.keys() == ["socket", "poll"]

    registry.drain_all()
    assert events[-2:] == ["socket teardown", "poll teardown"]


def test_repeated_state_notifications_are_ignored() -> None:
    events: list[str] = []
    source = FakeSource()
    coordinator = VisibilityCoordinator(source)
    registry = DisposalRegistry("owner")
    registry.add(_tracked(events, "poll"))
    coordinator.register("owner", registry)

    source.emit(True)
    source.emit(True)
    source.emit(False)
    source.emit(False)

    assert events == ["poll setup", "poll teardown", "poll setup"]


def test_pause_reaches_every_owner_independently(environment: VisibilityEnvironment, records) -> None:
    events: list[str] = []
    coordinator = VisibilityCoordinator(environment)

    def broken_teardown():
        def teardown() -> None:
            raise RuntimeError("stuck")

        return teardown

    first = DisposalRegistry("first")
    first.add(broken_teardown, "bad")
    first.add(_tracked(events, "first"), "ok")
    second = DisposalRegistry("second")
    second.add(_tracked(events, "second"), "ok")
    coordinator.register("first", first)
    coordinator.register("second", second)

    environment.hide()

    assert sorted(events) == sorted([
        "first setup", "second setup", "first teardown", "second teardown",
    ])
    failures = [r for r in records if r["level"] == "error"]
    assert [r["context"] for r in failures] == ["teardown failed for key bad in owner first"]


def test_owners_registered_while_hidden_are_paused_on_next_hidden_edge() -> None:
    events: list[str] = []
    source = FakeSource()
    source.hidden = True
    coordinator = VisibilityCoordinator(source)
    registry = DisposalRegistry("late")
    registry.add(_tracked(events, "late"), "late")

    coordinator.register("late", registry)
    assert coordinator.hidden is True
    assert events == ["late setup"]

    source.emit(False)
    assert events == ["late setup"]

    source.emit(True)
    assert events == ["late setup", "late teardown"]


def test_close_forgets_owners_and_releases_subscription() -> None:
    source = FakeSource()
    coordinator = VisibilityCoordinator(source)
    coordinator.register("a", DisposalRegistry("a"))

    coordinator.close()
    coordinator.close()

    assert coordinator.owners() == []
    assert source.unsubscribes == 1
    assert source.callbacks == []


class FlakySource(FakeSource):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("source unavailable")
        return super().subscribe(callback)


class BrokenRegistry(DisposalRegistry):
    def pause(self) -> int:
        raise RuntimeError("pause exploded")


def test_teardown_disposing_sibling_does_not_stop_broadcast(
    environment: VisibilityEnvironment, records
) -> None:
    events: list[str] = []
    coordinator = VisibilityCoordinator(environment)
    first = DisposalRegistry("first")

    def a_setup():
        events.append("a setup")

        def teardown() -> None:
            events.append("a teardown")
            first.dispose("b")

        return teardown

    first.add(a_setup, "a")
    first.add(_tracked(events, "b"), "b")
    second = DisposalRegistry("second")
    second.add(_tracked(events, "x"), "x")
    coordinator.register("first", first)
    coordinator.register("second", second)

    environment.hide()

    assert events[3:] == ["a teardown", "b teardown", "x teardown"]
    assert first.paused_keys() == ["a"]
    assert second.keys() == []
    assert second.paused_keys() == ["x"]
    assert [r for r in records if r["level"] == "error"] == []

    environment.show()
    assert first.keys() == ["a"]
    assert second.keys() == ["x"]
    assert "b setup" not in events[6:]


def test_failing_registry_does_not_stop_other_owners(records) -> None:
    events: list[str] = []
    source = FakeSource()
    coordinator = VisibilityCoordinator(source)
    coordinator.register("broken", BrokenRegistry("broken"))
    healthy = DisposalRegistry("healthy")
    healthy.add(_tracked(events, "poll"), "poll")
    coordinator.register("healthy", healthy)

    source.emit(True)

    assert events == ["poll setup", "poll teardown"]
    failures = [r for r in records if r["level"] == "error"]
    assert [r["context"] for r in failures] == ["pause failed for owner broken"]


def test_failed_subscribe_leaves_coordinator_unchanged(records) -> None:
    source = FlakySource(failures=1)
    coordinator = VisibilityCoordinator(source)

    assert coordinator.register("a", DisposalRegistry("a")) is False
    assert coordinator.owners() == []
    assert coordinator.subscribed is False
    failures = [r for r in records if r["level"] == "error"]
    assert failures[0]["context"] == "visibility subscribe failed for owner a"

    assert coordinator.register("a", DisposalRegistry("a")) is True
    assert coordinator.owners() == ["a"]
    assert coordinator.subscribed is True
    assert source.subscribes == 1


def test_owner_add_survives_failed_subscribe_and_enrolls_later(records) -> None:
    events: list[str] = []
    source = FlakySource(failures=1)
    coordinator = VisibilityCoordinator(source)
    owner = Owners(coordinator).mount("panel")

    owner.add(_tracked(events, "poll"), "poll")
    assert owner.keys() == ["poll"]
    assert coordinator.is_registered("panel") is False

    owner.add(_tracked(events, "feed"), "feed")
    assert coordinator.is_registered("panel") is True

    source.emit(True)
    assert events == ["poll setup", "feed setup", "poll teardown", "feed teardown"]


def test_environment_keeps_the_bus_it_was_built_with() -> None:
    environment = VisibilityEnvironment()
    outer = Bus._current()
    seen: list[bool] = []
    environment.subscribe(seen.append)

    token = Bus.provide(Bus())
    try:
        environment.hide()
        assert Bus.subscriber_count(VisibilityChanged) == 0
    finally:
        Bus.restore(token)

    assert seen == [True]
    assert environment.bus is outer
