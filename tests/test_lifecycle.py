"""Tests for the stores, the snapshot feed and the domain event handlers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from taskboard.domain.bus import EventBus
from taskboard.domain.events import CompanyDeleted, TaskCreated, TaskDeleted, TaskUpdated
from taskboard.domain.feed import SnapshotFeed
from taskboard.domain.handlers import HandlerRegistry
from taskboard.domain.models import Assignee, Company, Project, Stage, Task
from taskboard.repos.memory import (
    AssigneeRepository,
    CompanyRepository,
    ProjectRepository,
    TaskRepository,
)

_JAN_10 = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh bus + stores + registry for each test."""
    bus = EventBus()
    company_repo = CompanyRepository()
    project_repo = ProjectRepository()
    task_repo = TaskRepository()
    feed = SnapshotFeed(task_repo)
    registry = HandlerRegistry(bus=bus, project_repo=project_repo, feed=feed)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.company_repo = company_repo
    e.project_repo = project_repo
    e.task_repo = task_repo
    e.feed = feed
    e.registry = registry
    return e


def _make_task(**overrides) -> Task:
    defaults = dict(company_id="Acme", project_id="p1", title="Task")
    defaults.update(overrides)
    return Task(**defaults)


def _make_project(project_id: str = "p1", company_id: str = "Acme") -> Project:
    return Project(
        id=project_id,
        company_id=company_id,
        name=f"Project {project_id}",
        from_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        to_date=datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc),
    )


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


def test_company_id_defaults_to_name():
    assert Company(name="Acme").id == "Acme"
    assert Company(id="c-1", name="Acme").id == "c-1"


def test_project_rejects_reversed_range():
    with pytest.raises(ValueError):
        Project(
            company_id="Acme",
            name="Backwards",
            from_date="2024-02-01T00:00",
            to_date="2024-01-01T00:00",
        )


def test_task_listing_keeps_insertion_order_and_filters_stage(env):
    first = _make_task(title="first", stage=Stage.BEGIN)
    second = _make_task(title="second")
    third = _make_task(title="third", stage=Stage.BEGIN)
    elsewhere = _make_task(project_id="p2")
    for task in (first, second, third, elsewhere):
        env.task_repo.add(task)

    assert env.task_repo.list_for_project("Acme", "p1") == [first, second, third]
    assert env.task_repo.list_for_project("Acme", "p1", stage=Stage.BEGIN) == [first, third]


def test_task_get_is_scoped_to_project(env):
    task = _make_task()
    env.task_repo.add(task)

    assert env.task_repo.get("Acme", "p1", task.id) == task
    assert env.task_repo.get("Acme", "p2", task.id) is None


def test_task_merge_update_keeps_other_fields(env):
    task = _make_task(customer="Globex", assignees=["Alice"])
    env.task_repo.add(task)

    updated = env.task_repo.update("Acme", "p1", task.id, {"color": "#00ff00"})

    assert updated.color == "#00ff00"
    assert updated.customer == "Globex"
    assert updated.assignees == ["Alice"]
    assert env.task_repo.get("Acme", "p1", task.id) == updated


def test_task_update_and_delete_missing(env):
    assert env.task_repo.update("Acme", "p1", "nope", {"title": "x"}) is None
    assert env.task_repo.delete("Acme", "p1", "nope") is False


def test_list_for_assignee_orders_by_start(env):
    late = _make_task(
        assignees=["Alice"],
        deadline_from=_JAN_10.replace(hour=14),
        deadline_to=_JAN_10.replace(hour=15),
    )
    early = _make_task(assignees=["Alice", "Bob"], deadline_from=_JAN_10, deadline_to=_JAN_10)
    unscheduled = _make_task(assignees=["Alice"])
    for task in (late, early, unscheduled):
        env.task_repo.add(task)

    assert env.task_repo.list_for_assignee("Acme", "p1", "Alice") == [early, late]
    assert env.task_repo.list_for_assignee("Acme", "p1", "Bob") == [early]


def test_assignee_lookup_by_name():
    repo = AssigneeRepository()
    repo.add(Assignee(name="bob"))
    alice = Assignee(name="Alice", email="alice@example.com")
    repo.add(alice)

    assert repo.get_by_name("Alice") == alice
    assert repo.get_by_name("Carol") is None
    assert [a.name for a in repo.list_all()] == ["Alice", "bob"]


# ---------------------------------------------------------------------------
# Snapshot feed
# ---------------------------------------------------------------------------


def test_subscribe_delivers_current_snapshot(env):
    task = _make_task()
    env.task_repo.add(task)
    snapshots: list[list[Task]] = []

    env.feed.subscribe("Acme", "p1", snapshots.append)

    assert snapshots == [[task]]


def test_task_events_push_full_snapshots(env):
    snapshots: list[list[Task]] = []
    env.feed.subscribe("Acme", "p1", snapshots.append)

    task = _make_task()
    env.task_repo.add(task)
    env.bus.publish(TaskCreated(company_id="Acme", project_id="p1", task_id=task.id))

    env.task_repo.update("Acme", "p1", task.id, {"stage": Stage.COMPLETED})
    env.bus.publish(TaskUpdated(company_id="Acme", project_id="p1", task_id=task.id))

    env.task_repo.delete("Acme", "p1", task.id)
    env.bus.publish(TaskDeleted(company_id="Acme", project_id="p1", task_id=task.id))

    assert len(snapshots) == 4
    assert snapshots[1] == [task]
    assert snapshots[2][0].stage == Stage.COMPLETED
    assert snapshots[3] == []


def test_snapshots_are_scoped_to_project(env):
    snapshots: list[list[Task]] = []
    env.feed.subscribe("Acme", "p1", snapshots.append)

    env.bus.publish(TaskCreated(company_id="Acme", project_id="p2", task_id="x"))

    assert len(snapshots) == 1


def test_unsubscribe_stops_delivery(env):
    snapshots: list[list[Task]] = []
    unsubscribe = env.feed.subscribe("Acme", "p1", snapshots.append)
    unsubscribe()
    unsubscribe()

    env.bus.publish(TaskCreated(company_id="Acme", project_id="p1", task_id="x"))

    assert len(snapshots) == 1


def test_failing_listener_does_not_block_others(env):
    calls: list[int] = []

    def broken(snapshot):
        if calls:
            raise RuntimeError("boom")
        calls.append(len(snapshot))

    received: list[list[Task]] = []
    env.feed.subscribe("Acme", "p1", broken)
    env.feed.subscribe("Acme", "p1", received.append)

    env.bus.publish(TaskCreated(company_id="Acme", project_id="p1", task_id="x"))

    assert len(received) == 2


# ---------------------------------------------------------------------------
# Company cascade
# ---------------------------------------------------------------------------


def test_company_deleted_cascades_to_projects_not_tasks(env):
    env.company_repo.add(Company(name="Acme"))
    env.project_repo.add(_make_project("p1"))
    env.project_repo.add(_make_project("p2"))
    env.project_repo.add(_make_project("other", company_id="Globex"))
    task = _make_task()
    env.task_repo.add(task)

    env.company_repo.delete("Acme")
    env.bus.publish(CompanyDeleted(company_id="Acme"))

    assert env.project_repo.list_for_company("Acme") == []
    assert len(env.project_repo.list_for_company("Globex")) == 1
    assert env.task_repo.get("Acme", "p1", task.id) == task


def test_listener_failing_on_first_snapshot_stays_subscribed(env):
    calls: list[int] = []

    def flaky(snapshot):
        calls.append(len(snapshot))
        if len(calls) == 1:
            raise RuntimeError("boom")

    unsubscribe = env.feed.subscribe("Acme", "p1", flaky)
    env.bus.publish(TaskCreated(company_id="Acme", project_id="p1", task_id="x"))

    assert calls == [0, 0]
    unsubscribe()
    env.bus.publish(TaskCreated(company_id="Acme", project_id="p1", task_id="x"))
    assert calls == [0, 0]


def test_company_merge_update_keeps_id(env):
    env.company_repo.add(Company(name="Acme", address="1 Main St", users=["Alice"]))

    updated = env.company_repo.update("Acme", {"name": "Acme Corp"})

    assert updated.id == "Acme"
    assert updated.name == "Acme Corp"
    assert updated.address == "1 Main St"
    assert updated.users == ["Alice"]
    assert env.company_repo.get("Acme") == updated
    assert env.company_repo.update("ghost", {"name": "x"}) is None
