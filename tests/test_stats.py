"""Tests for project progress figures."""

from __future__ import annotations

from taskboard.domain.models import Stage, Task
from taskboard.services.stats import project_stats, stage_progress


def _make_task(**overrides) -> Task:
    defaults = dict(company_id="Acme", project_id="p1", title="Task")
    defaults.update(overrides)
    return Task(**defaults)


def test_stage_progress_values():
    assert stage_progress(Stage.UNSTARTED) == 0
    assert stage_progress(Stage.BEGIN) == 10
    assert stage_progress(Stage.INTERMEDIATE) == 70
    assert stage_progress(Stage.COMPLETED) == 100
    assert stage_progress(Stage.TEST) == 0


def test_empty_project_has_zero_percentages():
    stats = project_stats([])
    assert stats.total == 0
    assert stats.completed_percentage == 0
    assert stats.pending_percentage == 0
    assert stats.by_stage == {}
    assert stats.by_assignee == {}


def test_completed_and_pending_shares():
    tasks = [
        _make_task(stage=Stage.COMPLETED),
        _make_task(stage=Stage.BEGIN),
        _make_task(stage=Stage.INTERMEDIATE),
    ]
    stats = project_stats(tasks)

    assert (stats.total, stats.completed, stats.pending) == (3, 1, 2)
    assert stats.completed_percentage == 33
    assert stats.pending_percentage == 67
    assert [t.progress for t in stats.tasks] == [100, 10, 70]


def test_percentages_round_half_up():
    tasks = [_make_task(stage=Stage.COMPLETED)] + [_make_task() for _ in range(7)]
    stats = project_stats(tasks)
    assert stats.completed_percentage == 13
    assert stats.pending_percentage == 88


def test_assignee_stage_counts_include_zeros():
    tasks = [
        _make_task(assignees=["Alice", "Bob"], stage=Stage.BEGIN),
        _make_task(assignees=["Alice"], stage=Stage.COMPLETED),
        _make_task(stage=Stage.BEGIN),
    ]
    stats = project_stats(tasks)

    assert stats.by_stage == {"begin": 2, "completed": 1}
    assert stats.by_assignee == {
        "Alice": {"begin": 1, "completed": 1},
        "Bob": {"begin": 1, "completed": 0},
    }
