"""Service for project progress figures shown on dashboards and pivot tables."""

from __future__ import annotations

from typing import Iterable

from taskboard.domain.models import ProjectStats, Stage, Task, TaskProgress

STAGE_PROGRESS = {
    Stage.UNSTARTED: 0,
    Stage.BEGIN: 10,
    Stage.INTERMEDIATE: 70,
    Stage.COMPLETED: 100,
}


def stage_progress(stage: Stage) -> int:
    """Return the completion percentage a stage stands for (0 for unknown stages)."""
    return STAGE_PROGRESS.get(stage, 0)


def _percent(part: int, total: int) -> int:
    # Rounds half up, e.g. 1 of 8 is 13.
    if total == 0:
        return 0
    return (part * 200 + total) // (total * 2)


def project_stats(tasks: Iterable[Task]) -> ProjectStats:
    """Summarize a project's tasks.

    ``by_stage`` lists the stages in order of first appearance. Each assignee
    in ``by_assignee`` gets a count for every one of those stages, zero
    included; a task with several assignees counts once for each of them.
    """
    tasks = list(tasks)

    by_stage: dict[str, int] = {}
    for task in tasks:
        by_stage[task.stage.value] = by_stage.get(task.stage.value, 0) + 1

    by_assignee: dict[str, dict[str, int]] = {}
    for task in tasks:
        for name in task.assignees:
            counts = by_assignee.setdefault(name, dict.fromkeys(by_stage, 0))
            counts[task.stage.value] += 1

    total = len(tasks)
    completed = by_stage.get(Stage.COMPLETED.value, 0)
    pending = total - completed

    return ProjectStats(
        total=total,
        completed=completed,
        pending=pending,
        completed_percentage=_percent(completed, total),
        pending_percentage=_percent(pending, total),
        by_stage=by_stage,
        by_assignee=by_assignee,
        tasks=[
            TaskProgress(
                id=task.id,
                title=task.title,
                assignees=task.assignees,
                stage=task.stage,
                progress=stage_progress(task.stage),
            )
            for task in tasks
        ],
    )
