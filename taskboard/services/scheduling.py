"""Service for creating and editing tasks behind the conflict check."""

from __future__ import annotations

import logging
from datetime import datetime

from taskboard.domain.bus import EventBus
from taskboard.domain.events import ConflictDetected, TaskCreated, TaskUpdated
from taskboard.domain.models import (
    Candidate,
    ConflictCheckRequest,
    ConflictResult,
    Project,
    Task,
    TaskDraft,
    TaskPatch,
)
from taskboard.repos.memory import TaskRepository
from taskboard.services.conflicts import check_conflict, describe_conflict

logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = frozenset({"assignees", "deadline_from", "deadline_to"})
_NULLABLE_FIELDS = frozenset({"deadline_from", "deadline_to"})


class InvalidWindow(ValueError):
    """Raised when a task cannot be scheduled as submitted."""


class TaskNotFound(LookupError):
    pass


class SchedulingConflict(Exception):
    """Raised by the write paths when the conflict check refuses a write."""

    def __init__(self, result: ConflictResult, candidate: Candidate) -> None:
        self.result = result
        self.candidate = candidate
        super().__init__(describe_conflict(result, candidate))


def validate_window(deadline_from: datetime | None, deadline_to: datetime | None) -> bool:
    """Return True for a complete window and False when both ends are empty.

    Raises ``InvalidWindow`` for a half-specified or reversed window.
    """
    if deadline_from is None and deadline_to is None:
        return False
    if deadline_from is None or deadline_to is None:
        raise InvalidWindow("Both deadline_from and deadline_to are required.")
    if deadline_to < deadline_from:
        raise InvalidWindow('"To" deadline cannot be before the "From" deadline.')
    return True


def candidate_for(task: Task, exclude_task_id: str | None = None) -> Candidate:
    return Candidate(
        assignees=task.assignees,
        from_=task.deadline_from,
        to=task.deadline_to,
        exclude_task_id=exclude_task_id,
    )


def _refuse(
    bus: EventBus,
    project: Project,
    task_id: str | None,
    result: ConflictResult,
    candidate: Candidate,
) -> SchedulingConflict:
    bus.publish(
        ConflictDetected(
            company_id=project.company_id,
            project_id=project.id,
            task_id=task_id,
            result=result,
        )
    )
    return SchedulingConflict(result, candidate)


def create_task(
    draft: TaskDraft,
    project: Project,
    task_repo: TaskRepository,
    bus: EventBus,
) -> Task:
    """Create a task from the full task form.

    A draft without a window is stored as an unscheduled card. A scheduled
    draft needs at least one assignee, must fit the project range and must
    not double-book anyone. Raises ``InvalidWindow`` or ``SchedulingConflict``.
    """
    task = Task(company_id=project.company_id, project_id=project.id, **draft.model_dump())
    scheduled = validate_window(task.deadline_from, task.deadline_to)
    if scheduled and not task.assignees:
        raise InvalidWindow("Please select at least one assignee.")

    with task_repo.lock:
        if scheduled:
            candidate = candidate_for(task)
            result = check_conflict(
                candidate,
                task_repo.list_for_project(project.company_id, project.id),
                project.range,
            )
            if not result.ok:
                raise _refuse(bus, project, None, result, candidate)
        task_repo.add(task)
    logger.info("Created task %s in %s/%s", task.id, project.company_id, project.id)

    bus.publish(
        TaskCreated(company_id=project.company_id, project_id=project.id, task_id=task.id)
    )
    return task


def update_task(
    task_id: str,
    patch: TaskPatch,
    project: Project,
    task_repo: TaskRepository,
    bus: EventBus,
    enforce_range: bool = False,
) -> Task:
    """Merge *patch* into a stored task.

    When the patch touches assignees or the window, the merged task is
    re-checked against every other task in the project; the project range is
    only applied when *enforce_range* is set.
    """
    fields = {
        key: value
        for key, value in patch.model_dump(exclude_unset=True).items()
        if value is not None or key in _NULLABLE_FIELDS
    }

    with task_repo.lock:
        current = task_repo.get(project.company_id, project.id, task_id)
        if current is None:
            raise TaskNotFound(task_id)

        if _SCHEDULE_FIELDS & fields.keys():
            merged = Task.model_validate({**current.model_dump(), **fields})
            if validate_window(merged.deadline_from, merged.deadline_to):
                candidate = candidate_for(merged, exclude_task_id=task_id)
                result = check_conflict(
                    candidate,
                    task_repo.list_for_project(project.company_id, project.id),
                    project.range if enforce_range else None,
                )
                if not result.ok:
                    raise _refuse(bus, project, task_id, result, candidate)

        updated = task_repo.update(project.company_id, project.id, task_id, fields)
    logger.info("Updated task %s fields %s", task_id, sorted(fields))

    bus.publish(
        TaskUpdated(
            company_id=project.company_id,
            project_id=project.id,
            task_id=task_id,
            changed_fields=sorted(fields),
        )
    )
    return updated


def preview_conflict(
    request: ConflictCheckRequest,
    project: Project,
    task_repo: TaskRepository,
) -> tuple[ConflictResult, Candidate]:
    """Run the conflict check without writing anything."""
    validate_window(request.deadline_from, request.deadline_to)
    candidate = Candidate(
        assignees=request.assignees,
        from_=request.deadline_from,
        to=request.deadline_to,
        exclude_task_id=request.exclude_task_id,
    )
    result = check_conflict(
        candidate,
        task_repo.list_for_project(project.company_id, project.id),
        project.range if request.enforce_range else None,
    )
    return result, candidate
