"""Service for detecting assignee scheduling conflicts between tasks."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from taskboard.config import get_settings
from taskboard.domain.models import (
    Candidate,
    ConflictResult,
    OutOfRangeReason,
    OverlapReason,
    ProjectRange,
    Task,
)


def overlaps(
    a_from: datetime, a_to: datetime, b_from: datetime, b_to: datetime
) -> bool:
    """Return True when two closed intervals share at least one instant.

    Touching endpoints count as an overlap.
    """
    return a_from <= b_to and a_to >= b_from


def _shared_assignee(candidate: Sequence[str], existing: Sequence[str]) -> str | None:
    for name in candidate:
        if name in existing:
            return name
    return None


def check_conflict(
    candidate: Candidate,
    existing_tasks: Iterable[Task],
    project_range: ProjectRange | None = None,
) -> ConflictResult:
    """Check *candidate* against a project range and the tasks already booked.

    The range check runs first and short-circuits. Otherwise *existing_tasks*
    is scanned in order and the first task that shares an assignee and whose
    window overlaps the candidate's is reported. Tasks without a complete
    window, and the task named by ``candidate.exclude_task_id``, are skipped.
    """
    if project_range is not None and (
        candidate.from_ < project_range.from_ or candidate.to > project_range.to
    ):
        return ConflictResult.failure(
            OutOfRangeReason(
                allowed_from=project_range.from_, allowed_to=project_range.to
            )
        )

    for task in existing_tasks:
        if candidate.exclude_task_id is not None and task.id == candidate.exclude_task_id:
            continue
        if task.deadline_from is None or task.deadline_to is None:
            continue
        assignee = _shared_assignee(candidate.assignees, task.assignees)
        if assignee is None:
            continue
        if overlaps(candidate.from_, candidate.to, task.deadline_from, task.deadline_to):
            return ConflictResult.failure(
                OverlapReason(
                    with_task_id=task.id,
                    assignee=assignee,
                    existing_from=task.deadline_from,
                    existing_to=task.deadline_to,
                )
            )

    return ConflictResult.success()


def describe_conflict(
    result: ConflictResult, candidate: Candidate, fmt: str | None = None
) -> str | None:
    """Compose the user-facing message for a failed check, or None when ok."""
    reason = result.reason
    if result.ok or reason is None:
        return None

    fmt = fmt or get_settings().datetime_format
    if isinstance(reason, OutOfRangeReason):
        return (
            "Task deadline must be within the project's date range "
            f"(from {reason.allowed_from.strftime(fmt)} "
            f"to {reason.allowed_to.strftime(fmt)})."
        )
    return (
        f"{reason.assignee} is already scheduled in a task with a deadline from "
        f"{reason.existing_from.strftime(fmt)} to {reason.existing_to.strftime(fmt)}. "
        f"Your new schedule (from {candidate.from_.strftime(fmt)} "
        f"to {candidate.to.strftime(fmt)}) conflicts with the existing task."
    )
