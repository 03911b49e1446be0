"""Domain events emitted when companies and tasks change."""

from __future__ import annotations

from pydantic import BaseModel, Field

from taskboard.domain.models import ConflictResult


class TaskCreated(BaseModel):
    """Fired when a new Task is persisted."""

    company_id: str
    project_id: str
    task_id: str


class TaskUpdated(BaseModel):
    """Fired after a merge-update has been written."""

    company_id: str
    project_id: str
    task_id: str
    changed_fields: list[str] = Field(default_factory=list)


class TaskDeleted(BaseModel):
    company_id: str
    project_id: str
    task_id: str


class CompanyDeleted(BaseModel):
    """Fired when a company is removed; its projects go with it."""

    company_id: str


class ConflictDetected(BaseModel):
    """Fired when a task write is refused because of a scheduling conflict."""

    company_id: str
    project_id: str
    task_id: str | None = None
    result: ConflictResult
