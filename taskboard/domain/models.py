"""Domain models for companies, projects, tasks and scheduling conflicts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    model_validator,
)

from taskboard.services.timeparse import combine_date_time, parse_instant

DEFAULT_COLOR = "#ffffff"


class Stage(StrEnum):
    UNSTARTED = "unstarted"
    BEGIN = "begin"
    INTERMEDIATE = "intermediate"
    COMPLETED = "completed"
    TEST = "test"


class TaskStatus(StrEnum):
    NONE = ""
    IN_PROGRESS = "In Progress"
    CHANGES_REQUESTED = "Changes Requested"
    APPROVED = "Approved"
    CANCELLED = "Cancelled"
    DONE = "Done"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _coerce_instant(value: Any, info: ValidationInfo) -> Any:
    if value is None:
        return None
    return parse_instant(value, info.field_name or "date")


def _assignee_names(value: Any) -> list[str]:
    """Reduce names or ``{"name": ...}`` references to an ordered, unique list."""
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        raise ValueError("assignees must be a list of names")
    names: list[str] = []
    for item in value:
        name = item.get("name") if isinstance(item, dict) else item
        if not isinstance(name, str):
            raise ValueError("assignees must be names or objects with a name")
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


def _default_color(value: Any) -> Any:
    return value or DEFAULT_COLOR


def _combine_form_window(data: Any) -> Any:
    """Fold separate ``<field>_date``/``<field>_time`` inputs into the deadline fields.

    An explicit ``deadline_from``/``deadline_to`` wins over the split inputs.
    A time without a date leaves an empty value that fails instant parsing.
    """
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for field in ("deadline_from", "deadline_to"):
        date_part = data.pop(f"{field}_date", None)
        time_part = data.pop(f"{field}_time", None)
        if data.get(field) is not None or (date_part is None and time_part is None):
            continue
        data[field] = combine_date_time(date_part, time_part) if date_part else ""
    return data


Instant = Annotated[datetime, BeforeValidator(_coerce_instant)]
AssigneeNames = Annotated[list[str], BeforeValidator(_assignee_names)]
Color = Annotated[str, BeforeValidator(_default_color)]


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Company(BaseModel):
    id: str = ""
    name: str
    address: str = ""
    users: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _id_defaults_to_name(self) -> Company:
        if not self.id:
            self.id = self.name
        return self


class ProjectRange(BaseModel):
    """Inclusive bounds within which a project's tasks must be scheduled."""

    model_config = ConfigDict(populate_by_name=True)

    from_: Instant = Field(alias="from")
    to: Instant


class Project(BaseModel):
    id: str = Field(default_factory=_new_id)
    company_id: str
    name: str
    from_date: Instant
    to_date: Instant
    users: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _to_after_from(self) -> Project:
        if self.to_date < self.from_date:
            raise ValueError("to_date must not be before from_date")
        return self

    @property
    def range(self) -> ProjectRange:
        return ProjectRange(from_=self.from_date, to=self.to_date)


class Task(BaseModel):
    id: str = Field(default_factory=_new_id)
    company_id: str
    project_id: str
    title: str = ""
    customer: str = ""
    color: Color = DEFAULT_COLOR
    priority: bool = False
    status: TaskStatus = TaskStatus.NONE
    stage: Stage = Stage.UNSTARTED
    assignees: AssigneeNames = Field(default_factory=list)
    deadline_from: Instant | None = None
    deadline_to: Instant | None = None
    created_on: datetime = Field(default_factory=_utcnow)

    @property
    def is_scheduled(self) -> bool:
        return self.deadline_from is not None and self.deadline_to is not None


class Assignee(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    email: str | None = None


# ---------------------------------------------------------------------------
# Conflict checking
# ---------------------------------------------------------------------------


class Candidate(BaseModel):
    """A proposed assignee set and window, validated before a write."""

    model_config = ConfigDict(populate_by_name=True)

    assignees: AssigneeNames = Field(default_factory=list)
    from_: Instant = Field(alias="from")
    to: Instant
    exclude_task_id: str | None = None


class OutOfRangeReason(BaseModel):
    kind: Literal["out_of_range"] = "out_of_range"
    allowed_from: datetime
    allowed_to: datetime


class OverlapReason(BaseModel):
    kind: Literal["overlap"] = "overlap"
    with_task_id: str
    assignee: str
    existing_from: datetime
    existing_to: datetime


class ConflictResult(BaseModel):
    ok: bool = True
    reason: OutOfRangeReason | OverlapReason | None = None

    @classmethod
    def success(cls) -> ConflictResult:
        return cls()

    @classmethod
    def failure(cls, reason: OutOfRangeReason | OverlapReason) -> ConflictResult:
        return cls(ok=False, reason=reason)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class TaskProgress(BaseModel):
    id: str
    title: str
    assignees: list[str]
    stage: Stage
    progress: int


class ProjectStats(BaseModel):
    """Completion figures for one project's task list."""

    total: int = 0
    completed: int = 0
    pending: int = 0
    completed_percentage: int = 0
    pending_percentage: int = 0
    by_stage: dict[str, int] = Field(default_factory=dict)
    by_assignee: dict[str, dict[str, int]] = Field(default_factory=dict)
    tasks: list[TaskProgress] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CompanyCreate(BaseModel):
    id: str = ""
    name: str = Field(min_length=1)
    address: str = ""
    users: list[str] = Field(default_factory=list)


class CompanyPatch(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    address: str | None = None
    users: list[str] | None = None


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    from_date: Instant
    to_date: Instant
    users: list[str] = Field(default_factory=list)


class ProjectPatch(BaseModel):
    name: str | None = None
    from_date: Instant | None = None
    to_date: Instant | None = None
    users: list[str] | None = None


class AssigneeCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str | None = None


class _FormWindow(BaseModel):
    """Accepts the deadline either as instants or as the form's date and time inputs."""

    @model_validator(mode="before")
    @classmethod
    def _split_inputs(cls, data: Any) -> Any:
        return _combine_form_window(data)


class TaskDraft(_FormWindow):
    title: str = ""
    customer: str = ""
    color: Color = DEFAULT_COLOR
    priority: bool = False
    status: TaskStatus = TaskStatus.NONE
    stage: Stage = Stage.UNSTARTED
    assignees: AssigneeNames = Field(default_factory=list)
    deadline_from: Instant | None = None
    deadline_to: Instant | None = None


class TaskPatch(_FormWindow):
    title: str | None = None
    customer: str | None = None
    color: Color | None = None
    priority: bool | None = None
    status: TaskStatus | None = None
    stage: Stage | None = None
    assignees: AssigneeNames | None = None
    deadline_from: Instant | None = None
    deadline_to: Instant | None = None


class ConflictCheckRequest(_FormWindow):
    assignees: AssigneeNames = Field(default_factory=list)
    deadline_from: Instant
    deadline_to: Instant
    exclude_task_id: str | None = None
    enforce_range: bool = True


class ConflictCheckResponse(BaseModel):
    result: ConflictResult
    message: str | None = None
