"""FastAPI application: entry point for the taskboard scheduling service."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException

from taskboard.config import configure_logging, get_settings
from taskboard.domain.bus import EventBus
from taskboard.domain.events import CompanyDeleted, TaskDeleted
from taskboard.domain.feed import SnapshotFeed
from taskboard.domain.handlers import HandlerRegistry
from taskboard.domain.models import (
    Assignee,
    AssigneeCreate,
    Company,
    CompanyCreate,
    CompanyPatch,
    ConflictCheckRequest,
    ConflictCheckResponse,
    Project,
    ProjectCreate,
    ProjectPatch,
    ProjectStats,
    Stage,
    Task,
    TaskDraft,
    TaskPatch,
)
from taskboard.repos.memory import (
    AssigneeRepository,
    CompanyRepository,
    ProjectRepository,
    TaskRepository,
)
from taskboard.services.conflicts import describe_conflict
from taskboard.services.scheduling import (
    InvalidWindow,
    SchedulingConflict,
    TaskNotFound,
    create_task as _create_task,
    preview_conflict,
    update_task as _update_task,
)
from taskboard.services.stats import project_stats

configure_logging()

app = FastAPI(title="Taskboard Scheduling Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
company_repo = CompanyRepository()
project_repo = ProjectRepository()
task_repo = TaskRepository()
assignee_repo = AssigneeRepository()
snapshot_feed = SnapshotFeed(task_repo)

handler_registry = HandlerRegistry(
    bus=event_bus,
    project_repo=project_repo,
    feed=snapshot_feed,
)

PROJECT_PATH = "/companies/{company_id}/projects/{project_id}"


def _get_company(company_id: str) -> Company:
    company = company_repo.get(company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def _get_project(company_id: str, project_id: str) -> Project:
    _get_company(company_id)
    project = project_repo.get(company_id, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _conflict_error(exc: SchedulingConflict) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"message": str(exc), "result": exc.result.model_dump(mode="json")},
    )


# ── Companies ─────────────────────────────────────────────────────────


@app.post("/companies", response_model=Company, status_code=201)
def create_company(payload: CompanyCreate) -> Company:
    """Create a company; its id defaults to its name."""
    company = Company(**payload.model_dump())
    if company_repo.get(company.id) is not None:
        raise HTTPException(status_code=409, detail="Company already exists")
    company_repo.add(company)
    return company


@app.get("/companies", response_model=list[Company])
def list_companies() -> list[Company]:
    return company_repo.list_all()


@app.get("/companies/{company_id}", response_model=Company)
def get_company(company_id: str) -> Company:
    return _get_company(company_id)


@app.patch("/companies/{company_id}", response_model=Company)
def update_company(company_id: str, payload: CompanyPatch) -> Company:
    """Merge-update a company's name, address or members; its id stays put."""
    _get_company(company_id)
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    return company_repo.update(company_id, fields)


@app.delete("/companies/{company_id}")
def delete_company(company_id: str) -> dict:
    """Delete a company together with its projects."""
    if not company_repo.delete(company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    event_bus.publish(CompanyDeleted(company_id=company_id))
    return {"status": "deleted"}


# ── Projects ──────────────────────────────────────────────────────────


@app.post("/companies/{company_id}/projects", response_model=Project, status_code=201)
def create_project(company_id: str, payload: ProjectCreate) -> Project:
    _get_company(company_id)
    try:
        project = Project(company_id=company_id, **payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    project_repo.add(project)
    return project


@app.get("/companies/{company_id}/projects", response_model=list[Project])
def list_projects(company_id: str) -> list[Project]:
    _get_company(company_id)
    return project_repo.list_for_company(company_id)


@app.get(PROJECT_PATH, response_model=Project)
def get_project(company_id: str, project_id: str) -> Project:
    return _get_project(company_id, project_id)


@app.patch(PROJECT_PATH, response_model=Project)
def update_project(company_id: str, project_id: str, payload: ProjectPatch) -> Project:
    _get_project(company_id, project_id)
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    try:
        return project_repo.update(company_id, project_id, fields)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get(PROJECT_PATH + "/stats", response_model=ProjectStats)
def get_project_stats(company_id: str, project_id: str) -> ProjectStats:
    """Progress per task, completed/pending shares and assignee-by-stage counts."""
    _get_project(company_id, project_id)
    return project_stats(task_repo.list_for_project(company_id, project_id))


@app.delete(PROJECT_PATH)
def delete_project(company_id: str, project_id: str) -> dict:
    _get_project(company_id, project_id)
    project_repo.delete(company_id, project_id)
    return {"status": "deleted"}


# ── Assignees ─────────────────────────────────────────────────────────


@app.post("/assignees", response_model=Assignee, status_code=201)
def create_assignee(payload: AssigneeCreate) -> Assignee:
    if assignee_repo.get_by_name(payload.name) is not None:
        raise HTTPException(status_code=409, detail="Assignee already exists")
    assignee = Assignee(**payload.model_dump())
    assignee_repo.add(assignee)
    return assignee


@app.get("/assignees", response_model=list[Assignee])
def list_assignees() -> list[Assignee]:
    return assignee_repo.list_all()


@app.get(PROJECT_PATH + "/assignees/{name}/tasks", response_model=list[Task])
def list_assignee_tasks(company_id: str, project_id: str, name: str) -> list[Task]:
    """Return one person's scheduled tasks in the project, earliest first."""
    _get_project(company_id, project_id)
    return task_repo.list_for_assignee(company_id, project_id, name)


# ── Tasks ─────────────────────────────────────────────────────────────


@app.get(PROJECT_PATH + "/tasks", response_model=list[Task])
def list_tasks(company_id: str, project_id: str, stage: Stage | None = None) -> list[Task]:
    _get_project(company_id, project_id)
    return task_repo.list_for_project(company_id, project_id, stage=stage)


@app.post(PROJECT_PATH + "/tasks", response_model=Task, status_code=201)
def create_task(company_id: str, project_id: str, draft: TaskDraft) -> Task:
    """Create a task; scheduled tasks must fit the project and not double-book."""
    project = _get_project(company_id, project_id)
    try:
        return _create_task(draft, project, task_repo, event_bus)
    except InvalidWindow as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except SchedulingConflict as exc:
        raise _conflict_error(exc) from exc


@app.post(PROJECT_PATH + "/tasks/check", response_model=ConflictCheckResponse)
def check_task(
    company_id: str, project_id: str, payload: ConflictCheckRequest
) -> ConflictCheckResponse:
    """Dry-run the conflict check for a proposed window."""
    project = _get_project(company_id, project_id)
    try:
        result, candidate = preview_conflict(payload, project, task_repo)
    except InvalidWindow as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ConflictCheckResponse(result=result, message=describe_conflict(result, candidate))


@app.get(PROJECT_PATH + "/tasks/{task_id}", response_model=Task)
def get_task(company_id: str, project_id: str, task_id: str) -> Task:
    _get_project(company_id, project_id)
    task = task_repo.get(company_id, project_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.patch(PROJECT_PATH + "/tasks/{task_id}", response_model=Task)
def update_task(
    company_id: str,
    project_id: str,
    task_id: str,
    patch: TaskPatch,
    enforce_range: bool | None = None,
) -> Task:
    """Merge-update a task, re-checking conflicts when its schedule changes."""
    project = _get_project(company_id, project_id)
    if enforce_range is None:
        enforce_range = get_settings().enforce_range_on_update
    try:
        return _update_task(
            task_id, patch, project, task_repo, event_bus, enforce_range=enforce_range
        )
    except TaskNotFound as exc:
        raise HTTPException(status_code=404, detail="Task not found") from exc
    except InvalidWindow as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except SchedulingConflict as exc:
        raise _conflict_error(exc) from exc


@app.delete(PROJECT_PATH + "/tasks/{task_id}")
def delete_task(company_id: str, project_id: str, task_id: str) -> dict:
    _get_project(company_id, project_id)
    if not task_repo.delete(company_id, project_id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    event_bus.publish(
        TaskDeleted(company_id=company_id, project_id=project_id, task_id=task_id)
    )
    return {"status": "deleted"}
