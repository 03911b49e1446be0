"""In-memory stores for companies, projects, tasks and assignees."""

from __future__ import annotations

import logging
import threading
from typing import Any

from taskboard.domain.models import Assignee, Company, Project, Stage, Task

logger = logging.getLogger(__name__)


class CompanyRepository:
    """Dict-backed store for Company instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Company] = {}

    def add(self, company: Company) -> None:
        self._store[company.id] = company

    def get(self, company_id: str) -> Company | None:
        return self._store.get(company_id)

    def list_all(self) -> list[Company]:
        return list(self._store.values())

    def update(self, company_id: str, fields: dict[str, Any]) -> Company | None:
        """Merge *fields* into the stored company; the id never changes."""
        current = self.get(company_id)
        if current is None:
            return None
        updated = Company.model_validate({**current.model_dump(), **fields, "id": company_id})
        self._store[company_id] = updated
        return updated

    def delete(self, company_id: str) -> bool:
        return self._store.pop(company_id, None) is not None


class ProjectRepository:
    """Dict-backed store for Project instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Project] = {}

    def add(self, project: Project) -> None:
        self._store[project.id] = project

    def get(self, company_id: str, project_id: str) -> Project | None:
        project = self._store.get(project_id)
        if project is None or project.company_id != company_id:
            return None
        return project

    def list_for_company(self, company_id: str) -> list[Project]:
        return [p for p in self._store.values() if p.company_id == company_id]

    def update(
        self, company_id: str, project_id: str, fields: dict[str, Any]
    ) -> Project | None:
        """Merge *fields* into the stored project and re-validate it."""
        current = self.get(company_id, project_id)
        if current is None:
            return None
        updated = Project.model_validate({**current.model_dump(), **fields})
        self._store[project_id] = updated
        return updated

    def delete(self, company_id: str, project_id: str) -> bool:
        if self.get(company_id, project_id) is None:
            return False
        del self._store[project_id]
        return True

    def delete_for_company(self, company_id: str) -> list[str]:
        """Delete every project of a company and return the removed ids."""
        to_remove = [pid for pid, p in self._store.items() if p.company_id == company_id]
        for pid in to_remove:
            del self._store[pid]
        return to_remove


class TaskRepository:
    """Dict-backed store for Task instances, keyed by id.

    Listing preserves insertion order, which is the order conflict checks
    scan in. Hold ``lock`` around a check and the write that depends on it.
    """

    def __init__(self) -> None:
        self._store: dict[str, Task] = {}
        self.lock = threading.RLock()

    def add(self, task: Task) -> None:
        with self.lock:
            self._store[task.id] = task
        logger.debug("Stored task %s in %s/%s", task.id, task.company_id, task.project_id)

    def get(self, company_id: str, project_id: str, task_id: str) -> Task | None:
        task = self._store.get(task_id)
        if task is None or (task.company_id, task.project_id) != (company_id, project_id):
            return None
        return task

    def list_for_project(
        self, company_id: str, project_id: str, stage: Stage | None = None
    ) -> list[Task]:
        with self.lock:
            tasks = list(self._store.values())
        return [
            t
            for t in tasks
            if t.company_id == company_id
            and t.project_id == project_id
            and (stage is None or t.stage == stage)
        ]

    def list_for_assignee(
        self, company_id: str, project_id: str, name: str
    ) -> list[Task]:
        """Return the assignee's scheduled tasks ordered by start."""
        tasks = [
            t
            for t in self.list_for_project(company_id, project_id)
            if name in t.assignees and t.is_scheduled
        ]
        return sorted(tasks, key=lambda t: t.deadline_from)

    def update(
        self, company_id: str, project_id: str, task_id: str, fields: dict[str, Any]
    ) -> Task | None:
        """Merge *fields* into the stored task; unspecified fields are kept."""
        with self.lock:
            current = self.get(company_id, project_id, task_id)
            if current is None:
                return None
            updated = Task.model_validate({**current.model_dump(), **fields})
            self._store[task_id] = updated
        logger.debug("Merged %s into task %s", sorted(fields), task_id)
        return updated

    def delete(self, company_id: str, project_id: str, task_id: str) -> bool:
        with self.lock:
            if self.get(company_id, project_id, task_id) is None:
                return False
            del self._store[task_id]
        return True


class AssigneeRepository:
    """Dict-backed store for Assignee instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Assignee] = {}

    def add(self, assignee: Assignee) -> None:
        self._store[assignee.id] = assignee

    def get_by_name(self, name: str) -> Assignee | None:
        for assignee in self._store.values():
            if assignee.name == name:
                return assignee
        return None

    def list_all(self) -> list[Assignee]:
        return sorted(self._store.values(), key=lambda a: a.name.lower())
