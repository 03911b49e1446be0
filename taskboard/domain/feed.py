"""Live task snapshots per project, delivered to subscribed listeners."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from taskboard.domain.models import Task
from taskboard.repos.memory import TaskRepository

logger = logging.getLogger(__name__)

Listener = Callable[[list[Task]], None]


class SnapshotFeed:
    """Pushes the full task list of a project to its listeners on every change.

    A listener gets the current snapshot as soon as it subscribes, then a new
    replacement list after each write in the same company/project scope.
    """

    def __init__(self, task_repo: TaskRepository) -> None:
        self.task_repo = task_repo
        self._listeners: dict[tuple[str, str], list[Listener]] = defaultdict(list)

    def subscribe(
        self, company_id: str, project_id: str, listener: Listener
    ) -> Callable[[], None]:
        key = (company_id, project_id)
        self._listeners[key].append(listener)
        snapshot = self.task_repo.list_for_project(company_id, project_id)
        self._deliver(listener, company_id, project_id, snapshot)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def publish(self, company_id: str, project_id: str) -> None:
        listeners = list(self._listeners.get((company_id, project_id), []))
        if not listeners:
            return
        snapshot = self.task_repo.list_for_project(company_id, project_id)
        for listener in listeners:
            self._deliver(listener, company_id, project_id, list(snapshot))

    def _deliver(
        self, listener: Listener, company_id: str, project_id: str, snapshot: list[Task]
    ) -> None:
        try:
            listener(snapshot)
        except Exception:
            logger.exception("Snapshot listener failed for %s/%s", company_id, project_id)
