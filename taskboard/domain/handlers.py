"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from taskboard.domain.bus import EventBus
from taskboard.domain.events import (
    CompanyDeleted,
    ConflictDetected,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from taskboard.domain.feed import SnapshotFeed
from taskboard.repos.memory import ProjectRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the stores."""

    def __init__(
        self,
        bus: EventBus,
        project_repo: ProjectRepository,
        feed: SnapshotFeed,
    ) -> None:
        self.bus = bus
        self.project_repo = project_repo
        self.feed = feed
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(TaskCreated, self.on_task_changed)
        self.bus.subscribe(TaskUpdated, self.on_task_changed)
        self.bus.subscribe(TaskDeleted, self.on_task_changed)
        self.bus.subscribe(CompanyDeleted, self.on_company_deleted)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_task_changed(self, event: TaskCreated | TaskUpdated | TaskDeleted) -> None:
        self.feed.publish(event.company_id, event.project_id)

    def on_company_deleted(self, event: CompanyDeleted) -> None:
        # Projects cascade; their tasks are left in place.
        removed = self.project_repo.delete_for_company(event.company_id)
        logger.info(
            "Deleted company %s and %d project(s)", event.company_id, len(removed)
        )

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        reason = event.result.reason
        if reason is None:
            return
        if reason.kind == "overlap":
            logger.info(
                "Refused write in %s/%s: %s is already booked on task %s",
                event.company_id,
                event.project_id,
                reason.assignee,
                reason.with_task_id,
            )
        else:
            logger.info(
                "Refused write in %s/%s: window outside project range %s - %s",
                event.company_id,
                event.project_id,
                reason.allowed_from.isoformat(),
                reason.allowed_to.isoformat(),
            )
