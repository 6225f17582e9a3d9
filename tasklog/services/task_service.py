"""
Task service - validation, mutation and audit logging for task records.

All task mutations MUST go through here so every committed change gets its
audit entry. Validation and not-found checks happen before any write.
"""
import logging
from typing import Any, Dict

from tasklog.api.schemas import (
    AuditLogPage,
    AuditLogResponse,
    TaskCreate,
    TaskPage,
    TaskResponse,
    TaskUpdate,
    validate_body,
)
from tasklog.models.audit import AuditLog
from tasklog.models.domain import Task
from tasklog.models.enums import AuditAction, TaskField
from tasklog.services.audit import AuditTrail, changed_fields
from tasklog.services.errors import StoreError, StoreFailure, TaskNotFound
from tasklog.services.pagination import PageRequest, total_pages
from tasklog.services.store import SearchFilter, Store

logger = logging.getLogger("tasklog.service")

SEARCH_FIELDS = (TaskField.TITLE.value, TaskField.DESCRIPTION.value)


class TaskService:
    """Task CRUD plus audit logging against one store session."""

    def __init__(self, store: Store):
        self.store = store
        self.audit = AuditTrail(store)

    async def list_tasks(self, window: PageRequest, search: str = "") -> TaskPage:
        """Newest tasks first, optionally filtered by a substring of title or description."""
        search_filter = SearchFilter(term=search, fields=SEARCH_FIELDS) if search else None
        try:
            rows, total = await self.store.query(
                Task,
                order_by="created_at",
                offset=window.offset,
                limit=window.limit,
                search=search_filter,
            )
        except StoreError as exc:
            raise StoreFailure("Failed to fetch tasks") from exc

        return TaskPage(
            tasks=[TaskResponse.model_validate(row) for row in rows],
            total=total,
            page=window.page,
            limit=window.limit,
            total_pages=total_pages(total, window.limit),
        )

    async def create_task(self, body: Dict[str, Any]) -> TaskResponse:
        """
        Insert a task and record a "Create Task" entry with both fields.

        No audit entry is written if the insert fails.
        """
        data = validate_body(TaskCreate, body)
        content = {"title": data.title, "description": data.description}
        try:
            task = await self.store.insert(Task, content)
        except StoreError as exc:
            raise StoreFailure("Failed to create task") from exc

        await self.audit.record(AuditAction.CREATE_TASK, task.id, content)
        logger.info("Created task %s", task.id)
        return TaskResponse.model_validate(task)

    async def update_task(self, task_id: int, body: Dict[str, Any]) -> TaskResponse:
        """
        Apply only the fields that actually change.

        The task is looked up before the body is validated, so an unknown id
        is a 404 whatever the body holds. If nothing differs from the stored
        task the store is not written, no audit entry is recorded and the
        current task is returned.
        """
        try:
            current = await self.store.get(Task, task_id)
        except StoreError as exc:
            raise StoreFailure("Failed to fetch task") from exc
        if current is None:
            raise TaskNotFound(task_id)

        data = validate_body(TaskUpdate, body)
        changes: Dict[str, Any] = changed_fields(current, data.supplied_fields())
        if not changes:
            return TaskResponse.model_validate(current)

        try:
            task = await self.store.update(Task, task_id, changes)
        except StoreError as exc:
            raise StoreFailure("Failed to update task") from exc

        await self.audit.record(AuditAction.UPDATE_TASK, task_id, changes)
        logger.info("Updated task %s fields %s", task_id, sorted(changes))
        return TaskResponse.model_validate(task)

    async def delete_task(self, task_id: int) -> None:
        """
        Physically delete a task and record a "Delete Task" entry.

        Deleting an id that matches no row still succeeds and is still audited.
        """
        try:
            existed = await self.store.delete(Task, task_id)
        except StoreError as exc:
            raise StoreFailure("Failed to delete task") from exc

        if not existed:
            logger.warning("Delete of task %s matched no row; recording it anyway", task_id)

        await self.audit.record(AuditAction.DELETE_TASK, task_id, None)

    async def list_logs(self, window: PageRequest) -> AuditLogPage:
        """Newest audit entries first."""
        try:
            rows, total = await self.store.query(
                AuditLog,
                order_by="timestamp",
                offset=window.offset,
                limit=window.limit,
            )
        except StoreError as exc:
            raise StoreFailure("Failed to fetch logs") from exc

        return AuditLogPage(
            logs=[AuditLogResponse.model_validate(row) for row in rows],
            total=total,
            page=window.page,
            limit=window.limit,
            total_pages=total_pages(total, window.limit),
        )
