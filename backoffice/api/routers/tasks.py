"""Project tasks API router. Mutations are audited and notify the requirement owner."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backoffice.api.dependencies import (
    CurrentUser,
    get_audit_logger,
    get_notification_service,
    get_platform_service,
    require_permission,
)
from backoffice.application.collaboration import notify_requirement_owner
from backoffice.application.exceptions import NotFoundError
from backoffice.application.notification_service import NotificationService
from backoffice.application.platform_service import PlatformService
from backoffice.domain.exceptions import MissingFieldError
from backoffice.domain.models.platform import Task
from backoffice.domain.schemas import TaskCreateRequest, TaskUpdateRequest
from backoffice.domain.validators import patch_updates, require_text
from backoffice.governance.audit_logger import AuditLogger
from backoffice.security.tokens import SessionClaims

router = APIRouter()

TaskManager = Annotated[SessionClaims, Depends(require_permission("projects.tasks.manage"))]

# Fields a PATCH may clear with an explicit null.
CLEARABLE_FIELDS = frozenset({"assignee_id", "due_date"})


async def _require_project(platform: PlatformService, project_id: str) -> None:
    if await platform.get_project(project_id) is None:
        raise NotFoundError("Project not found")


def _snapshot(task: Task) -> dict[str, Any]:
    return task.model_dump(mode="json", include={"id", "project_id", "title", "status", "assignee_id", "due_date"})


@router.get("/{project_id}/tasks")
async def list_tasks(
    project_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    await _require_project(platform, project_id)
    items = await platform.list_tasks(project_id)
    return {"tasks": [t.model_dump(mode="json") for t in items]}


@router.post("/{project_id}/tasks", status_code=201)
async def create_task(
    project_id: str,
    body: TaskCreateRequest,
    user: TaskManager,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    title = require_text(body.title, "title")
    await _require_project(platform, project_id)
    task = await platform.create_task(
        project_id=project_id,
        title=title,
        status=body.status,
        assignee_id=body.assignee_id,
        due_date=body.due_date,
    )
    await audit.log_action(actor_id=user.sub, action="TASK_CREATED", after=_snapshot(task))
    await notify_requirement_owner(
        platform,
        notifications,
        project_id=project_id,
        actor_id=user.sub,
        type="collaboration.task.created",
        title="New task",
        message=f"Task \"{task.title}\" was added to your project.",
    )
    return {"task": task.model_dump(mode="json")}


@router.patch("/{project_id}/tasks/{task_id}")
async def update_task(
    project_id: str,
    task_id: str,
    body: TaskUpdateRequest,
    user: TaskManager,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    updates = patch_updates(body, CLEARABLE_FIELDS)
    if not updates:
        raise MissingFieldError("No fields to update")
    before = next((t for t in await platform.list_tasks(project_id) if t.id == task_id), None)
    if before is None:
        raise NotFoundError("Task not found")
    updated = await platform.update_task(project_id, task_id, updates)
    if updated is None:
        raise NotFoundError("Task not found")

    await audit.log_action(
        actor_id=user.sub,
        action="TASK_UPDATED",
        before=_snapshot(before),
        after=_snapshot(updated),
    )
    await notify_requirement_owner(
        platform,
        notifications,
        project_id=project_id,
        actor_id=user.sub,
        type="collaboration.task.updated",
        title="Task updated",
        message=f"Task \"{updated.title}\" is now {updated.status.value}.",
    )
    return {"task": updated.model_dump(mode="json")}
