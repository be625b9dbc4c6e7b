# backoffice/api/routers/milestones.py

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
from backoffice.domain.models.platform import Milestone
from backoffice.domain.schemas import MilestoneCreateRequest, MilestoneUpdateRequest
from backoffice.domain.validators import patch_updates, require_text
from backoffice.governance.audit_logger import AuditLogger
from backoffice.security.tokens import SessionClaims

router = APIRouter()

MilestoneManager = Annotated[SessionClaims, Depends(require_permission("projects.milestones.manage"))]

CLEARABLE_FIELDS = frozenset({"due_date"})


def _snapshot(milestone: Milestone) -> dict[str, Any]:
    return milestone.model_dump(mode="json", include={"id", "project_id", "title", "status", "due_date"})


@router.get("/{project_id}/milestones")
async def list_milestones(
    project_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    if await platform.get_project(project_id) is None:
        raise NotFoundError("Project not found")
    items = await platform.list_milestones(project_id)
    return {"milestones": [m.model_dump(mode="json") for m in items]}


@router.post("/{project_id}/milestones", status_code=201)
async def create_milestone(
    project_id: str,
    body: MilestoneCreateRequest,
    user: MilestoneManager,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    title = require_text(body.title, "title")
    if await platform.get_project(project_id) is None:
        raise NotFoundError("Project not found")
    milestone = await platform.create_milestone(
        project_id=project_id, title=title, status=body.status, due_date=body.due_date
    )
    await audit.log_action(actor_id=user.sub, action="MILESTONE_CREATED", after=_snapshot(milestone))
    await notify_requirement_owner(
        platform,
        notifications,
        project_id=project_id,
        actor_id=user.sub,
        type="collaboration.milestone.created",
        title="New milestone",
        message=f"Milestone \"{milestone.title}\" was added to your project.",
    )
    return {"milestone": milestone.model_dump(mode="json")}


@router.patch("/{project_id}/milestones/{milestone_id}")
async def update_milestone(
    project_id: str,
    milestone_id: str,
    body: MilestoneUpdateRequest,
    user: MilestoneManager,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    updates = patch_updates(body, CLEARABLE_FIELDS)
    if not updates:
        raise MissingFieldError("No fields to update")
    milestones = await platform.list_milestones(project_id)
    before = next((m for m in milestones if m.id == milestone_id), None)
    if before is None:
        raise NotFoundError("Milestone not found")
    updated = await platform.update_milestone(project_id, milestone_id, updates)
    if updated is None:
        raise NotFoundError("Milestone not found")

    await audit.log_action(
        actor_id=user.sub,
        action="MILESTONE_UPDATED",
        before=_snapshot(before),
        after=_snapshot(updated),
    )
    await notify_requirement_owner(
        platform,
        notifications,
        project_id=project_id,
        actor_id=user.sub,
        type="collaboration.milestone.updated",
        title="Milestone updated",
        message=f"Milestone \"{updated.title}\" is now {updated.status.value}.",
    )
    return {"milestone": updated.model_dump(mode="json")}
