# backoffice/api/routers/projects.py

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backoffice.api.dependencies import (
    AdminUser,
    CurrentUser,
    get_audit_logger,
    get_notification_service,
    get_permissions_store,
    get_platform_service,
    require_permission,
)
from backoffice.application.exceptions import NotFoundError
from backoffice.application.notification_service import NotificationService
from backoffice.application.platform_service import PlatformService
from backoffice.domain.exceptions import UnsupportedValueError
from backoffice.domain.models.platform import (
    PROJECT_DOCUMENT_PERMISSIONS,
    Project,
    ProjectDocument,
    ProjectStatus,
)
from backoffice.domain.schemas import (
    ProjectCreateRequest,
    ProjectDocumentCreateRequest,
    ProjectDocumentReviewRequest,
    ProjectStatusUpdateRequest,
)
from backoffice.domain.validators import require_choice, require_text
from backoffice.governance.audit_logger import AuditLogger
from backoffice.security.exceptions import AuthorizationError
from backoffice.security.permissions import UserRole
from backoffice.security.permissions_store import PermissionsStore
from backoffice.security.tokens import SessionClaims

router = APIRouter()


def _workspace_link(project_id: str) -> str:
    return f"/workspace?project={project_id}"


async def _require_project(platform: PlatformService, project_id: str) -> Project:
    project = await platform.get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


@router.get("")
async def list_projects(
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    items = await platform.list_projects()
    return {"projects": [p.model_dump(mode="json") for p in items]}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    project = await _require_project(platform, project_id)
    return {"project": project.model_dump(mode="json")}


@router.post("", status_code=201)
async def create_project(
    body: ProjectCreateRequest,
    user: Annotated[SessionClaims, Depends(require_permission("projects.create"))],
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Convert a requirement into a project. Admins and the requirement owner are notified."""
    requirement_id = require_text(body.requirement_id, "requirement_id")
    name = require_text(body.name, "name")
    requirement = await platform.get_requirement(requirement_id)
    if requirement is None:
        raise NotFoundError("Requirement not found")

    project = await platform.create_project(requirement_id=requirement_id, name=name)
    await audit.log_action(
        actor_id=user.sub,
        action="PROJECT_CREATED",
        after={"project_id": project.id, "requirement_id": requirement_id},
    )

    admins = await notifications.list_active_user_ids_by_role(["admin"])
    await notifications.try_notify_users(
        recipient_ids=[*admins, requirement.owner_id],
        actor_id=user.sub,
        type="project.created",
        title="Project created from requirement",
        message=f"Requirement \"{requirement.title}\" became project \"{project.name}\".",
        link=_workspace_link(project.id),
        link_by_role={"customer": f"/my/requirements/{requirement_id}"},
    )
    return {"project_id": project.id, "status": project.status.value}


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Remove a project with its documents, reports, AI jobs, tasks and milestones."""
    removed = await platform.delete_project(project_id)
    if removed is None:
        raise NotFoundError("Project not found")
    await audit.log_action(
        actor_id=admin.sub,
        action="PROJECT_DELETED",
        before={"project_id": project_id, "requirement_id": removed.requirement_id},
    )
    return {"ok": True}


@router.patch("/{project_id}/status")
async def update_project_status(
    project_id: str,
    body: ProjectStatusUpdateRequest,
    user: Annotated[SessionClaims, Depends(require_permission("projects.status.manage"))],
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    status = require_choice(body.status, ProjectStatus, "status")
    result = await platform.update_project_status(project_id, status)
    if result is None:
        raise NotFoundError("Project not found")
    before, after = result

    await audit.log_action(
        actor_id=user.sub,
        action="PROJECT_STATUS_UPDATED",
        before={"project_id": project_id, "status": before.status.value},
        after={"project_id": project_id, "status": after.status.value},
    )
    requirement = await platform.get_requirement(after.requirement_id)
    recipients = await notifications.list_active_user_ids_by_role(["developer", "admin"])
    await notifications.try_notify_users(
        recipient_ids=[*recipients, requirement.owner_id if requirement else ""],
        actor_id=user.sub,
        type="project.status.updated",
        title="Project status updated",
        message=f"Project \"{after.name}\" moved from {before.status.value} to {after.status.value}.",
        link=_workspace_link(project_id),
        link_by_role={"customer": f"/my/requirements/{after.requirement_id}"},
    )
    return {"project": after.model_dump(mode="json")}


# ---------------------------------------------------------------------------
# Document centre
# ---------------------------------------------------------------------------

def _document_view(document: ProjectDocument) -> dict[str, Any]:
    return document.model_dump(mode="json", exclude={"content_url"})


@router.get("/{project_id}/documents")
async def list_documents(
    project_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    await _require_project(platform, project_id)
    items = await platform.list_project_documents(project_id)
    return {"documents": [_document_view(d) for d in items]}


@router.get("/{project_id}/documents/{document_id}")
async def get_document(
    project_id: str,
    document_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    found = await platform.get_project_document(project_id, document_id)
    if found is None:
        raise NotFoundError("Document not found")
    document, content = found
    return {"document": _document_view(document), "content": content}


@router.post("/{project_id}/documents", status_code=201)
async def create_document(
    project_id: str,
    body: ProjectDocumentCreateRequest,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    permissions: Annotated[PermissionsStore, Depends(get_permissions_store)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Add a document version. Each document type needs its own write permission."""
    doc_type = require_text(body.type, "type")
    title = require_text(body.title, "title")
    content = require_text(body.content, "content")
    permission_id = PROJECT_DOCUMENT_PERMISSIONS.get(doc_type)
    if permission_id is None:
        raise UnsupportedValueError(f"Unsupported type: {doc_type}")
    if not await permissions.has_permission(user.role, permission_id):
        raise AuthorizationError(f"Missing permission: {permission_id}")
    project = await _require_project(platform, project_id)

    document = await platform.create_project_document(
        project_id=project_id,
        type=doc_type,
        title=title,
        content=content,
        status=body.status,
        version_note=body.version_note,
    )
    await audit.log_action(
        actor_id=user.sub,
        action="PROJECT_DOCUMENT_CREATED",
        after={"project_id": project_id, "document_id": document.id, "version": document.version},
    )
    requirement = await platform.get_requirement(project.requirement_id)
    admins = await notifications.list_active_user_ids_by_role(["admin"])
    await notifications.try_notify_users(
        recipient_ids=[*admins, requirement.owner_id if requirement else ""],
        actor_id=user.sub,
        type="project.document.created",
        title="Project document updated",
        message=f"Project \"{project.name}\" has {doc_type} document version v{document.version}.",
        link=_workspace_link(project_id),
        link_by_role={"customer": f"/my/requirements/{project.requirement_id}"},
    )
    return {"document_id": document.id, "version": document.version}


@router.post("/{project_id}/documents/{document_id}/review")
async def review_document(
    project_id: str,
    document_id: str,
    body: ProjectDocumentReviewRequest,
    user: Annotated[SessionClaims, Depends(require_permission("projects.documents.review"))],
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Comment on a document, or sign it off. Only the requirement owner (or an admin) signs off."""
    project = await _require_project(platform, project_id)
    requirement = await platform.get_requirement(project.requirement_id)
    if requirement is None:
        raise NotFoundError("Requirement not found")
    if body.approved is not None and user.role != UserRole.ADMIN.value and requirement.owner_id != user.sub:
        raise AuthorizationError("Only the requirement owner may sign off project documents")

    updated = await platform.review_project_document(
        project_id,
        document_id,
        reviewer_id=user.sub,
        approved=body.approved,
        comment=(body.comment or "").strip() or None,
    )
    if updated is None:
        raise NotFoundError("Document not found")

    await audit.log_action(
        actor_id=user.sub,
        action="PROJECT_DOCUMENT_REVIEWED",
        after={"project_id": project_id, "document_id": document_id, "status": updated.status.value},
    )
    sent_back = body.approved is False
    recipients = await notifications.list_active_user_ids_by_role(["developer", "admin"])
    await notifications.try_notify_users(
        recipient_ids=[*recipients, requirement.owner_id],
        actor_id=user.sub,
        type="project.document.reviewed",
        title="Project document needs changes" if sent_back else "Project document reviewed",
        message=(
            f"A document of project \"{project.name}\" was sent back; see the review comment."
            if sent_back
            else f"A document of project \"{project.name}\" was reviewed."
        ),
        link=_workspace_link(project_id),
        link_by_role={"customer": f"/my/requirements/{project.requirement_id}"},
    )
    return {"status": updated.status.value}


@router.delete("/{project_id}/documents/{document_id}")
async def delete_document(
    project_id: str,
    document_id: str,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    removed = await platform.delete_project_document(project_id, document_id)
    if removed is None:
        raise NotFoundError("Document not found")
    await audit.log_action(
        actor_id=admin.sub,
        action="PROJECT_DOCUMENT_DELETED",
        before={"project_id": project_id, "document_id": document_id, "version": removed.version},
    )
    return {"ok": True}
