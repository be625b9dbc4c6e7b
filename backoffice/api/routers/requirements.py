# backoffice/api/routers/requirements.py

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backoffice.api.dependencies import (
    AdminUser,
    CurrentUser,
    get_audit_logger,
    get_notification_service,
    get_platform_service,
    require_permission,
)
from backoffice.application.exceptions import NotFoundError
from backoffice.application.notification_service import NotificationService
from backoffice.application.platform_service import PlatformService
from backoffice.domain.exceptions import MissingFieldError
from backoffice.domain.models.platform import Requirement, RequirementDocument
from backoffice.domain.schemas import (
    DocumentCommentRequest,
    RequirementCreateRequest,
    RequirementDocumentCreateRequest,
    RequirementReviewRequest,
)
from backoffice.domain.validators import require_text
from backoffice.governance.audit_logger import AuditLogger
from backoffice.security.exceptions import AuthorizationError
from backoffice.security.permissions import UserRole
from backoffice.security.tokens import SessionClaims

router = APIRouter()

DocumentManager = Annotated[SessionClaims, Depends(require_permission("requirements.documents.manage"))]
DocumentReviewer = Annotated[SessionClaims, Depends(require_permission("requirements.documents.review"))]


async def _require_requirement(platform: PlatformService, requirement_id: str) -> Requirement:
    requirement = await platform.get_requirement(requirement_id)
    if requirement is None:
        raise NotFoundError("Requirement not found")
    return requirement


def _require_owner_or_admin(user: SessionClaims, requirement: Requirement) -> None:
    if user.role != UserRole.ADMIN.value and requirement.owner_id != user.sub:
        raise AuthorizationError("Only the requirement owner may do this")


def _document_view(document: RequirementDocument) -> dict[str, Any]:
    return document.model_dump(mode="json", exclude={"content_url"})


async def _notify_followers(
    notifications: NotificationService,
    requirement: Requirement,
    *,
    actor_id: str,
    type: str,
    title: str,
    message: str,
) -> None:
    """Developers, admins and the requirement owner hear about document activity."""
    recipients = await notifications.list_active_user_ids_by_role(["developer", "admin"])
    await notifications.try_notify_users(
        recipient_ids=[*recipients, requirement.owner_id],
        actor_id=actor_id,
        type=type,
        title=title,
        message=message,
        link=f"/requirements/{requirement.id}",
        link_by_role={"customer": f"/my/requirements/{requirement.id}"},
    )


@router.get("")
async def list_requirements(
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    items = await platform.list_requirements()
    return {"requirements": [r.model_dump(mode="json") for r in items]}


@router.get("/me")
async def list_my_requirements(
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    items = await platform.list_requirements(owner_id=user.sub)
    return {"requirements": [r.model_dump(mode="json") for r in items]}


@router.get("/{requirement_id}")
async def get_requirement(
    requirement_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    requirement = await _require_requirement(platform, requirement_id)
    return {"requirement": requirement.model_dump(mode="json")}


@router.post("", status_code=201)
async def create_requirement(
    body: RequirementCreateRequest,
    user: Annotated[SessionClaims, Depends(require_permission("requirements.create"))],
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
):
    """Submit a requirement; developers and admins are notified."""
    title = require_text(body.title, "title")
    requirement = await platform.create_requirement(
        owner_id=user.sub, title=title, background=body.background.strip()
    )
    recipients = await notifications.list_active_user_ids_by_role(["developer", "admin"])
    await notifications.try_notify_users(
        recipient_ids=recipients,
        actor_id=user.sub,
        type="requirement.created",
        title="New requirement submitted",
        message=f"Requirement \"{requirement.title}\" was submitted.",
        link=f"/requirements/{requirement.id}",
    )
    return {"requirement": requirement.model_dump(mode="json")}


@router.delete("/{requirement_id}")
async def delete_requirement(
    requirement_id: str,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Remove a requirement and its documents. 409 while projects still reference it."""
    removed = await platform.delete_requirement(requirement_id)
    if removed is None:
        raise NotFoundError("Requirement not found")
    await audit.log_action(
        actor_id=admin.sub,
        action="REQUIREMENT_DELETED",
        before={"requirement_id": requirement_id, "title": removed.title},
    )
    return {"ok": True}


@router.get("/{requirement_id}/projects")
async def list_requirement_projects(
    requirement_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    requirement = await _require_requirement(platform, requirement_id)
    _require_owner_or_admin(user, requirement)
    items = await platform.list_projects(requirement_id=requirement_id)
    return {"projects": [p.model_dump(mode="json") for p in items]}


@router.get("/{requirement_id}/documents")
async def list_documents(
    requirement_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    await _require_requirement(platform, requirement_id)
    items = await platform.list_requirement_documents(requirement_id)
    return {"documents": [_document_view(d) for d in items]}


@router.get("/{requirement_id}/documents/{document_id}")
async def get_document(
    requirement_id: str,
    document_id: str,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    found = await platform.get_requirement_document(requirement_id, document_id)
    if found is None:
        raise NotFoundError("Document not found")
    document, content = found
    return {"document": _document_view(document), "content": content}


@router.post("/{requirement_id}/documents", status_code=201)
async def create_document(
    requirement_id: str,
    body: RequirementDocumentCreateRequest,
    user: DocumentManager,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Add a document version. Only the owner (or an admin) edits; the requirement returns to review."""
    content = require_text(body.content, "content")
    requirement = await _require_requirement(platform, requirement_id)
    _require_owner_or_admin(user, requirement)

    document = await platform.create_requirement_document(requirement_id, content)
    await audit.log_action(
        actor_id=user.sub,
        action="REQUIREMENT_DOCUMENT_CREATED",
        after={"requirement_id": requirement_id, "document_id": document.id, "version": document.version},
    )
    await _notify_followers(
        notifications,
        requirement,
        actor_id=user.sub,
        type="requirement.document.updated",
        title="Requirement document updated",
        message=f"Requirement \"{requirement.title}\" has document version v{document.version}.",
    )
    return {"document_id": document.id, "version": document.version}


@router.post("/{requirement_id}/approve")
async def review_requirement(
    requirement_id: str,
    body: RequirementReviewRequest,
    user: DocumentReviewer,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Approve or reject the requirement; the latest document records the decision."""
    if body.approved is None:
        raise MissingFieldError("approved is required")
    requirement = await _require_requirement(platform, requirement_id)
    _require_owner_or_admin(user, requirement)

    comment = (body.comment or "").strip() or None
    updated = await platform.review_requirement(
        requirement_id, approved=body.approved, reviewer_id=user.sub, comment=comment
    )
    if updated is None:
        raise NotFoundError("Requirement not found")

    await audit.log_action(
        actor_id=user.sub,
        action="REQUIREMENT_APPROVED" if body.approved else "REQUIREMENT_REJECTED",
        after={"requirement_id": requirement_id, "comment": comment or ""},
    )
    verdict = "approved" if body.approved else "rejected"
    await _notify_followers(
        notifications,
        updated,
        actor_id=user.sub,
        type="requirement.reviewed",
        title=f"Requirement {verdict}",
        message=f"Requirement \"{updated.title}\" was {verdict}.",
    )
    return {"status": updated.status.value, "approved_at": updated.updated_at.isoformat()}


@router.post("/{requirement_id}/documents/{document_id}/comment")
async def comment_document(
    requirement_id: str,
    document_id: str,
    body: DocumentCommentRequest,
    user: DocumentReviewer,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    comment = require_text(body.comment, "comment")
    updated = await platform.comment_requirement_document(requirement_id, document_id, comment)
    if updated is None:
        raise NotFoundError("Document not found")

    await audit.log_action(
        actor_id=user.sub,
        action="REQUIREMENT_DOCUMENT_COMMENTED",
        after={"requirement_id": requirement_id, "document_id": document_id},
    )
    requirement = await platform.get_requirement(requirement_id)
    if requirement is not None:
        await _notify_followers(
            notifications,
            requirement,
            actor_id=user.sub,
            type="requirement.document.commented",
            title="New comment on a requirement document",
            message=f"Requirement \"{requirement.title}\" has a new comment.",
        )
    return {"ok": True}


@router.delete("/{requirement_id}/documents/{document_id}")
async def delete_document(
    requirement_id: str,
    document_id: str,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    removed = await platform.delete_requirement_document(requirement_id, document_id)
    if removed is None:
        raise NotFoundError("Document not found")
    await audit.log_action(
        actor_id=admin.sub,
        action="REQUIREMENT_DOCUMENT_DELETED",
        before={"requirement_id": requirement_id, "document_id": document_id, "version": removed.version},
    )
    return {"ok": True}
