"""Pydantic request schemas. Shape validation only; required-field checks live in validators."""

from typing import Any, Optional

from pydantic import BaseModel, Field, StrictBool

from backoffice.domain.models.platform import DocumentStatus, MilestoneStatus, TaskStatus
from backoffice.security.permissions import UserRole, UserStatus


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class LoginRequest(BaseModel):
    identifier: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

class RoleUpdateRequest(BaseModel):
    role: Optional[UserRole] = None


class StatusUpdateRequest(BaseModel):
    status: Optional[UserStatus] = None


class PasswordResetRequest(BaseModel):
    password: Optional[str] = None


class RolePermissionsUpdateRequest(BaseModel):
    """Any shape is accepted; unknown roles, ids and malformed entries are normalized away."""

    roles: Any = None


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------

class RequirementCreateRequest(BaseModel):
    title: Optional[str] = None
    background: str = ""


class ProjectCreateRequest(BaseModel):
    requirement_id: Optional[str] = None
    name: Optional[str] = None


class RequirementDocumentCreateRequest(BaseModel):
    content: Optional[str] = None


class RequirementReviewRequest(BaseModel):
    approved: Optional[StrictBool] = None
    comment: Optional[str] = None


class DocumentCommentRequest(BaseModel):
    comment: Optional[str] = None


class ProjectStatusUpdateRequest(BaseModel):
    status: Optional[str] = None


class ProjectDocumentCreateRequest(BaseModel):
    type: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    status: Optional[DocumentStatus] = None
    version_note: Optional[str] = None


class ProjectDocumentReviewRequest(BaseModel):
    approved: Optional[StrictBool] = None
    comment: Optional[str] = None


class TaskCreateRequest(BaseModel):
    title: Optional[str] = None
    status: Optional[TaskStatus] = None
    assignee_id: Optional[str] = None
    due_date: Optional[str] = None


class TaskUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    status: Optional[TaskStatus] = None
    assignee_id: Optional[str] = None
    due_date: Optional[str] = None


class MilestoneCreateRequest(BaseModel):
    title: Optional[str] = None
    status: Optional[MilestoneStatus] = None
    due_date: Optional[str] = None


class MilestoneUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    status: Optional[MilestoneStatus] = None
    due_date: Optional[str] = None


class MatchingEvaluateRequest(BaseModel):
    requirement_id: Optional[str] = None
    team_id: Optional[str] = None
    budget_estimate: Optional[str] = None
    timeline_estimate: Optional[str] = None
    score: Optional[float] = Field(None, ge=0.0, le=100.0)


class MatchingAssignRequest(BaseModel):
    team_id: Optional[str] = None


class TestingGenerateRequest(BaseModel):
    project_id: Optional[str] = None
    scope: str = ""


class CodeReviewRequest(BaseModel):
    project_id: Optional[str] = None
    repository_url: Optional[str] = None
    commit_sha: Optional[str] = None


class SupportMessageRequest(BaseModel):
    thread_id: Optional[str] = None
    message: Optional[str] = None
