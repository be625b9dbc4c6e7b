"""Domain schemas. Request validation."""

from backoffice.domain.schemas.requests import (
    CodeReviewRequest,
    DocumentCommentRequest,
    LoginRequest,
    MatchingAssignRequest,
    MatchingEvaluateRequest,
    MilestoneCreateRequest,
    MilestoneUpdateRequest,
    PasswordResetRequest,
    ProjectCreateRequest,
    ProjectDocumentCreateRequest,
    ProjectDocumentReviewRequest,
    ProjectStatusUpdateRequest,
    RegisterRequest,
    RequirementCreateRequest,
    RequirementDocumentCreateRequest,
    RequirementReviewRequest,
    RoleUpdateRequest,
    RolePermissionsUpdateRequest,
    StatusUpdateRequest,
    SupportMessageRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
    TestingGenerateRequest,
)

__all__ = [
    "CodeReviewRequest",
    "DocumentCommentRequest",
    "LoginRequest",
    "MatchingAssignRequest",
    "MatchingEvaluateRequest",
    "MilestoneCreateRequest",
    "MilestoneUpdateRequest",
    "PasswordResetRequest",
    "ProjectCreateRequest",
    "ProjectDocumentCreateRequest",
    "ProjectDocumentReviewRequest",
    "ProjectStatusUpdateRequest",
    "RegisterRequest",
    "RequirementCreateRequest",
    "RequirementDocumentCreateRequest",
    "RequirementReviewRequest",
    "RoleUpdateRequest",
    "RolePermissionsUpdateRequest",
    "StatusUpdateRequest",
    "SupportMessageRequest",
    "TaskCreateRequest",
    "TaskUpdateRequest",
    "TestingGenerateRequest",
]
