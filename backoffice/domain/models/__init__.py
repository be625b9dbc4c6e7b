"""Domain models. Persisted record shapes."""

from backoffice.domain.models.notification import Notification
from backoffice.domain.models.platform import (
    AIJob,
    AIJobStatus,
    DocumentStatus,
    MatchingResult,
    MatchingStatus,
    Milestone,
    MilestoneStatus,
    Project,
    ProjectDocument,
    ProjectStatus,
    QualityReport,
    Requirement,
    RequirementDocument,
    RequirementStatus,
    SupportMessage,
    Task,
    TaskStatus,
    TestDocument,
)
from backoffice.domain.models.user import StoredUser

__all__ = [
    "AIJob",
    "AIJobStatus",
    "DocumentStatus",
    "MatchingResult",
    "MatchingStatus",
    "Milestone",
    "MilestoneStatus",
    "Notification",
    "Project",
    "ProjectDocument",
    "ProjectStatus",
    "QualityReport",
    "Requirement",
    "RequirementDocument",
    "RequirementStatus",
    "StoredUser",
    "SupportMessage",
    "Task",
    "TaskStatus",
    "TestDocument",
]
