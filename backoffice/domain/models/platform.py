"""Platform records: requirements, projects, documents, collaboration items, matching, quality, support."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

DEFAULT_TEAM_ID = "team-default"
DEFAULT_MATCHING_SCORE = 80.0
DEFAULT_ESTIMATE = "TBD"

# Project document type -> permission needed to write it
PROJECT_DOCUMENT_PERMISSIONS = {
    "requirement": "projects.documents.requirement",
    "system": "projects.documents.system",
    "software": "projects.documents.software",
    "test": "projects.documents.test",
    "delivery": "projects.documents.delivery",
}


class RequirementStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    MATCHED = "matched"
    CONVERTED = "converted"


class ProjectStatus(str, Enum):
    INTAKE = "intake"
    IMPLEMENTATION = "implementation"
    ON_HOLD = "on_hold"
    CLOSED = "closed"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    ARCHIVED = "archived"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class MilestoneStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    DONE = "done"


class MatchingStatus(str, Enum):
    EVALUATED = "evaluated"
    ASSIGNED = "assigned"


class AIJobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class Requirement(BaseModel):
    id: str
    title: str
    background: str = ""
    status: RequirementStatus = RequirementStatus.SUBMITTED
    owner_id: str
    created_at: datetime
    updated_at: datetime


class Project(BaseModel):
    id: str
    requirement_id: str
    name: str
    status: ProjectStatus = ProjectStatus.INTAKE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RequirementDocument(BaseModel):
    id: str
    requirement_id: str
    version: int
    content_url: str
    status: DocumentStatus = DocumentStatus.PENDING_APPROVAL
    approved_by: Optional[str] = None
    review_comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProjectDocument(BaseModel):
    id: str
    project_id: str
    type: str
    title: str
    version: int
    content_url: str
    status: DocumentStatus = DocumentStatus.DRAFT
    version_note: Optional[str] = None
    review_comment: Optional[str] = None
    approved_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Task(BaseModel):
    id: str
    project_id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    assignee_id: Optional[str] = None
    due_date: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Milestone(BaseModel):
    id: str
    project_id: str
    title: str
    status: MilestoneStatus = MilestoneStatus.PLANNED
    due_date: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MatchingResult(BaseModel):
    id: str
    requirement_id: str
    team_id: str = DEFAULT_TEAM_ID
    score: float = DEFAULT_MATCHING_SCORE
    budget: str = DEFAULT_ESTIMATE
    timeline: str = DEFAULT_ESTIMATE
    status: MatchingStatus = MatchingStatus.EVALUATED
    created_at: datetime
    updated_at: datetime


class QualityReport(BaseModel):
    id: str
    project_id: str
    type: str  # "testing" | "code_review"
    status: str = "ready"
    summary: str
    report_url: str
    created_at: datetime
    updated_at: datetime


class TestDocument(BaseModel):
    id: str
    project_id: str
    version: int
    content_url: str
    created_at: datetime
    updated_at: datetime


class AIJob(BaseModel):
    id: str
    type: str
    target_id: str
    status: AIJobStatus = AIJobStatus.QUEUED
    result_url: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class SupportMessage(BaseModel):
    id: str
    thread_id: str
    sender_id: str
    sender_role: str
    recipient_id: Optional[str] = None
    recipient_role: str
    message: str
    created_at: datetime
