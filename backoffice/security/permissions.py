"""Static permission catalogue and default role grants. Never persisted."""

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    CUSTOMER = "customer"
    DEVELOPER = "developer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class PermissionDefinition:
    id: str
    label: str
    description: str
    category: str


PERMISSION_DEFINITIONS: tuple[PermissionDefinition, ...] = (
    PermissionDefinition(
        "requirements.create", "Submit requirements",
        "Create a requirement and generate its requirement document", "requirements",
    ),
    PermissionDefinition(
        "requirements.documents.manage", "Edit requirement documents",
        "Add or update requirement document versions", "requirements",
    ),
    PermissionDefinition(
        "requirements.documents.review", "Review requirement documents",
        "Approve or comment on requirement document versions", "requirements",
    ),
    PermissionDefinition(
        "projects.create", "Create projects",
        "Create a project from a requirement and start the flow", "projects",
    ),
    PermissionDefinition(
        "projects.status.manage", "Update project status",
        "Move a project through its status flow", "projects",
    ),
    PermissionDefinition(
        "projects.documents.requirement", "Write requirement specs",
        "Create or update requirement-type project documents", "documents",
    ),
    PermissionDefinition(
        "projects.documents.system", "Write system architecture docs",
        "Create or update system architecture and design documents", "documents",
    ),
    PermissionDefinition(
        "projects.documents.software", "Write software design docs",
        "Create or update software design and implementation specs", "documents",
    ),
    PermissionDefinition(
        "projects.documents.test", "Write test documents",
        "Create or update test plans and records", "documents",
    ),
    PermissionDefinition(
        "projects.documents.delivery", "Write user guides",
        "Create or update delivery and usage documents", "documents",
    ),
    PermissionDefinition(
        "projects.documents.review", "Review project documents",
        "Approve or comment on project document versions", "documents",
    ),
    PermissionDefinition(
        "projects.tasks.manage", "Manage tasks",
        "Create tasks and update their status", "collaboration",
    ),
    PermissionDefinition(
        "projects.milestones.manage", "Manage milestones",
        "Create and update milestones", "collaboration",
    ),
    PermissionDefinition(
        "quality.reports.view", "View quality reports",
        "View testing and code review reports", "quality",
    ),
)

PERMISSION_IDS: frozenset[str] = frozenset(p.id for p in PERMISSION_DEFINITIONS)

ALL_PERMISSION_IDS: list[str] = [p.id for p in PERMISSION_DEFINITIONS]

DEFAULT_ROLE_PERMISSIONS: dict[str, list[str]] = {
    UserRole.CUSTOMER.value: [
        "requirements.create",
        "requirements.documents.manage",
        "requirements.documents.review",
        "projects.documents.review",
        "quality.reports.view",
    ],
    UserRole.DEVELOPER.value: [
        "projects.create",
        "projects.status.manage",
        "projects.documents.system",
        "projects.documents.software",
        "projects.documents.test",
        "projects.documents.delivery",
        "projects.documents.review",
        "projects.tasks.manage",
        "projects.milestones.manage",
        "quality.reports.view",
    ],
    UserRole.ADMIN.value: list(ALL_PERMISSION_IDS),
}


def is_known_role(role: str) -> bool:
    return role in DEFAULT_ROLE_PERMISSIONS


def role_bypasses_permissions(role: str) -> bool:
    """Single authorization predicate for the superuser role: admin holds every permission."""
    return role == UserRole.ADMIN.value
