"""One JsonStore per collection, wired from settings. Each store owns its own write lock."""

import asyncio
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from backoffice.config.settings import AppSettings
from backoffice.domain.models import (
    AIJob,
    MatchingResult,
    Milestone,
    Notification,
    Project,
    ProjectDocument,
    QualityReport,
    Requirement,
    RequirementDocument,
    StoredUser,
    SupportMessage,
    Task,
    TestDocument,
)
from backoffice.governance.audit_models import AuditRecord
from backoffice.infrastructure.storage.json_store import JsonStore
from backoffice.infrastructure.storage.paths import resolve_data_path
from backoffice.infrastructure.storage.user_repository import migrate_legacy_if_needed
from backoffice.security.permissions_store import build_role_permissions_store


@dataclass
class DataStores:
    role_permissions: JsonStore[Any]
    users: JsonStore[list[StoredUser]]
    audit_logs: JsonStore[list[AuditRecord]]
    notifications: JsonStore[list[Notification]]
    requirements: JsonStore[list[Requirement]]
    requirement_documents: JsonStore[list[RequirementDocument]]
    projects: JsonStore[list[Project]]
    project_documents: JsonStore[list[ProjectDocument]]
    tasks: JsonStore[list[Task]]
    milestones: JsonStore[list[Milestone]]
    matching_results: JsonStore[list[MatchingResult]]
    quality_reports: JsonStore[list[QualityReport]]
    test_documents: JsonStore[list[TestDocument]]
    ai_jobs: JsonStore[list[AIJob]]
    support_messages: JsonStore[list[SupportMessage]]
    data_dir: Path
    legacy_file: Path

    def all(self) -> list[JsonStore[Any]]:
        return [
            getattr(self, f.name)
            for f in fields(self)
            if isinstance(getattr(self, f.name), JsonStore)
        ]


def _list_store(raw_path: str, item_type: type) -> JsonStore[Any]:
    return JsonStore(resolve_data_path(raw_path), default=[], schema=list[item_type])


def build_stores(settings: AppSettings) -> DataStores:
    return DataStores(
        role_permissions=build_role_permissions_store(
            resolve_data_path(settings.data_role_permissions_file)
        ),
        users=_list_store(settings.data_users_file, StoredUser),
        audit_logs=_list_store(settings.data_audit_file, AuditRecord),
        notifications=_list_store(settings.data_notifications_file, Notification),
        requirements=_list_store(settings.data_requirements_file, Requirement),
        requirement_documents=_list_store(
            settings.data_requirement_documents_file, RequirementDocument
        ),
        projects=_list_store(settings.data_projects_file, Project),
        project_documents=_list_store(settings.data_project_documents_file, ProjectDocument),
        tasks=_list_store(settings.data_tasks_file, Task),
        milestones=_list_store(settings.data_milestones_file, Milestone),
        matching_results=_list_store(settings.data_matching_file, MatchingResult),
        quality_reports=_list_store(settings.data_quality_reports_file, QualityReport),
        test_documents=_list_store(settings.data_test_documents_file, TestDocument),
        ai_jobs=_list_store(settings.data_ai_jobs_file, AIJob),
        support_messages=_list_store(settings.data_support_messages_file, SupportMessage),
        data_dir=resolve_data_path(settings.data_dir),
        legacy_file=resolve_data_path(settings.data_legacy_file),
    )


async def init_stores(stores: DataStores) -> None:
    """Split the legacy auth file if present, then create every missing collection file."""
    await migrate_legacy_if_needed(stores.legacy_file, stores.users, stores.audit_logs)
    await asyncio.gather(*(store.ensure() for store in stores.all()))
