"""
Platform data operations: requirements and their documents, projects and their
document centre, tasks, milestones, matching, quality jobs and support messages.

Each operation is a read-modify-write on one collection through JsonStore.update,
so concurrent requests on the same collection never lose each other's changes.
Operations touching several collections (assigning a match marks the requirement,
deleting a project removes its documents and collaboration items) update them one
after the other; there is no cross-file transaction.
"""

import asyncio
import logging
import posixpath
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from backoffice.application.exceptions import ConflictError
from backoffice.domain.models.platform import (
    DEFAULT_ESTIMATE,
    DEFAULT_MATCHING_SCORE,
    DEFAULT_TEAM_ID,
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
from backoffice.infrastructure.storage.paths import atomic_write, resolve_document_path
from backoffice.infrastructure.storage.stores import DataStores


REQUIREMENT_HAS_PROJECTS = "REQUIREMENT_HAS_PROJECTS"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def requirement_doc_path(requirement_id: str, version: int) -> str:
    return posixpath.join("requirements", requirement_id, f"v{version}.md")


def project_doc_path(project_id: str, doc_type: str, version: int) -> str:
    return posixpath.join("projects", project_id, "documents", doc_type, f"v{version}.md")


def testing_doc_path(project_id: str, version: int) -> str:
    return posixpath.join("projects", project_id, "test", f"v{version}.md")


def report_doc_path(project_id: str, report_id: str) -> str:
    return posixpath.join("projects", project_id, "reports", f"{report_id}.md")


def collaboration_link(requirement_id: str) -> str:
    return f"/my/requirements/{requirement_id}?tab=collaboration"


def _replace_where(items: list, predicate, updates: dict[str, Any]):
    """Replace the first item matching predicate with an updated copy; return it or None."""
    for i, item in enumerate(items):
        if predicate(item):
            items[i] = item.model_copy(update={**updates, "updated_at": _now()})
            return items[i]
    return None


def _remove_where(items: list, predicate) -> list:
    """Remove every item matching predicate in place; return the removed items."""
    removed = [item for item in items if predicate(item)]
    items[:] = [item for item in items if not predicate(item)]
    return removed


def _archive_previous(items: list, predicate, now: datetime) -> None:
    """Mark every live version matching predicate archived."""
    for i, item in enumerate(items):
        if predicate(item) and item.status != DocumentStatus.ARCHIVED:
            items[i] = item.model_copy(update={"status": DocumentStatus.ARCHIVED, "updated_at": now})


def _next_version(items: list, predicate) -> int:
    versions = [item.version for item in items if predicate(item)]
    return max(versions) + 1 if versions else 1


class PlatformService:
    def __init__(self, stores: DataStores, logger: Optional[logging.Logger] = None) -> None:
        self._stores = stores
        self._logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Documents on disk
    # ------------------------------------------------------------------

    def _write_document_sync(self, relative_path: str, content: str) -> None:
        full_path = resolve_document_path(self._stores.data_dir, relative_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(full_path, content.encode("utf-8"))

    async def write_document(self, relative_path: str, content: str) -> None:
        await asyncio.to_thread(self._write_document_sync, relative_path, content)

    async def read_document(self, relative_path: str) -> str:
        full_path = resolve_document_path(self._stores.data_dir, relative_path)
        return await asyncio.to_thread(full_path.read_text, "utf-8")

    def _delete_document_sync(self, relative_path: str) -> None:
        resolve_document_path(self._stores.data_dir, relative_path).unlink(missing_ok=True)

    async def delete_documents(self, relative_paths: list[str]) -> None:
        """Remove document files; a file that is already gone is not an error."""
        await asyncio.gather(
            *(asyncio.to_thread(self._delete_document_sync, path) for path in relative_paths)
        )

    # ------------------------------------------------------------------
    # Requirements & projects
    # ------------------------------------------------------------------

    async def list_requirements(self, owner_id: Optional[str] = None) -> list[Requirement]:
        items = await self._stores.requirements.read()
        if owner_id is not None:
            items = [r for r in items if r.owner_id == owner_id]
        return sorted(items, key=lambda r: r.created_at, reverse=True)

    async def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        items = await self._stores.requirements.read()
        return next((r for r in items if r.id == requirement_id), None)

    async def create_requirement(self, *, owner_id: str, title: str, background: str = "") -> Requirement:
        """Create a submitted requirement together with its first document version."""
        now = _now()
        requirement = Requirement(
            id=_new_id(),
            title=title,
            background=background,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        document = RequirementDocument(
            id=_new_id(),
            requirement_id=requirement.id,
            version=1,
            content_url=requirement_doc_path(requirement.id, 1),
            created_at=now,
            updated_at=now,
        )
        content = "\n".join(
            [
                "# Requirement document",
                "",
                "## Title",
                title,
                "",
                "## Background",
                background or "Not provided",
            ]
        )
        await self.write_document(document.content_url, content)
        await self._stores.requirements.update(lambda items: items.append(requirement))
        await self._stores.requirement_documents.update(lambda items: items.append(document))
        return requirement

    async def set_requirement_status(
        self, requirement_id: str, status: RequirementStatus
    ) -> Optional[Requirement]:
        return await self._stores.requirements.update(
            lambda items: _replace_where(items, lambda r: r.id == requirement_id, {"status": status})
        )

    async def delete_requirement(self, requirement_id: str) -> Optional[Requirement]:
        """
        Remove a requirement and its documents. Raises ConflictError while projects
        still reference it. None if there is no such requirement.
        """
        if any(p.requirement_id == requirement_id for p in await self._stores.projects.read()):
            raise ConflictError("Requirement still has projects", code=REQUIREMENT_HAS_PROJECTS)

        def _delete(items: list[Requirement]) -> Optional[Requirement]:
            removed = _remove_where(items, lambda r: r.id == requirement_id)
            return removed[0] if removed else None

        requirement = await self._stores.requirements.update(_delete)
        if requirement is None:
            return None
        documents = await self._stores.requirement_documents.update(
            lambda items: _remove_where(items, lambda d: d.requirement_id == requirement_id)
        )
        await self.delete_documents([d.content_url for d in documents])
        return requirement

    async def list_requirement_documents(self, requirement_id: str) -> list[RequirementDocument]:
        items = await self._stores.requirement_documents.read()
        return sorted(
            (d for d in items if d.requirement_id == requirement_id),
            key=lambda d: d.version,
            reverse=True,
        )

    async def get_requirement_document(
        self, requirement_id: str, document_id: str
    ) -> Optional[tuple[RequirementDocument, str]]:
        items = await self._stores.requirement_documents.read()
        document = next(
            (d for d in items if d.id == document_id and d.requirement_id == requirement_id), None
        )
        if document is None:
            return None
        return document, await self.read_document(document.content_url)

    async def create_requirement_document(
        self, requirement_id: str, content: str, status: Optional[DocumentStatus] = None
    ) -> RequirementDocument:
        """
        Add the next document version. Earlier versions are archived and the
        requirement goes back under review.
        """
        now = _now()

        def _append(items: list[RequirementDocument]) -> RequirementDocument:
            version = _next_version(items, lambda d: d.requirement_id == requirement_id)
            _archive_previous(items, lambda d: d.requirement_id == requirement_id, now)
            document = RequirementDocument(
                id=_new_id(),
                requirement_id=requirement_id,
                version=version,
                content_url=requirement_doc_path(requirement_id, version),
                status=status or DocumentStatus.PENDING_APPROVAL,
                created_at=now,
                updated_at=now,
            )
            items.append(document)
            return document

        document = await self._stores.requirement_documents.update(_append)
        await self.write_document(document.content_url, content)
        await self.set_requirement_status(requirement_id, RequirementStatus.UNDER_REVIEW)
        return document

    async def review_requirement(
        self, requirement_id: str, *, approved: bool, reviewer_id: str, comment: Optional[str] = None
    ) -> Optional[Requirement]:
        """Approve or reject a requirement; its latest document records the decision."""
        status = RequirementStatus.APPROVED if approved else RequirementStatus.REJECTED
        requirement = await self.set_requirement_status(requirement_id, status)
        if requirement is None:
            return None

        def _mark_latest(items: list[RequirementDocument]) -> None:
            documents = [d for d in items if d.requirement_id == requirement_id]
            if not documents:
                return
            latest = max(documents, key=lambda d: d.version)
            _replace_where(
                items,
                lambda d: d.id == latest.id,
                {
                    "status": DocumentStatus.APPROVED if approved else DocumentStatus.PENDING_APPROVAL,
                    "approved_by": reviewer_id if approved else None,
                    "review_comment": comment,
                },
            )

        await self._stores.requirement_documents.update(_mark_latest)
        return requirement

    async def comment_requirement_document(
        self, requirement_id: str, document_id: str, comment: str
    ) -> Optional[RequirementDocument]:
        return await self._stores.requirement_documents.update(
            lambda items: _replace_where(
                items,
                lambda d: d.id == document_id and d.requirement_id == requirement_id,
                {"review_comment": comment},
            )
        )

    async def delete_requirement_document(
        self, requirement_id: str, document_id: str
    ) -> Optional[RequirementDocument]:
        removed = await self._stores.requirement_documents.update(
            lambda items: _remove_where(
                items, lambda d: d.id == document_id and d.requirement_id == requirement_id
            )
        )
        if not removed:
            return None
        await self.delete_documents([d.content_url for d in removed])
        return removed[0]

    async def list_projects(self, requirement_id: Optional[str] = None) -> list[Project]:
        items = await self._stores.projects.read()
        if requirement_id is not None:
            items = [p for p in items if p.requirement_id == requirement_id]
        return sorted(items, key=lambda p: p.created_at, reverse=True)

    async def get_project(self, project_id: str) -> Optional[Project]:
        items = await self._stores.projects.read()
        return next((p for p in items if p.id == project_id), None)

    async def create_project(self, *, requirement_id: str, name: str) -> Project:
        """Create a project in intake and mark its requirement converted."""
        now = _now()
        project = Project(
            id=_new_id(),
            requirement_id=requirement_id,
            name=name,
            created_at=now,
            updated_at=now,
        )
        await self._stores.projects.update(lambda items: items.append(project))
        await self.set_requirement_status(requirement_id, RequirementStatus.CONVERTED)
        return project

    async def get_project_owner(self, project_id: str) -> Optional[Requirement]:
        """Requirement behind a project; its owner receives collaboration notifications."""
        project = await self.get_project(project_id)
        if project is None:
            return None
        return await self.get_requirement(project.requirement_id)

    async def update_project_status(
        self, project_id: str, status: ProjectStatus
    ) -> Optional[tuple[Project, Project]]:
        """
        Move a project to status. Returns (before, after), or None if there is no such
        project. Entering implementation stamps start_date once; closing stamps end_date.
        """

        def _apply(items: list[Project]) -> Optional[tuple[Project, Project]]:
            index = next((i for i, p in enumerate(items) if p.id == project_id), None)
            if index is None:
                return None
            before = items[index]
            if before.status == status:
                return before, before
            now = _now()
            updates: dict[str, Any] = {"status": status, "updated_at": now}
            if status == ProjectStatus.IMPLEMENTATION and before.start_date is None:
                updates["start_date"] = now
            if status == ProjectStatus.CLOSED:
                updates["end_date"] = now
            items[index] = before.model_copy(update=updates)
            return before, items[index]

        return await self._stores.projects.update(_apply)

    async def delete_project(self, project_id: str) -> Optional[Project]:
        """Remove a project with its documents, quality output, AI jobs, tasks and milestones."""

        def _delete(items: list[Project]) -> Optional[Project]:
            removed = _remove_where(items, lambda p: p.id == project_id)
            return removed[0] if removed else None

        project = await self._stores.projects.update(_delete)
        if project is None:
            return None

        documents = await self._stores.project_documents.update(
            lambda items: _remove_where(items, lambda d: d.project_id == project_id)
        )
        test_documents = await self._stores.test_documents.update(
            lambda items: _remove_where(items, lambda d: d.project_id == project_id)
        )
        reports = await self._stores.quality_reports.update(
            lambda items: _remove_where(items, lambda r: r.project_id == project_id)
        )
        await self._stores.ai_jobs.update(lambda items: _remove_where(items, lambda j: j.target_id == project_id))
        await self._stores.tasks.update(lambda items: _remove_where(items, lambda t: t.project_id == project_id))
        await self._stores.milestones.update(
            lambda items: _remove_where(items, lambda m: m.project_id == project_id)
        )
        await self.delete_documents(
            [d.content_url for d in documents]
            + [d.content_url for d in test_documents]
            + [r.report_url for r in reports]
        )
        self._logger.info("project_deleted", extra={"project_id": project_id})
        return project

    # ------------------------------------------------------------------
    # Project document centre
    # ------------------------------------------------------------------

    async def list_project_documents(self, project_id: str) -> list[ProjectDocument]:
        items = await self._stores.project_documents.read()
        return sorted((d for d in items if d.project_id == project_id), key=lambda d: d.version, reverse=True)

    async def get_project_document(
        self, project_id: str, document_id: str
    ) -> Optional[tuple[ProjectDocument, str]]:
        items = await self._stores.project_documents.read()
        document = next((d for d in items if d.id == document_id and d.project_id == project_id), None)
        if document is None:
            return None
        return document, await self.read_document(document.content_url)

    async def create_project_document(
        self,
        *,
        project_id: str,
        type: str,
        title: str,
        content: str,
        status: Optional[DocumentStatus] = None,
        version_note: Optional[str] = None,
    ) -> ProjectDocument:
        """Add the next version of a document type; earlier versions of that type are archived."""
        now = _now()

        def _append(items: list[ProjectDocument]) -> ProjectDocument:
            version = _next_version(items, lambda d: d.project_id == project_id and d.type == type)
            _archive_previous(items, lambda d: d.project_id == project_id and d.type == type, now)
            document = ProjectDocument(
                id=_new_id(),
                project_id=project_id,
                type=type,
                title=title,
                version=version,
                content_url=project_doc_path(project_id, type, version),
                status=status or DocumentStatus.DRAFT,
                version_note=version_note,
                created_at=now,
                updated_at=now,
            )
            items.append(document)
            return document

        document = await self._stores.project_documents.update(_append)
        await self.write_document(document.content_url, content)
        return document

    async def review_project_document(
        self,
        project_id: str,
        document_id: str,
        *,
        reviewer_id: str,
        approved: Optional[bool] = None,
        comment: Optional[str] = None,
    ) -> Optional[ProjectDocument]:
        """
        Record a review. approved=True approves, False sends the document back to
        pending approval, None only updates the comment.
        """
        updates: dict[str, Any] = {}
        if approved is not None:
            updates["status"] = DocumentStatus.APPROVED if approved else DocumentStatus.PENDING_APPROVAL
        if approved:
            updates["approved_by"] = reviewer_id
        if comment:
            updates["review_comment"] = comment
        return await self._stores.project_documents.update(
            lambda items: _replace_where(
                items, lambda d: d.id == document_id and d.project_id == project_id, updates
            )
        )

    async def delete_project_document(self, project_id: str, document_id: str) -> Optional[ProjectDocument]:
        removed = await self._stores.project_documents.update(
            lambda items: _remove_where(items, lambda d: d.id == document_id and d.project_id == project_id)
        )
        if not removed:
            return None
        await self.delete_documents([d.content_url for d in removed])
        return removed[0]

    # ------------------------------------------------------------------
    # Tasks & milestones
    # ------------------------------------------------------------------

    async def list_tasks(self, project_id: str) -> list[Task]:
        items = await self._stores.tasks.read()
        return [t for t in items if t.project_id == project_id]

    async def create_task(
        self,
        *,
        project_id: str,
        title: str,
        status: Optional[TaskStatus] = None,
        assignee_id: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Task:
        now = _now()
        task = Task(
            id=_new_id(),
            project_id=project_id,
            title=title,
            status=status or TaskStatus.TODO,
            assignee_id=assignee_id,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        await self._stores.tasks.update(lambda items: items.append(task))
        return task

    async def update_task(self, project_id: str, task_id: str, updates: dict[str, Any]) -> Optional[Task]:
        """Apply updates to a task of this project. None if no such task."""
        return await self._stores.tasks.update(
            lambda items: _replace_where(
                items, lambda t: t.id == task_id and t.project_id == project_id, updates
            )
        )

    async def list_milestones(self, project_id: str) -> list[Milestone]:
        items = await self._stores.milestones.read()
        return [m for m in items if m.project_id == project_id]

    async def create_milestone(
        self,
        *,
        project_id: str,
        title: str,
        status: Optional[MilestoneStatus] = None,
        due_date: Optional[str] = None,
    ) -> Milestone:
        now = _now()
        milestone = Milestone(
            id=_new_id(),
            project_id=project_id,
            title=title,
            status=status or MilestoneStatus.PLANNED,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        await self._stores.milestones.update(lambda items: items.append(milestone))
        return milestone

    async def update_milestone(
        self, project_id: str, milestone_id: str, updates: dict[str, Any]
    ) -> Optional[Milestone]:
        return await self._stores.milestones.update(
            lambda items: _replace_where(
                items, lambda m: m.id == milestone_id and m.project_id == project_id, updates
            )
        )

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    async def list_matching_results(self, requirement_id: Optional[str] = None) -> list[MatchingResult]:
        items = await self._stores.matching_results.read()
        if requirement_id:
            items = [m for m in items if m.requirement_id == requirement_id]
        return sorted(items, key=lambda m: m.created_at, reverse=True)

    async def create_matching_result(
        self,
        *,
        requirement_id: str,
        team_id: Optional[str] = None,
        budget: Optional[str] = None,
        timeline: Optional[str] = None,
        score: Optional[float] = None,
    ) -> MatchingResult:
        now = _now()
        result = MatchingResult(
            id=_new_id(),
            requirement_id=requirement_id,
            team_id=team_id or DEFAULT_TEAM_ID,
            score=DEFAULT_MATCHING_SCORE if score is None else score,
            budget=budget or DEFAULT_ESTIMATE,
            timeline=timeline or DEFAULT_ESTIMATE,
            created_at=now,
            updated_at=now,
        )
        await self._stores.matching_results.update(lambda items: items.append(result))
        return result

    async def assign_matching_result(self, matching_id: str, team_id: str) -> Optional[MatchingResult]:
        """Assign a team; the matched requirement moves to status matched."""
        updated = await self._stores.matching_results.update(
            lambda items: _replace_where(
                items,
                lambda m: m.id == matching_id,
                {"team_id": team_id, "status": MatchingStatus.ASSIGNED},
            )
        )
        if updated is not None:
            await self.set_requirement_status(updated.requirement_id, RequirementStatus.MATCHED)
        return updated

    # ------------------------------------------------------------------
    # Quality
    # ------------------------------------------------------------------

    async def _create_ai_job(self, *, type: str, target_id: str, status: AIJobStatus, result_url: Optional[str]) -> AIJob:
        now = _now()
        job = AIJob(
            id=_new_id(),
            type=type,
            target_id=target_id,
            status=status,
            result_url=result_url,
            created_at=now,
            completed_at=now if status == AIJobStatus.SUCCEEDED else None,
        )
        await self._stores.ai_jobs.update(lambda items: items.append(job))
        return job

    async def _create_test_document(self, project_id: str, scope: str) -> TestDocument:
        now = _now()

        def _append(items: list[TestDocument]) -> TestDocument:
            version = _next_version(items, lambda d: d.project_id == project_id)
            document = TestDocument(
                id=_new_id(),
                project_id=project_id,
                version=version,
                content_url=testing_doc_path(project_id, version),
                created_at=now,
                updated_at=now,
            )
            items.append(document)
            return document

        document = await self._stores.test_documents.update(_append)
        content = "\n".join(
            [
                "# Test document",
                "",
                f"Version: v{document.version}",
                "",
                "## Scope",
                scope or "Not specified",
                "",
                "## Test items",
                "- Functional verification",
                "- Boundary conditions",
                "- Exception flows",
            ]
        )
        await self.write_document(document.content_url, content)
        return document

    async def _create_quality_report(self, *, project_id: str, type: str, summary: str) -> QualityReport:
        now = _now()
        report_id = _new_id()
        report = QualityReport(
            id=report_id,
            project_id=project_id,
            type=type,
            summary=summary,
            report_url=report_doc_path(project_id, report_id),
            created_at=now,
            updated_at=now,
        )
        content = "\n".join(["# Quality report", "", f"Type: {type}", "", "## Summary", summary])
        await self.write_document(report.report_url, content)
        await self._stores.quality_reports.update(lambda items: items.append(report))
        return report

    async def create_testing_job(self, *, project_id: str, scope: str = "") -> tuple[AIJob, QualityReport]:
        document = await self._create_test_document(project_id, scope)
        report = await self._create_quality_report(
            project_id=project_id,
            type="testing",
            summary=f"Test document v{document.version} created, pending manual review.",
        )
        job = await self._create_ai_job(
            type="testing_generate",
            target_id=project_id,
            status=AIJobStatus.SUCCEEDED,
            result_url=report.report_url,
        )
        self._logger.info("testing_job_created", extra={"project_id": project_id, "job_id": job.id})
        return job, report

    async def create_code_review_job(
        self, *, project_id: str, repository_url: str, commit_sha: str
    ) -> tuple[AIJob, QualityReport]:
        report = await self._create_quality_report(
            project_id=project_id,
            type="code_review",
            summary=f"Initial review of {repository_url} @ {commit_sha} completed.",
        )
        job = await self._create_ai_job(
            type="code_review",
            target_id=project_id,
            status=AIJobStatus.SUCCEEDED,
            result_url=report.report_url,
        )
        self._logger.info("code_review_job_created", extra={"project_id": project_id, "job_id": job.id})
        return job, report

    async def list_quality_reports(self, project_id: Optional[str] = None) -> list[QualityReport]:
        items = await self._stores.quality_reports.read()
        if project_id:
            items = [r for r in items if r.project_id == project_id]
        return sorted(items, key=lambda r: r.created_at, reverse=True)

    async def get_quality_report(self, report_id: str) -> Optional[QualityReport]:
        items = await self._stores.quality_reports.read()
        return next((r for r in items if r.id == report_id), None)

    # ------------------------------------------------------------------
    # Support
    # ------------------------------------------------------------------

    async def list_support_messages(self, thread_id: str) -> list[SupportMessage]:
        items = await self._stores.support_messages.read()
        return sorted((m for m in items if m.thread_id == thread_id), key=lambda m: m.created_at)

    async def create_support_message(
        self,
        *,
        thread_id: str,
        sender_id: str,
        sender_role: str,
        recipient_role: str,
        message: str,
        recipient_id: Optional[str] = None,
    ) -> SupportMessage:
        created = SupportMessage(
            id=_new_id(),
            thread_id=thread_id,
            sender_id=sender_id,
            sender_role=sender_role,
            recipient_id=recipient_id,
            recipient_role=recipient_role,
            message=message,
            created_at=_now(),
        )
        await self._stores.support_messages.update(lambda items: items.append(created))
        return created

    async def list_support_threads(self) -> list[dict[str, Any]]:
        """One summary per thread (latest message, count), most recently active first."""
        items = await self._stores.support_messages.read()
        threads: dict[str, dict[str, Any]] = {}
        for m in sorted(items, key=lambda m: m.created_at):
            summary = threads.setdefault(m.thread_id, {"thread_id": m.thread_id, "message_count": 0})
            summary["message_count"] += 1
            summary["last_message"] = m.message
            summary["last_message_at"] = m.created_at
        return sorted(threads.values(), key=lambda t: t["last_message_at"], reverse=True)
