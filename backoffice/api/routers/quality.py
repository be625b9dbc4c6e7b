"""Quality API router: AI testing / code-review jobs (admin) and report retrieval."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.dependencies import AdminUser, get_audit_logger, get_platform_service, require_permission
from backoffice.application.exceptions import NotFoundError
from backoffice.application.platform_service import PlatformService
from backoffice.domain.schemas import CodeReviewRequest, TestingGenerateRequest
from backoffice.domain.validators import require_text
from backoffice.governance.audit_logger import AuditLogger
from backoffice.security.tokens import SessionClaims

router = APIRouter()

ReportViewer = Annotated[SessionClaims, Depends(require_permission("quality.reports.view"))]


async def _require_project(platform: PlatformService, project_id: str) -> None:
    if await platform.get_project(project_id) is None:
        raise NotFoundError("Project not found")


@router.post("/testing/generate")
async def generate_testing(
    body: TestingGenerateRequest,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Write the next test document version and a testing report for the project."""
    project_id = require_text(body.project_id, "project_id")
    await _require_project(platform, project_id)
    job, report = await platform.create_testing_job(project_id=project_id, scope=body.scope.strip())
    await audit.log_action(
        actor_id=admin.sub,
        action="TESTING_GENERATED",
        after={"project_id": project_id, "job_id": job.id, "report_id": report.id},
    )
    return {"job_id": job.id}


@router.post("/review/code")
async def request_code_review(
    body: CodeReviewRequest,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    project_id = require_text(body.project_id, "project_id")
    repository_url = require_text(body.repository_url, "repository_url")
    commit_sha = require_text(body.commit_sha, "commit_sha")
    await _require_project(platform, project_id)
    job, report = await platform.create_code_review_job(
        project_id=project_id, repository_url=repository_url, commit_sha=commit_sha
    )
    await audit.log_action(
        actor_id=admin.sub,
        action="CODE_REVIEW_REQUESTED",
        after={
            "project_id": project_id,
            "repository_url": repository_url,
            "commit_sha": commit_sha,
            "job_id": job.id,
            "report_id": report.id,
        },
    )
    return {"job_id": job.id}


@router.get("/quality/reports")
async def list_quality_reports(
    user: ReportViewer,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    project_id: Annotated[Optional[str], Query()] = None,
):
    items = await platform.list_quality_reports(project_id)
    return {"reports": [r.model_dump(mode="json") for r in items]}


@router.get("/quality/reports/{report_id}")
async def get_quality_report(
    report_id: str,
    user: ReportViewer,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    report = await platform.get_quality_report(report_id)
    if report is None:
        raise NotFoundError("Report not found")
    return {"report_url": report.report_url, "summary": report.summary, "status": report.status}
