# backoffice/api/routers/matching.py

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.dependencies import AdminUser, get_audit_logger, get_platform_service
from backoffice.application.exceptions import NotFoundError
from backoffice.application.platform_service import PlatformService
from backoffice.domain.schemas import MatchingAssignRequest, MatchingEvaluateRequest
from backoffice.domain.validators import require_text
from backoffice.governance.audit_logger import AuditLogger

router = APIRouter()


@router.get("")
async def list_matching(
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    requirement_id: Annotated[Optional[str], Query()] = None,
):
    items = await platform.list_matching_results(requirement_id)
    return {"results": [m.model_dump(mode="json") for m in items]}


@router.post("/evaluate")
async def evaluate_matching(
    body: MatchingEvaluateRequest,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Record a matching evaluation for a requirement; unset fields take the defaults."""
    requirement_id = require_text(body.requirement_id, "requirement_id")
    if await platform.get_requirement(requirement_id) is None:
        raise NotFoundError("Requirement not found")

    result = await platform.create_matching_result(
        requirement_id=requirement_id,
        team_id=body.team_id,
        budget=body.budget_estimate,
        timeline=body.timeline_estimate,
        score=body.score,
    )
    await audit.log_action(
        actor_id=admin.sub,
        action="MATCHING_EVALUATED",
        after={"matching_id": result.id, "requirement_id": requirement_id, "score": result.score},
    )
    return {
        "matching_id": result.id,
        "score": result.score,
        "budget_estimate": result.budget,
        "timeline_estimate": result.timeline,
        "status": result.status.value,
    }


@router.post("/{matching_id}/assign")
async def assign_matching(
    matching_id: str,
    body: MatchingAssignRequest,
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    team_id = require_text(body.team_id, "team_id")
    result = await platform.assign_matching_result(matching_id, team_id)
    if result is None:
        raise NotFoundError("Matching result not found")
    await audit.log_action(
        actor_id=admin.sub,
        action="MATCHING_ASSIGNED",
        after={"matching_id": matching_id, "team_id": team_id},
    )
    return {"status": result.status.value}
