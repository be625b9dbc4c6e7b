# backoffice/api/routers/audit.py

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.dependencies import AdminUser, get_audit_repository
from backoffice.infrastructure.storage.audit_repository_json import JsonAuditRepository

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    admin: AdminUser,
    repository: Annotated[JsonAuditRepository, Depends(get_audit_repository)],
    actor_id: Annotated[Optional[str], Query()] = None,
    date_from: Annotated[Optional[datetime], Query()] = None,
    date_to: Annotated[Optional[datetime], Query()] = None,
):
    """Audit records, newest first, optionally filtered by actor and time window."""
    records = await repository.list_records(actor_id=actor_id, date_from=date_from, date_to=date_to)
    return {"logs": [r.to_dict() for r in records]}
