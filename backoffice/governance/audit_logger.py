"""Append-only audit logging for mutating admin and collaboration actions. No FastAPI."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from backoffice.governance.audit_models import AuditRecord
from backoffice.governance.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Writes immutable audit records via repository.
    Must include: who (actor), target, what (action, before/after), when (UTC).
    """

    def __init__(self, repository: AuditRepository) -> None:
        self._repository = repository

    async def log_action(
        self,
        *,
        actor_id: Optional[str],
        action: str,
        target_user_id: Optional[str] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
    ) -> AuditRecord:
        """Write immutable audit record. Timestamp is UTC."""
        record = AuditRecord(
            id=str(uuid.uuid4()),
            actor_id=actor_id,
            target_user_id=target_user_id,
            action=action,
            before=before,
            after=after,
            created_at=datetime.now(timezone.utc),
        )
        await self._repository.save(record)
        logger.info("audit_recorded", extra={"action": action, "audit_id": record.id})
        return record
