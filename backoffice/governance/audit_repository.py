"""Audit repository protocol. Governance layer depends on this; infrastructure implements it."""

from datetime import datetime
from typing import Optional, Protocol

from backoffice.governance.audit_models import AuditRecord


class AuditRepository(Protocol):
    """Protocol for persisting and querying immutable audit records."""

    async def save(self, record: AuditRecord) -> None:
        """Append an immutable audit record. Must not allow mutation."""
        ...

    async def list_records(
        self,
        actor_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[AuditRecord]:
        """Return matching records, newest first."""
        ...
