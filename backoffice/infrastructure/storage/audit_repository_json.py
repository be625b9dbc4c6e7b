"""JSON-file audit repository. Append-only; records are never rewritten in place."""

from datetime import datetime, timezone
from typing import Optional

from backoffice.governance.audit_models import AuditRecord
from backoffice.infrastructure.storage.json_store import JsonStore


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class JsonAuditRepository:
    """Implements AuditRepository over a JsonStore[list[AuditRecord]]."""

    def __init__(self, store: JsonStore[list[AuditRecord]]) -> None:
        self._store = store

    async def save(self, record: AuditRecord) -> None:
        await self._store.update(lambda records: records.append(record))

    async def list_records(
        self,
        actor_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[AuditRecord]:
        records = await self._store.read()
        lower = _as_utc(date_from) if date_from else None
        upper = _as_utc(date_to) if date_to else None

        def _matches(record: AuditRecord) -> bool:
            if actor_id and record.actor_id != actor_id:
                return False
            created = _as_utc(record.created_at)
            if lower and created < lower:
                return False
            if upper and created > upper:
                return False
            return True

        return sorted(
            (r for r in records if _matches(r)),
            key=lambda r: _as_utc(r.created_at),
            reverse=True,
        )
