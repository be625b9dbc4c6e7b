"""Governance tests: audit immutability, field completeness, JSON repository filters."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from backoffice.governance.audit_logger import AuditLogger
from backoffice.governance.audit_models import AuditRecord
from backoffice.infrastructure.storage.audit_repository_json import JsonAuditRepository
from backoffice.infrastructure.storage.stores import DataStores


@pytest.fixture
def audit_repository():
    repo = AsyncMock()
    repo.save = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def audit_logger(audit_repository):
    return AuditLogger(repository=audit_repository)


async def test_audit_immutability(audit_logger, audit_repository):
    """Audit record must not allow mutation; stored via repository."""
    await audit_logger.log_action(
        actor_id="admin-1",
        target_user_id="user-1",
        action="ROLE_CHANGED",
        before={"role": "customer"},
        after={"role": "developer"},
    )
    assert audit_repository.save.await_count == 1
    record = audit_repository.save.call_args[0][0]
    assert isinstance(record, AuditRecord)
    assert record.actor_id == "admin-1"
    assert record.target_user_id == "user-1"
    assert record.action == "ROLE_CHANGED"
    assert record.before == {"role": "customer"}
    assert record.after == {"role": "developer"}
    # Immutability: frozen dataclass
    with pytest.raises(AttributeError):
        record.action = "other"  # type: ignore[misc]


async def test_audit_fields_completeness(audit_logger, audit_repository):
    """Must include who, on whom, what, when (UTC)."""
    await audit_logger.log_action(actor_id="who", action="PASSWORD_RESET")
    record = audit_repository.save.call_args[0][0]
    assert record.actor_id == "who"
    assert record.target_user_id is None
    assert record.before is None and record.after is None
    assert record.created_at.tzinfo == timezone.utc
    d = record.to_dict()
    for key in ("id", "actor_id", "target_user_id", "action", "before", "after", "created_at"):
        assert key in d


async def test_json_repository_filters_newest_first(stores: DataStores):
    repository = JsonAuditRepository(stores.audit_logs)
    logger = AuditLogger(repository=repository)
    first = await logger.log_action(actor_id="a1", action="ROLE_CHANGED")
    await asyncio.sleep(0.001)
    second = await logger.log_action(actor_id="a2", action="STATUS_CHANGED")
    await asyncio.sleep(0.001)
    third = await logger.log_action(actor_id="a1", action="USER_DELETED")

    all_records = await repository.list_records()
    assert [r.id for r in all_records] == [third.id, second.id, first.id]

    by_actor = await repository.list_records(actor_id="a1")
    assert [r.id for r in by_actor] == [third.id, first.id]

    window = await repository.list_records(date_from=second.created_at, date_to=second.created_at)
    assert [r.id for r in window] == [second.id]

    naive_future = (datetime.now(timezone.utc) + timedelta(days=1)).replace(tzinfo=None)
    assert await repository.list_records(date_from=naive_future) == []


async def test_json_repository_appends_under_concurrency(stores: DataStores):
    logger = AuditLogger(repository=JsonAuditRepository(stores.audit_logs))
    await asyncio.gather(*(logger.log_action(actor_id="a", action=f"A{i}") for i in range(10)))
    records = await stores.audit_logs.read()
    assert sorted(r.action for r in records) == sorted(f"A{i}" for i in range(10))
