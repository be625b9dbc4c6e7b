"""Tests for JsonStore: defaults, fallback on malformed content, atomic writes, update ordering."""

import asyncio
import json
from pathlib import Path

import pytest

from backoffice.domain.models.notification import Notification
from backoffice.infrastructure.storage.json_store import JsonStore, StoreContentError
from backoffice.infrastructure.storage.write_lock import WriteLock


@pytest.fixture
def store(tmp_path: Path) -> JsonStore:
    return JsonStore(tmp_path / "items.json", default={"items": []})


@pytest.mark.asyncio
async def test_read_creates_file_with_default(store: JsonStore):
    assert await store.read() == {"items": []}
    assert json.loads(store.path.read_text()) == {"items": []}


@pytest.mark.asyncio
async def test_write_uses_two_space_indentation(store: JsonStore):
    await store.write({"items": [1]})
    text = store.path.read_text()
    assert text.startswith('{\n  "items": [')
    assert json.loads(text) == {"items": [1]}


@pytest.mark.asyncio
async def test_malformed_json_returns_exact_fallback_and_keeps_file(store: JsonStore):
    store.path.write_text("{not json")
    assert await store.read() == {"items": []}
    assert store.path.read_text() == "{not json"


@pytest.mark.asyncio
async def test_read_result_reports_fallback(store: JsonStore):
    store.path.write_text("")
    result = await store.read_result()
    assert result.fallback_used is True
    assert result.error is not None
    assert result.value == {"items": []}


@pytest.mark.asyncio
async def test_fallback_is_a_copy_of_the_default(store: JsonStore):
    store.path.write_text("garbage")
    first = await store.read()
    first["items"].append("mutated")
    assert await store.read() == {"items": []}


@pytest.mark.asyncio
async def test_schema_mismatch_falls_back(tmp_path: Path):
    store = JsonStore(tmp_path / "n.json", default=[], schema=list[Notification])
    store.path.write_text('[{"id": "n1"}]')
    result = await store.read_result()
    assert result.fallback_used is True
    assert result.value == []


@pytest.mark.asyncio
async def test_last_completed_write_wins(store: JsonStore):
    for i in range(5):
        await store.write({"items": [i]})
    assert await store.read() == {"items": [4]}


@pytest.mark.asyncio
async def test_concurrent_writes_apply_in_call_order(store: JsonStore):
    await asyncio.gather(store.write({"items": ["A"]}), store.write({"items": ["B"]}))
    assert await store.read() == {"items": ["B"]}
    assert json.loads(store.path.read_text()) == {"items": ["B"]}


@pytest.mark.asyncio
async def test_concurrent_updates_do_not_lose_changes(tmp_path: Path):
    store = JsonStore(tmp_path / "list.json", default=[])
    await asyncio.gather(*(store.update(lambda items, i=i: items.append(i)) for i in range(20)))
    assert sorted(await store.read()) == list(range(20))


@pytest.mark.asyncio
async def test_update_returns_callback_result(tmp_path: Path):
    store = JsonStore(tmp_path / "list.json", default=[])

    def _append(items):
        items.append("x")
        return len(items)

    assert await store.update(_append) == 1


@pytest.mark.asyncio
async def test_failing_update_writes_nothing(tmp_path: Path):
    store = JsonStore(tmp_path / "list.json", default=[])
    await store.write(["kept"])

    def _fail(items):
        items.append("lost")
        raise ValueError("rejected")

    with pytest.raises(ValueError):
        await store.update(_fail)
    assert await store.read() == ["kept"]


@pytest.mark.asyncio
async def test_stores_own_separate_locks_unless_shared(tmp_path: Path):
    a = JsonStore(tmp_path / "a.json", default=[])
    b = JsonStore(tmp_path / "b.json", default=[])
    assert a.lock is not b.lock

    shared = WriteLock()
    c = JsonStore(tmp_path / "c.json", default=[], lock=shared)
    d = JsonStore(tmp_path / "d.json", default=[], lock=shared)
    assert c.lock is d.lock


@pytest.mark.asyncio
async def test_update_refuses_to_overwrite_unparseable_content(store: JsonStore):
    store.path.write_text("{not json")

    with pytest.raises(StoreContentError):
        await store.update(lambda data: data["items"].append(1))
    assert store.path.read_text() == "{not json"


@pytest.mark.asyncio
async def test_update_keeps_collection_when_one_record_breaks_schema(tmp_path: Path):
    store = JsonStore(tmp_path / "n.json", default=[], schema=list[Notification])
    content = '[{"id": "n1"}]'
    store.path.write_text(content)

    with pytest.raises(StoreContentError):
        await store.update(lambda items: items.clear())
    assert store.path.read_text() == content


@pytest.mark.asyncio
async def test_update_replaces_blank_file(tmp_path: Path):
    store = JsonStore(tmp_path / "list.json", default=[])
    store.path.write_text("  \n")

    await store.update(lambda items: items.append("x"))
    assert await store.read() == ["x"]
