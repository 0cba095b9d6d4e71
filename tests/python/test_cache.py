from __future__ import annotations

import pytest

from meeting_approval.cache import (
    ApprovalListCache,
    InMemorySnapshotStore,
    JsonSnapshotStore,
    PendingSnapshot,
)
from meeting_approval.errors import FailureKind
from meeting_approval.models import MeetingStatus
from meeting_approval.settings import WorkflowSettings


class CountingGateway:
    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls = 0

    async def list_pending(self, *, credential):
        self.calls += 1
        return await self.inner.list_pending(credential=credential)


class ReadOnlyStore(InMemorySnapshotStore):
    def save(self, snapshot: PendingSnapshot) -> None:
        raise OSError("disk full")


@pytest.fixture()
def seeded(gateway, record_factory):
    for number in (1, 2):
        record = record_factory(id=f"MTG-000{number}", status=MeetingStatus.PENDING)
        gateway.records[record.id] = record
    return gateway


@pytest.mark.asyncio
async def test_network_success_is_served_and_stored(seeded, approver_session) -> None:
    store = InMemorySnapshotStore()
    cache = ApprovalListCache(seeded, store)

    result = await cache.list_pending(approver_session)

    assert result.source == "network"
    assert not result.stale
    assert [record.id for record in result.records] == ["MTG-0001", "MTG-0002"]
    assert store.snapshot is not None
    assert len(store.snapshot.records) == 2


@pytest.mark.asyncio
async def test_failure_after_success_serves_same_records(seeded, approver_session) -> None:
    cache = ApprovalListCache(seeded)
    first = await cache.list_pending(approver_session)
    seeded.available = False

    second = await cache.list_pending(approver_session)

    assert second.source == "cache"
    assert second.stale
    assert second.records == first.records
    assert second.fetched_at == first.fetched_at
    assert second.failure.kind == FailureKind.TRANSPORT


@pytest.mark.asyncio
async def test_failure_without_snapshot_is_empty_with_error(gateway, approver_session) -> None:
    gateway.available = False
    cache = ApprovalListCache(gateway)

    result = await cache.list_pending(approver_session)

    assert result.source == "none"
    assert result.records == []
    assert result.failure.message == "Network error"


@pytest.mark.asyncio
async def test_requester_is_refused_without_network_call(gateway, requester_session) -> None:
    counting = CountingGateway(gateway)
    cache = ApprovalListCache(counting)

    result = await cache.list_pending(requester_session)

    assert result.failure.kind == FailureKind.AUTHORIZATION
    assert result.records == []
    assert counting.calls == 0


@pytest.mark.asyncio
async def test_snapshot_survives_restart(seeded, approver_session, tmp_path) -> None:
    path = tmp_path / "cache" / "pending.json"
    await ApprovalListCache(seeded, JsonSnapshotStore(path)).list_pending(approver_session)
    seeded.available = False

    restarted = ApprovalListCache(seeded, JsonSnapshotStore(path))
    result = await restarted.list_pending(approver_session)

    assert result.source == "cache"
    assert [record.id for record in result.records] == ["MTG-0001", "MTG-0002"]
    assert not path.with_suffix(".json.tmp").exists()


@pytest.mark.asyncio
async def test_corrupt_snapshot_is_ignored(gateway, approver_session, tmp_path) -> None:
    path = tmp_path / "pending.json"
    path.write_text("{not json", encoding="utf-8")
    gateway.available = False

    result = await ApprovalListCache(gateway, JsonSnapshotStore(path)).list_pending(
        approver_session
    )

    assert result.source == "none"


@pytest.mark.asyncio
async def test_snapshot_write_failure_is_not_raised(seeded, approver_session) -> None:
    result = await ApprovalListCache(seeded, ReadOnlyStore()).list_pending(approver_session)

    assert result.source == "network"
    assert len(result.records) == 2


@pytest.mark.asyncio
async def test_from_settings_uses_configured_snapshot_file(
    seeded, approver_session, tmp_path
) -> None:
    path = tmp_path / "pending.json"
    settings = WorkflowSettings(snapshot_path=path)

    cache = ApprovalListCache.from_settings(seeded, settings)
    await cache.list_pending(approver_session)

    assert isinstance(cache.store, JsonSnapshotStore)
    assert JsonSnapshotStore(path).load() is not None


def test_from_settings_defaults_to_memory(gateway) -> None:
    cache = ApprovalListCache.from_settings(gateway, WorkflowSettings())

    assert isinstance(cache.store, InMemorySnapshotStore)
