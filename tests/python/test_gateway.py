from __future__ import annotations

from datetime import UTC, datetime

import pytest

from meeting_approval.errors import AuthorizationError, ConflictError, TransportError
from meeting_approval.gateway import InMemoryMeetingGateway
from meeting_approval.models import Decision, MeetingStatus, RequestId
from meeting_approval.security import RoleName


@pytest.mark.asyncio
async def test_create_assigns_sequential_ids(gateway, record_factory) -> None:
    first = await gateway.create(record_factory(), request_id=RequestId.new(), credential="token-123")
    second = await gateway.create(record_factory(), request_id=RequestId.new(), credential="token-123")

    assert (first.id, second.id) == ("MTG-0001", "MTG-0002")
    assert gateway.records["MTG-0001"].status == MeetingStatus.PENDING


@pytest.mark.asyncio
async def test_bad_credential_is_rejected(gateway, draft_record) -> None:
    with pytest.raises(AuthorizationError):
        await gateway.create(draft_record, request_id=RequestId.new(), credential="stale")


@pytest.mark.asyncio
async def test_unavailable_gateway_raises_transport_error() -> None:
    gateway = InMemoryMeetingGateway()
    gateway.available = False

    with pytest.raises(TransportError) as excinfo:
        await gateway.list_pending(credential="anything")

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_update_requires_approved_record(gateway, draft_record) -> None:
    receipt = await gateway.create(draft_record, request_id=RequestId.new(), credential="token-123")

    with pytest.raises(ConflictError):
        await gateway.update(
            receipt.id, draft_record, request_id=RequestId.new(), credential="token-123"
        )


@pytest.mark.asyncio
async def test_decide_checks_expected_status(gateway, draft_record) -> None:
    receipt = await gateway.create(draft_record, request_id=RequestId.new(), credential="token-123")
    await gateway.decide(
        receipt.id,
        Decision.APPROVE,
        "ok",
        credential="token-123",
        actor="ho-1",
        role=RoleName.APPROVER_HO,
    )

    with pytest.raises(ConflictError):
        await gateway.decide(
            receipt.id,
            Decision.REJECT,
            "",
            credential="token-123",
            actor="mg-1",
            role=RoleName.APPROVER_MGMT,
            expected_status=MeetingStatus.PENDING,
        )
    assert gateway.decision_log == [(receipt.id, Decision.APPROVE, "ok")]


@pytest.mark.asyncio
async def test_resubmission_requires_rejected_predecessor(gateway, record_factory) -> None:
    receipt = await gateway.create(record_factory(), request_id=RequestId.new(), credential="token-123")

    with pytest.raises(ConflictError):
        await gateway.create(
            record_factory(previous_cycle_id=receipt.id),
            request_id=RequestId.new(),
            credential="token-123",
        )


@pytest.mark.asyncio
async def test_decide_appends_audit_event_to_stored_record(gateway, draft_record) -> None:
    receipt = await gateway.create(draft_record, request_id=RequestId.new(), credential="token-123")
    stamp = datetime(2030, 4, 1, 12, 0, tzinfo=UTC)

    decision = await gateway.decide(
        receipt.id,
        Decision.REJECT,
        "wrong date",
        credential="token-123",
        actor="mg-1",
        role=RoleName.APPROVER_MGMT,
        decided_at=stamp,
    )

    stored = await gateway.fetch(receipt.id, credential="token-123")
    (event,) = stored.approval_history
    assert decision.decided_at == stamp
    assert stored.status == MeetingStatus.REJECTED
    assert event.actor == "mg-1"
    assert event.role == RoleName.APPROVER_MGMT
    assert event.decision == Decision.REJECT
    assert event.remarks == "wrong date"
    assert event.timestamp == stamp
