from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from meeting_approval.lifecycle import (
    InvalidTransitionError,
    MeetingEvent,
    allowed_events,
    editable_fields,
    effective_status,
    next_status,
    record_decision,
    record_editable_fields,
    record_visible_fields,
    start_resubmission,
    visible_fields,
    was_approved,
)
from meeting_approval.models import (
    COMPUTED_FIELDS,
    PHASE_ONE_FIELDS,
    PHASE_TWO_FIELDS,
    Decision,
    MeetingStatus,
)
from meeting_approval.security import RoleName


@pytest.mark.parametrize(
    ("status", "event", "expected"),
    [
        (MeetingStatus.DRAFT, MeetingEvent.SUBMIT, MeetingStatus.PENDING),
        (MeetingStatus.PENDING, MeetingEvent.APPROVE, MeetingStatus.APPROVED),
        (MeetingStatus.PENDING, MeetingEvent.REJECT, MeetingStatus.REJECTED),
        (MeetingStatus.APPROVED, MeetingEvent.EDIT_LOGISTICS, MeetingStatus.APPROVED),
        (MeetingStatus.REJECTED, MeetingEvent.RESUBMIT, MeetingStatus.PENDING),
        (MeetingStatus.PENDING, MeetingEvent.DATE_ELAPSED, MeetingStatus.COMPLETED),
        (MeetingStatus.REJECTED, MeetingEvent.DATE_ELAPSED, MeetingStatus.COMPLETED),
    ],
)
def test_transition_table(status, event, expected) -> None:
    assert next_status(status, event) == expected


@pytest.mark.parametrize(
    ("status", "event"),
    [
        (MeetingStatus.DRAFT, MeetingEvent.APPROVE),
        (MeetingStatus.APPROVED, MeetingEvent.APPROVE),
        (MeetingStatus.APPROVED, MeetingEvent.REJECT),
        (MeetingStatus.REJECTED, MeetingEvent.EDIT_LOGISTICS),
        (MeetingStatus.COMPLETED, MeetingEvent.EDIT_LOGISTICS),
        (MeetingStatus.PENDING, MeetingEvent.SUBMIT),
    ],
)
def test_invalid_transitions_raise(status, event) -> None:
    with pytest.raises(InvalidTransitionError):
        next_status(status, event)


def test_invalid_transition_message_names_event_and_status() -> None:
    with pytest.raises(ValueError, match="Cannot edit logistics a meeting that is rejected"):
        next_status(MeetingStatus.REJECTED, MeetingEvent.EDIT_LOGISTICS)


def test_rejected_only_allows_resubmit() -> None:
    assert allowed_events(MeetingStatus.REJECTED) == {MeetingEvent.RESUBMIT}
    assert allowed_events(MeetingStatus.COMPLETED) == frozenset()


def test_effective_status_derives_completion_from_date(record_factory) -> None:
    meeting_day = date(2030, 5, 1)
    record = record_factory(status=MeetingStatus.PENDING, meeting_date=meeting_day)

    assert effective_status(record, today=meeting_day) == MeetingStatus.PENDING
    assert (
        effective_status(record, today=meeting_day + timedelta(days=1))
        == MeetingStatus.COMPLETED
    )
    assert record.status == MeetingStatus.PENDING


def test_visibility_gate_by_status() -> None:
    assert visible_fields(MeetingStatus.DRAFT) == PHASE_ONE_FIELDS
    assert visible_fields(MeetingStatus.PENDING) == PHASE_ONE_FIELDS
    assert visible_fields(MeetingStatus.REJECTED) == PHASE_ONE_FIELDS
    assert visible_fields(MeetingStatus.COMPLETED) == PHASE_ONE_FIELDS
    full = PHASE_ONE_FIELDS | PHASE_TWO_FIELDS | COMPUTED_FIELDS
    assert visible_fields(MeetingStatus.APPROVED) == full
    assert visible_fields(MeetingStatus.COMPLETED, was_approved=True) == full


def test_editability_gate_by_status_and_role() -> None:
    assert editable_fields(MeetingStatus.DRAFT, RoleName.REQUESTER) == PHASE_ONE_FIELDS
    assert editable_fields(MeetingStatus.APPROVED, RoleName.REQUESTER) == PHASE_TWO_FIELDS
    assert "expense" not in editable_fields(MeetingStatus.APPROVED, RoleName.REQUESTER)
    for status in (MeetingStatus.PENDING, MeetingStatus.REJECTED, MeetingStatus.COMPLETED):
        assert editable_fields(status, RoleName.REQUESTER) == frozenset()
    assert editable_fields(MeetingStatus.DRAFT, "GUEST") == frozenset()


def test_record_helpers_use_effective_status(approved_record) -> None:
    later = approved_record.meeting_date + timedelta(days=1)

    assert record_editable_fields(approved_record, RoleName.REQUESTER, today=later) == frozenset()
    assert "expense" in record_visible_fields(approved_record, today=later)


def test_record_decision_appends_event(record_factory) -> None:
    record = record_factory(id="MTG-0001", status=MeetingStatus.PENDING)
    stamp = datetime(2030, 1, 1, 9, 30, tzinfo=UTC)

    updated, event = record_decision(
        record,
        actor="ho-1",
        role=RoleName.APPROVER_HO,
        decision=Decision.APPROVE,
        remarks="ok",
        timestamp=stamp,
    )

    assert updated.status == MeetingStatus.APPROVED
    assert updated.approval_history == (event,)
    assert record.approval_history == ()
    assert event.previous_status == MeetingStatus.PENDING
    assert event.new_status == MeetingStatus.APPROVED
    assert event.timestamp == stamp
    assert was_approved(updated)


def test_record_decision_rejects_mismatched_confirmation(record_factory) -> None:
    record = record_factory(id="MTG-0001", status=MeetingStatus.PENDING)

    with pytest.raises(ValueError, match="expected rejected"):
        record_decision(
            record,
            actor="ho-1",
            role=RoleName.APPROVER_HO,
            decision=Decision.REJECT,
            confirmed_status=MeetingStatus.APPROVED,
        )


def test_record_decision_requires_pending(approved_record) -> None:
    with pytest.raises(InvalidTransitionError):
        record_decision(
            approved_record,
            actor="ho-1",
            role=RoleName.APPROVER_HO,
            decision=Decision.REJECT,
        )


def test_start_resubmission_opens_new_draft(record_factory) -> None:
    rejected = record_factory(
        id="MTG-0007", status=MeetingStatus.REJECTED, requester_id="rep-1"
    )

    draft = start_resubmission(rejected)

    assert draft.status == MeetingStatus.DRAFT
    assert draft.id is None
    assert draft.previous_cycle_id == "MTG-0007"
    assert draft.client_key != rejected.client_key
    assert draft.phase_one_payload() == rejected.phase_one_payload()
    assert rejected.status == MeetingStatus.REJECTED


def test_start_resubmission_requires_rejected(approved_record) -> None:
    with pytest.raises(InvalidTransitionError):
        start_resubmission(approved_record)
