"""Status transitions and field gating for meeting requests.

A request is created as a ``draft``, becomes ``pending`` once submitted, and is
decided by an approver. Only ``approved`` requests expose their logistics for
editing. ``completed`` is never stored by the workflow: it is derived when a
record is read after its meeting date has passed.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from uuid import uuid4

from .models import (
    COMPUTED_FIELDS,
    PHASE_ONE_FIELDS,
    PHASE_TWO_FIELDS,
    ApprovalEvent,
    Decision,
    MeetingRecord,
    MeetingStatus,
)
from .security import Permission, RoleName, role_can


class MeetingEvent(StrEnum):
    """Events that move a meeting request between statuses."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    EDIT_LOGISTICS = "edit_logistics"
    RESUBMIT = "resubmit"
    DATE_ELAPSED = "date_elapsed"


class InvalidTransitionError(ValueError):
    """Raised when an event is not allowed from the record's current status."""

    def __init__(self, status: MeetingStatus, event: MeetingEvent):
        super().__init__(
            f"Cannot {event.value.replace('_', ' ')} a meeting that is {status.value}"
        )
        self.status = status
        self.event = event


TRANSITIONS: dict[tuple[MeetingStatus, MeetingEvent], MeetingStatus] = {
    (MeetingStatus.DRAFT, MeetingEvent.SUBMIT): MeetingStatus.PENDING,
    (MeetingStatus.PENDING, MeetingEvent.APPROVE): MeetingStatus.APPROVED,
    (MeetingStatus.PENDING, MeetingEvent.REJECT): MeetingStatus.REJECTED,
    (MeetingStatus.APPROVED, MeetingEvent.EDIT_LOGISTICS): MeetingStatus.APPROVED,
    (MeetingStatus.REJECTED, MeetingEvent.RESUBMIT): MeetingStatus.PENDING,
}

DECISION_EVENTS: dict[Decision, MeetingEvent] = {
    Decision.APPROVE: MeetingEvent.APPROVE,
    Decision.REJECT: MeetingEvent.REJECT,
}


def next_status(status: MeetingStatus, event: MeetingEvent) -> MeetingStatus:
    """Return the status reached by applying ``event``, or raise."""

    if event == MeetingEvent.DATE_ELAPSED:
        return MeetingStatus.COMPLETED
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status, event) from None


def allowed_events(status: MeetingStatus) -> frozenset[MeetingEvent]:
    """Return the user-invoked events accepted from a status."""

    return frozenset(event for (source, event) in TRANSITIONS if source == status)


def effective_status(record: MeetingRecord, *, today: date | None = None) -> MeetingStatus:
    """Return the status as observed at read time.

    Any record whose meeting day is before ``today`` reads as completed,
    whatever its approval outcome.
    """

    current_day = today or date.today()
    if record.meeting_date < current_day:
        return next_status(record.status, MeetingEvent.DATE_ELAPSED)
    return record.status


def was_approved(record: MeetingRecord) -> bool:
    """Return True when the record's latest decision was an approval."""

    if record.status == MeetingStatus.APPROVED:
        return True
    if not record.approval_history:
        return False
    return record.approval_history[-1].decision == Decision.APPROVE


def visible_fields(
    status: MeetingStatus, *, was_approved: bool = False
) -> frozenset[str]:
    """Fields a reader may see for a record in ``status``."""

    logistics_visible = status == MeetingStatus.APPROVED or (
        status == MeetingStatus.COMPLETED and was_approved
    )
    if logistics_visible:
        return PHASE_ONE_FIELDS | PHASE_TWO_FIELDS | COMPUTED_FIELDS
    return PHASE_ONE_FIELDS


def editable_fields(status: MeetingStatus, role: RoleName | str) -> frozenset[str]:
    """Fields an actor with ``role`` may change while the record is in ``status``."""

    if not role_can(role, Permission.CREATE):
        return frozenset()
    if status == MeetingStatus.DRAFT:
        return PHASE_ONE_FIELDS
    if status == MeetingStatus.APPROVED:
        return PHASE_TWO_FIELDS
    return frozenset()


def record_visible_fields(
    record: MeetingRecord, *, today: date | None = None
) -> frozenset[str]:
    """Convenience wrapper over :func:`visible_fields` for a concrete record."""

    return visible_fields(
        effective_status(record, today=today), was_approved=was_approved(record)
    )


def record_editable_fields(
    record: MeetingRecord, role: RoleName | str, *, today: date | None = None
) -> frozenset[str]:
    return editable_fields(effective_status(record, today=today), role)


def start_resubmission(rejected: MeetingRecord) -> MeetingRecord:
    """Open a new draft cycle from a rejected request.

    The rejected record is left untouched; the new draft carries its phase-1
    data and points back at it.
    """

    if rejected.status != MeetingStatus.REJECTED:
        raise InvalidTransitionError(rejected.status, MeetingEvent.RESUBMIT)
    return MeetingRecord(
        client_key=uuid4().hex,
        status=MeetingStatus.DRAFT,
        requester_id=rejected.requester_id,
        previous_cycle_id=rejected.id,
        **rejected.model_dump(include=set(PHASE_ONE_FIELDS)),
    )


def record_decision(
    record: MeetingRecord,
    *,
    actor: str,
    role: RoleName,
    decision: Decision,
    remarks: str = "",
    timestamp: datetime | None = None,
    confirmed_status: MeetingStatus | None = None,
) -> tuple[MeetingRecord, ApprovalEvent]:
    """Append an approval event and return the updated copy of the record.

    ``confirmed_status`` lets the caller apply the status reported by the
    server; it must still be the status the decision leads to.
    """

    target = next_status(record.status, DECISION_EVENTS[decision])
    if confirmed_status is not None and confirmed_status != target:
        msg = (
            f"Server reported {confirmed_status.value} for a {decision.value} "
            f"decision; expected {target.value}"
        )
        raise ValueError(msg)

    event = ApprovalEvent(
        actor=actor,
        role=role,
        decision=decision,
        remarks=remarks,
        timestamp=timestamp or datetime.now(UTC),
        previous_status=record.status,
        new_status=target,
    )
    updated = record.model_copy(
        update={
            "status": target,
            "approval_history": (*record.approval_history, event),
        }
    )
    return updated, event
