"""Approval decisions on pending meeting requests."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict

from .errors import Failure, FailureKind, GatewayError, classify_gateway_error
from .gateway import MeetingGateway
from .lifecycle import DECISION_EVENTS, effective_status, next_status, record_decision
from .models import ApprovalEvent, Decision, MeetingRecord, MeetingStatus
from .notifications import Audience, NotificationDispatcher, NotificationEvent
from .security import SessionContext, is_approver

logger = logging.getLogger(__name__)

_DECISION_NOTIFICATIONS: dict[Decision, NotificationEvent] = {
    Decision.APPROVE: NotificationEvent.REQUEST_APPROVED,
    Decision.REJECT: NotificationEvent.REQUEST_REJECTED,
}


class DecisionResult(BaseModel):
    """Outcome of an approve or reject call."""

    record: MeetingRecord | None = None
    event: ApprovalEvent | None = None
    failure: Failure | None = None
    notified: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return self.failure is None


def _notification_payload(record: MeetingRecord, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "meeting_id": record.id,
        "status": record.status.value,
        "contact_name": record.contact_name,
        "organization": record.organization,
        "meeting_date": record.meeting_date.isoformat(),
        "requester_id": record.requester_id,
    }
    payload.update(extra)
    return payload


class ApprovalCoordinator:
    """Apply approver decisions and fan out the resulting notifications."""

    def __init__(
        self,
        gateway: MeetingGateway,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.gateway = gateway
        self.dispatcher = dispatcher

    async def announce_submission(self, record: MeetingRecord) -> bool:
        """Tell every approver that a request is waiting for a decision."""

        if self.dispatcher is None:
            return False
        return await self.dispatcher.dispatch(
            Audience.approvers(),
            NotificationEvent.APPROVAL_REQUESTED,
            _notification_payload(record, purpose=record.purpose),
        )

    async def decide(
        self,
        record_id: str,
        decision: Decision,
        *,
        session: SessionContext,
        remarks: str = "",
        today: date | None = None,
        timestamp: datetime | None = None,
    ) -> DecisionResult:
        """Approve or reject a pending request on behalf of ``session``."""

        if not is_approver(session.role):
            return self._failed(
                record_id,
                Failure(
                    kind=FailureKind.AUTHORIZATION,
                    message=f"Role {session.role} cannot decide meeting requests",
                ),
            )
        if not session.has_credential:
            return self._failed(
                record_id,
                Failure(
                    kind=FailureKind.AUTHORIZATION,
                    message="Sign in again to decide this meeting",
                ),
            )
        credential = session.credential or ""

        try:
            record = await self.gateway.fetch(record_id, credential=credential)
        except GatewayError as exc:
            return self._failed(record_id, classify_gateway_error(exc))

        status = effective_status(record, today=today)
        if status != MeetingStatus.PENDING:
            return self._failed(
                record_id,
                Failure(
                    kind=FailureKind.CONFLICT,
                    message=f"Meeting request is already {status.value}",
                ),
                record=record,
            )
        target = next_status(status, DECISION_EVENTS[decision])

        try:
            receipt = await self.gateway.decide(
                record_id,
                decision,
                remarks,
                credential=credential,
                actor=session.user_id,
                role=session.role,
                expected_status=MeetingStatus.PENDING,
                decided_at=timestamp,
            )
        except GatewayError as exc:
            return self._failed(record_id, classify_gateway_error(exc), record=record)

        if receipt.status != target:
            return self._failed(
                record_id,
                Failure(
                    kind=FailureKind.CONFLICT,
                    message=f"Meeting request is now {receipt.status.value}",
                ),
                record=record,
            )

        updated, event = record_decision(
            record,
            actor=session.user_id,
            role=session.role,
            decision=decision,
            remarks=remarks,
            timestamp=timestamp or receipt.decided_at or datetime.now(UTC),
            confirmed_status=receipt.status,
        )
        logger.info(
            "Meeting %s %s by %s (%s)",
            record_id,
            updated.status.value,
            session.user_id,
            session.role,
        )
        notified = await self._notify_requester(updated, decision, remarks)
        return DecisionResult(record=updated, event=event, notified=notified)

    async def approve(
        self, record_id: str, *, session: SessionContext, remarks: str = "", **kwargs
    ) -> DecisionResult:
        return await self.decide(
            record_id, Decision.APPROVE, session=session, remarks=remarks, **kwargs
        )

    async def reject(
        self, record_id: str, *, session: SessionContext, remarks: str = "", **kwargs
    ) -> DecisionResult:
        return await self.decide(
            record_id, Decision.REJECT, session=session, remarks=remarks, **kwargs
        )

    async def _notify_requester(
        self, record: MeetingRecord, decision: Decision, remarks: str
    ) -> bool:
        if self.dispatcher is None:
            return False
        if record.requester_id is None:
            logger.warning("Meeting %s has no requester to notify", record.id)
            return False
        return await self.dispatcher.dispatch(
            Audience.user(record.requester_id),
            _DECISION_NOTIFICATIONS[decision],
            _notification_payload(record, remarks=remarks),
        )

    @staticmethod
    def _failed(
        record_id: str, failure: Failure, *, record: MeetingRecord | None = None
    ) -> DecisionResult:
        logger.info(
            "Decision on meeting %s failed (%s): %s",
            record_id,
            failure.kind.value,
            failure.message,
        )
        return DecisionResult(record=record, failure=failure)
