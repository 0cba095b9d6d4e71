"""Single-flight, idempotent submission of meeting requests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from .cost import RateTable, calculate_expense
from .errors import Failure, FailureKind, GatewayError, classify_gateway_error
from .gateway import MeetingGateway, WriteReceipt
from .lifecycle import (
    InvalidTransitionError,
    MeetingEvent,
    effective_status,
    next_status,
    start_resubmission,
)
from .models import MeetingRecord, MeetingStatus, RequestId
from .security import Permission, SessionContext
from .validation import ValidationEngine, ValidationIssue

logger = logging.getLogger(__name__)

SUBMISSION_EVENTS = frozenset(
    {MeetingEvent.SUBMIT, MeetingEvent.RESUBMIT, MeetingEvent.EDIT_LOGISTICS}
)

PendingHook = Callable[[MeetingRecord], Awaitable[object]]


class SubmissionResult(BaseModel):
    """Outcome of a submission attempt.

    ``record`` is the server-confirmed record on success and the unchanged
    input on failure.
    """

    record: MeetingRecord
    request_id: str | None = Field(
        default=None, description="Idempotency token sent with the write"
    )
    failure: Failure | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return self.failure is None


class SubmissionCoordinator:
    """Turn a validated record and an intended transition into one durable write.

    At most one write per record is in flight at a time. Deduplicating retried
    writes is left to the server, which receives the request id with each write.
    """

    def __init__(
        self,
        gateway: MeetingGateway,
        *,
        validator: ValidationEngine | None = None,
        rates: RateTable | None = None,
        on_pending: PendingHook | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.gateway = gateway
        self.validator = validator or ValidationEngine.default()
        self.rates = rates
        self.on_pending = on_pending
        self.timeout_seconds = timeout_seconds
        self._in_flight: set[str] = set()

    def is_in_flight(self, record: MeetingRecord) -> bool:
        return record.record_key in self._in_flight

    async def submit(
        self,
        record: MeetingRecord,
        event: MeetingEvent = MeetingEvent.SUBMIT,
        *,
        session: SessionContext,
        request_id: RequestId | None = None,
        today: date | None = None,
    ) -> SubmissionResult:
        """Persist ``record`` through ``event``; never raises for expected failures."""

        if event not in SUBMISSION_EVENTS:
            raise ValueError(f"{event.value} is not a submission event")

        key = record.record_key
        if key in self._in_flight:
            return self._failed(
                record,
                None,
                Failure(
                    kind=FailureKind.IN_FLIGHT,
                    message="A submission for this meeting is already in progress",
                ),
            )

        token = request_id or RequestId.new()
        self._in_flight.add(key)
        try:
            return await self._submit(record, event, session, token, today)
        finally:
            self._in_flight.discard(key)

    async def _submit(
        self,
        record: MeetingRecord,
        event: MeetingEvent,
        session: SessionContext,
        token: RequestId,
        today: date | None,
    ) -> SubmissionResult:
        if not session.has_credential or not session.can(Permission.CREATE):
            return self._failed(
                record,
                token,
                Failure(
                    kind=FailureKind.AUTHORIZATION,
                    message="Sign in again to submit this meeting",
                ),
            )

        candidate = record
        if event == MeetingEvent.RESUBMIT and record.status == MeetingStatus.REJECTED:
            candidate = start_resubmission(record)
        elif event == MeetingEvent.EDIT_LOGISTICS:
            candidate = record.model_copy(
                update={
                    "expense": calculate_expense(
                        record.distance_km, record.travel_mode, self.rates
                    )
                }
            )

        try:
            target = next_status(self._source_status(candidate, event, today), event)
            if event == MeetingEvent.EDIT_LOGISTICS and candidate.id is None:
                raise InvalidTransitionError(candidate.status, event)
        except InvalidTransitionError as exc:
            return self._failed(
                record, token, Failure(kind=FailureKind.CONFLICT, message=str(exc))
            )

        issue = self._validate(candidate, event, today)
        if issue is not None:
            return self._failed(
                record,
                token,
                Failure(
                    kind=FailureKind.VALIDATION, message=issue.reason, field=issue.field
                ),
            )

        if candidate.requester_id is None:
            candidate = candidate.model_copy(update={"requester_id": session.user_id})

        try:
            async with asyncio.timeout(self.timeout_seconds):
                receipt = await self._write(candidate, event, session, token)
        except (GatewayError, TimeoutError) as exc:
            return self._failed(record, token, classify_gateway_error(exc))

        if receipt.request_id is not None and receipt.request_id != token.value:
            return self._failed(
                record,
                token,
                Failure(
                    kind=FailureKind.TRANSPORT,
                    message="Server acknowledged a different request",
                ),
            )
        if receipt.status != target:
            logger.info(
                "Server confirmed %s for meeting %s; expected %s",
                receipt.status.value,
                receipt.id,
                target.value,
            )

        confirmed = candidate.model_copy(
            update={
                "id": receipt.id,
                "status": receipt.status,
                "request_id": token.value,
            }
        )
        logger.info(
            "Meeting %s %s as %s (request %s)",
            confirmed.id,
            event.value,
            confirmed.status.value,
            token.value,
        )
        if confirmed.status == MeetingStatus.PENDING:
            await self._run_pending_hook(confirmed)
        return SubmissionResult(record=confirmed, request_id=token.value)

    async def _run_pending_hook(self, record: MeetingRecord) -> None:
        if self.on_pending is None:
            return
        # the write is already durable, so a failing hook must not undo the result
        try:
            await self.on_pending(record)
        except Exception:
            logger.warning(
                "Pending hook failed for meeting %s", record.id, exc_info=True
            )

    @staticmethod
    def _source_status(
        record: MeetingRecord, event: MeetingEvent, today: date | None
    ) -> MeetingStatus:
        if event == MeetingEvent.EDIT_LOGISTICS:
            return effective_status(record, today=today)
        if (
            event == MeetingEvent.RESUBMIT
            and record.status == MeetingStatus.DRAFT
            and record.previous_cycle_id is not None
        ):
            # a resubmission is a new draft cycle standing in for the rejected one
            return MeetingStatus.REJECTED
        # a backdated draft is reported by phase-1 validation, not as completed
        return record.status

    def _validate(
        self, record: MeetingRecord, event: MeetingEvent, today: date | None
    ) -> ValidationIssue | None:
        if event == MeetingEvent.EDIT_LOGISTICS:
            return self.validator.check_phase_two(record)
        return self.validator.check_phase_one(record, reference_date=today)

    async def _write(
        self,
        record: MeetingRecord,
        event: MeetingEvent,
        session: SessionContext,
        token: RequestId,
    ) -> WriteReceipt:
        credential = session.credential or ""
        if event == MeetingEvent.EDIT_LOGISTICS:
            return await self.gateway.update(
                record.id or "", record, request_id=token, credential=credential
            )
        return await self.gateway.create(record, request_id=token, credential=credential)

    def _failed(
        self, record: MeetingRecord, token: RequestId | None, failure: Failure
    ) -> SubmissionResult:
        logger.info(
            "Submission for meeting %s failed (%s): %s",
            record.record_key,
            failure.kind.value,
            failure.message,
        )
        return SubmissionResult(
            record=record,
            request_id=token.value if token is not None else None,
            failure=failure,
        )
