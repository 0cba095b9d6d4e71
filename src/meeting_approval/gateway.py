"""Persistence gateway contract and an in-memory reference implementation."""

from __future__ import annotations

from datetime import UTC, datetime
from itertools import count
from typing import Protocol

from pydantic import BaseModel, Field

from .errors import AuthorizationError, ConflictError, NotFoundError, TransportError
from .lifecycle import record_decision
from .models import (
    COMPUTED_FIELDS,
    PHASE_TWO_FIELDS,
    Decision,
    MeetingRecord,
    MeetingStatus,
    RequestId,
)
from .security import RoleName


class WriteReceipt(BaseModel):
    """Server acknowledgement of a create or update."""

    id: str = Field(..., description="Identifier of the persisted record")
    status: MeetingStatus = Field(..., description="Status confirmed by the server")
    request_id: str | None = Field(
        default=None, description="Idempotency token echoed by the server"
    )


class DecisionReceipt(BaseModel):
    """Server acknowledgement of an approval decision."""

    status: MeetingStatus = Field(..., description="Status confirmed by the server")
    decided_at: datetime | None = Field(
        default=None, description="Server timestamp of the decision"
    )


class MeetingGateway(Protocol):
    """Operations the workflow needs from the persistence service.

    Every call carries the caller's bearer credential. Implementations raise
    :class:`~meeting_approval.errors.GatewayError` subclasses on failure.
    """

    async def create(
        self, record: MeetingRecord, *, request_id: RequestId, credential: str
    ) -> WriteReceipt: ...

    async def update(
        self,
        record_id: str,
        record: MeetingRecord,
        *,
        request_id: RequestId,
        credential: str,
    ) -> WriteReceipt: ...

    async def decide(
        self,
        record_id: str,
        decision: Decision,
        remarks: str,
        *,
        credential: str,
        actor: str,
        role: RoleName,
        expected_status: MeetingStatus | None = None,
        decided_at: datetime | None = None,
    ) -> DecisionReceipt: ...

    async def fetch(self, record_id: str, *, credential: str) -> MeetingRecord: ...

    async def list_pending(self, *, credential: str) -> list[MeetingRecord]: ...


class InMemoryMeetingGateway:
    """Dictionary-backed gateway with the server's at-most-once write policy.

    Writes are deduplicated by request id: replaying a request id returns the
    original receipt without writing again.
    """

    def __init__(
        self,
        *,
        credentials: set[str] | None = None,
        id_prefix: str = "MTG",
    ) -> None:
        self.records: dict[str, MeetingRecord] = {}
        self.receipts: dict[str, WriteReceipt] = {}
        self.decision_log: list[tuple[str, Decision, str]] = []
        self.credentials = credentials
        self.available = True
        self.write_count = 0
        self._id_prefix = id_prefix
        self._ids = count(1)

    def _check(self, credential: str) -> None:
        if not self.available:
            raise TransportError(status_code=503)
        if self.credentials is not None and credential not in self.credentials:
            raise AuthorizationError("Invalid token.", status_code=401)

    def _get(self, record_id: str) -> MeetingRecord:
        record = self.records.get(record_id)
        if record is None:
            raise NotFoundError("Not found.", status_code=404)
        return record

    async def create(
        self, record: MeetingRecord, *, request_id: RequestId, credential: str
    ) -> WriteReceipt:
        self._check(credential)
        if request_id.value in self.receipts:
            return self.receipts[request_id.value]

        if record.previous_cycle_id is not None:
            previous = self._get(record.previous_cycle_id)
            if previous.status != MeetingStatus.REJECTED:
                raise ConflictError(
                    "Only rejected meetings can be resubmitted", status_code=409
                )

        record_id = f"{self._id_prefix}-{next(self._ids):04d}"
        self.records[record_id] = record.model_copy(
            update={
                "id": record_id,
                "status": MeetingStatus.PENDING,
                "request_id": request_id.value,
            }
        )
        self.write_count += 1
        receipt = WriteReceipt(
            id=record_id, status=MeetingStatus.PENDING, request_id=request_id.value
        )
        self.receipts[request_id.value] = receipt
        return receipt

    async def update(
        self,
        record_id: str,
        record: MeetingRecord,
        *,
        request_id: RequestId,
        credential: str,
    ) -> WriteReceipt:
        self._check(credential)
        if request_id.value in self.receipts:
            return self.receipts[request_id.value]

        stored = self._get(record_id)
        if stored.status != MeetingStatus.APPROVED:
            raise ConflictError(
                f"Meeting is {stored.status.value}; logistics can only be edited "
                "once approved",
                status_code=409,
            )
        logistics = record.model_dump(include=set(PHASE_TWO_FIELDS | COMPUTED_FIELDS))
        self.records[record_id] = stored.model_copy(
            update={**logistics, "request_id": request_id.value}
        )
        self.write_count += 1
        receipt = WriteReceipt(
            id=record_id, status=stored.status, request_id=request_id.value
        )
        self.receipts[request_id.value] = receipt
        return receipt

    async def decide(
        self,
        record_id: str,
        decision: Decision,
        remarks: str,
        *,
        credential: str,
        actor: str,
        role: RoleName,
        expected_status: MeetingStatus | None = None,
        decided_at: datetime | None = None,
    ) -> DecisionReceipt:
        self._check(credential)
        stored = self._get(record_id)
        if expected_status is not None and stored.status != expected_status:
            raise ConflictError(
                f"Meeting has already been {stored.status.value}", status_code=409
            )
        if stored.status != MeetingStatus.PENDING:
            raise ConflictError(
                f"Meeting is {stored.status.value}, not pending", status_code=409
            )
        updated, event = record_decision(
            stored,
            actor=actor,
            role=role,
            decision=decision,
            remarks=remarks,
            timestamp=decided_at or datetime.now(UTC),
        )
        self.records[record_id] = updated
        self.decision_log.append((record_id, decision, remarks))
        return DecisionReceipt(status=updated.status, decided_at=event.timestamp)

    async def fetch(self, record_id: str, *, credential: str) -> MeetingRecord:
        self._check(credential)
        return self._get(record_id)

    async def list_pending(self, *, credential: str) -> list[MeetingRecord]:
        self._check(credential)
        return [
            record
            for record in self.records.values()
            if record.status == MeetingStatus.PENDING
        ]
