"""Core models for meeting requests and their approval history."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .security import RoleName


class MeetingStatus(str, Enum):
    """Status of a meeting request."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class TravelMode(str, Enum):
    """Ways of reaching a meeting, keyed by their display name."""

    CAR = "Car"
    BIKE = "Bike"
    CAB = "Cab"
    PUBLIC_TRANSPORT = "Public Transport"
    WALK = "Walk"


class VisitPlace(str, Enum):
    """Where the meeting took place."""

    OFFICE = "Office"
    CLIENT_SITE = "Client Site"
    OTHER = "Other"


class Decision(str, Enum):
    """Approver decision on a pending request."""

    APPROVE = "approve"
    REJECT = "reject"


PHASE_ONE_FIELDS: frozenset[str] = frozenset(
    {
        "contact_name",
        "designation",
        "contact_number",
        "email",
        "organization",
        "location",
        "purpose",
        "meeting_date",
    }
)

PHASE_TWO_FIELDS: frozenset[str] = frozenset(
    {
        "visit_place",
        "discussion_summary",
        "travel_mode",
        "distance_km",
        "remarks",
        "start_time",
        "end_time",
    }
)

COMPUTED_FIELDS: frozenset[str] = frozenset({"expense"})


class RequestId(BaseModel):
    """Idempotency token generated once per user-initiated write attempt."""

    value: str = Field(..., min_length=1, description="Opaque unique token")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def new(cls) -> RequestId:
        return cls(value=str(uuid4()))

    def __str__(self) -> str:
        return self.value


class ApprovalEvent(BaseModel):
    """Immutable audit record for a single approve or reject decision."""

    actor: str = Field(..., description="User who made the decision")
    role: RoleName = Field(..., description="Role the actor held when deciding")
    decision: Decision = Field(..., description="Approve or reject")
    remarks: str = Field(default="", description="Approver remarks")
    timestamp: datetime = Field(..., description="When the decision was recorded")
    previous_status: MeetingStatus = Field(
        ..., description="Status before the decision was applied"
    )
    new_status: MeetingStatus = Field(
        ..., description="Status after the decision was applied"
    )

    model_config = {"frozen": True}


class LogisticsUpdate(BaseModel):
    """Phase-2 values a requester may edit once a meeting is approved."""

    visit_place: VisitPlace | None = None
    discussion_summary: str | None = None
    travel_mode: TravelMode | None = None
    distance_km: Annotated[Decimal, Field(ge=0)] | None = None
    remarks: str | None = None
    start_time: time | None = None
    end_time: time | None = None

    # expense is derived, so a payload that carries it is refused outright
    model_config = ConfigDict(extra="forbid")


class MeetingRecord(BaseModel):
    """A meeting request and, once approved, its execution details."""

    id: str | None = Field(
        default=None, description="Identifier assigned by the persistence layer"
    )
    client_key: str = Field(
        default_factory=lambda: uuid4().hex,
        description="Client-side key identifying the record before it has an id",
    )
    status: MeetingStatus = Field(
        default=MeetingStatus.DRAFT, description="Stored lifecycle status"
    )
    requester_id: str | None = Field(
        default=None, description="User who submitted the request"
    )
    previous_cycle_id: str | None = Field(
        default=None,
        description="Rejected record that this resubmission replaces",
    )

    contact_name: str = Field(default="", description="Person being met")
    designation: str = Field(default="", description="Contact's designation")
    contact_number: str = Field(default="", description="Contact phone number")
    email: str = Field(default="", description="Contact email address")
    organization: str | None = Field(
        default=None, description="Client organization, optional"
    )
    location: str = Field(default="", description="Meeting location")
    purpose: str = Field(default="", description="Purpose of the meeting")
    meeting_date: date = Field(
        default_factory=date.today, description="Calendar day of the meeting"
    )

    visit_place: VisitPlace | None = Field(default=None, description="Visit place")
    discussion_summary: str | None = Field(
        default=None, description="Summary of what was discussed"
    )
    travel_mode: TravelMode | None = Field(default=None, description="Travel mode")
    distance_km: Annotated[Decimal, Field(ge=0)] | None = Field(
        default=None, description="Distance travelled in kilometres"
    )
    expense: Decimal | None = Field(
        default=None,
        description="Computed travel cost; never entered directly",
    )
    remarks: str | None = Field(default=None, description="Requester remarks")
    start_time: time | None = Field(default=None, description="Meeting start time")
    end_time: time | None = Field(default=None, description="Meeting end time")

    request_id: str | None = Field(
        default=None, description="Idempotency token of the latest write attempt"
    )
    approval_history: tuple[ApprovalEvent, ...] = Field(
        default_factory=tuple,
        description="Append-only audit log of approval decisions",
    )

    @model_validator(mode="after")
    def _phase_two_requires_approval(self) -> MeetingRecord:
        if self.status in (MeetingStatus.APPROVED, MeetingStatus.COMPLETED):
            return self
        populated = sorted(
            name
            for name in PHASE_TWO_FIELDS | COMPUTED_FIELDS
            if getattr(self, name) is not None
        )
        if populated:
            msg = (
                f"Logistics fields {', '.join(populated)} cannot be set while the "
                f"meeting is {self.status.value}"
            )
            raise ValueError(msg)
        return self

    @property
    def record_key(self) -> str:
        """Stable key for per-record bookkeeping, before and after persistence."""

        return self.id if self.id is not None else f"draft:{self.client_key}"

    def phase_one_payload(self) -> dict[str, object]:
        """Return the phase-1 fields in JSON-compatible form."""

        return self.model_dump(mode="json", include=set(PHASE_ONE_FIELDS))

    def phase_two_payload(self) -> dict[str, object]:
        """Return the phase-2 fields, including the computed expense."""

        return self.model_dump(
            mode="json", include=set(PHASE_TWO_FIELDS | COMPUTED_FIELDS)
        )
