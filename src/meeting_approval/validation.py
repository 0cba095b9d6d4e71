"""Phase-scoped validation rules for meeting requests."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .models import MeetingRecord

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class Phase(IntEnum):
    """Which set of fields a validation pass covers."""

    REQUEST = 1
    LOGISTICS = 2


class ValidationIssue(BaseModel):
    """First rule violation found for a record."""

    field: str = Field(..., description="Field that failed validation")
    reason: str = Field(..., description="Human-readable explanation")

    model_config = ConfigDict(frozen=True)


class ValidationRule(BaseModel):
    """Base class for validation rules."""

    field: str = Field(..., description="Field the rule reports against")
    message: str = Field(..., description="Reason reported on failure")

    model_config = ConfigDict(extra="forbid", frozen=True)

    def check(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> ValidationIssue | None:
        """Return an issue when the record violates the rule, else None."""

        raise NotImplementedError

    def _issue(self) -> ValidationIssue:
        return ValidationIssue(field=self.field, reason=self.message)


class RequiredTextRule(ValidationRule):
    """Reject empty or whitespace-only text."""

    type: Literal["required"] = "required"

    def check(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> ValidationIssue | None:
        value = getattr(record, self.field)
        if value is None or not str(value).strip():
            return self._issue()
        return None


class EmailFormatRule(ValidationRule):
    """Require a non-empty address shaped like local@domain.tld."""

    type: Literal["email"] = "email"
    missing_message: str = Field(default="Email is required")

    def check(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> ValidationIssue | None:
        value = (getattr(record, self.field) or "").strip()
        if not value:
            return ValidationIssue(field=self.field, reason=self.missing_message)
        if not _EMAIL_PATTERN.match(value):
            return self._issue()
        return None


class NotBackdatedRule(ValidationRule):
    """Meeting date may be today or later, never a past day."""

    type: Literal["not_backdated"] = "not_backdated"

    def check(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> ValidationIssue | None:
        today = reference_date or date.today()
        if getattr(record, self.field) < today:
            return self._issue()
        return None


class TimeOrderRule(ValidationRule):
    """Start time must be strictly before end time when both are set."""

    type: Literal["time_order"] = "time_order"
    end_field: str = Field(default="end_time")

    def check(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> ValidationIssue | None:
        start = getattr(record, self.field)
        end = getattr(record, self.end_field)
        if start is None or end is None:
            return None
        if start >= end:
            return self._issue()
        return None


def default_phase_one_rules() -> list[ValidationRule]:
    return [
        RequiredTextRule(field="contact_name", message="Contact name is required"),
        RequiredTextRule(field="designation", message="Designation is required"),
        RequiredTextRule(field="contact_number", message="Contact number is required"),
        RequiredTextRule(field="purpose", message="Meeting purpose is required"),
        RequiredTextRule(field="location", message="Meeting location is required"),
        EmailFormatRule(field="email", message="Email address is not valid"),
        NotBackdatedRule(
            field="meeting_date", message="Cannot select a past meeting date"
        ),
    ]


def default_phase_two_rules() -> list[ValidationRule]:
    return [
        TimeOrderRule(
            field="start_time", message="Start time must be before end time"
        ),
    ]


class ValidationEngine:
    """Run phase-specific rules in order and stop at the first failure."""

    def __init__(
        self,
        phase_one: Iterable[ValidationRule],
        phase_two: Iterable[ValidationRule],
    ):
        self.rules: dict[Phase, list[ValidationRule]] = {
            Phase.REQUEST: list(phase_one),
            Phase.LOGISTICS: list(phase_two),
        }

    @classmethod
    def default(cls) -> ValidationEngine:
        return cls(default_phase_one_rules(), default_phase_two_rules())

    def validate(
        self,
        record: MeetingRecord,
        phase: Phase,
        *,
        reference_date: date | None = None,
    ) -> ValidationIssue | None:
        for rule in self.rules[phase]:
            issue = rule.check(record, reference_date=reference_date)
            if issue is not None:
                return issue
        return None

    def check_phase_one(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> ValidationIssue | None:
        return self.validate(record, Phase.REQUEST, reference_date=reference_date)

    def check_phase_two(self, record: MeetingRecord) -> ValidationIssue | None:
        return self.validate(record, Phase.LOGISTICS)

    def can_submit(
        self, record: MeetingRecord, *, reference_date: date | None = None
    ) -> bool:
        return self.check_phase_one(record, reference_date=reference_date) is None
