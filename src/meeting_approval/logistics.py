"""Editing session for the logistics of an approved meeting."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from .cost import RateTable, calculate_expense
from .lifecycle import (
    InvalidTransitionError,
    MeetingEvent,
    editable_fields,
    effective_status,
)
from .models import LogisticsUpdate, MeetingRecord, MeetingStatus, TravelMode
from .security import RoleName

_COST_INPUTS = frozenset({"distance_km", "travel_mode"})


class LogisticsEditor:
    """Collect phase-2 edits for an approved record and keep its expense in sync.

    The expense is recomputed whenever the distance or travel mode changes and
    cannot be assigned directly.
    """

    def __init__(
        self,
        record: MeetingRecord,
        role: RoleName,
        *,
        rates: RateTable | None = None,
        today: date | None = None,
    ):
        status = effective_status(record, today=today)
        if status != MeetingStatus.APPROVED:
            raise InvalidTransitionError(status, MeetingEvent.EDIT_LOGISTICS)
        self._record = record
        self._rates = rates
        self._editable = editable_fields(status, role)
        self._values: dict[str, Any] = record.model_dump(include=set(self._editable))
        self._expense = self._compute()

    @property
    def editable(self) -> frozenset[str]:
        return self._editable

    @property
    def expense(self) -> Decimal:
        return self._expense

    @property
    def values(self) -> dict[str, Any]:
        return dict(self._values)

    def _compute(self) -> Decimal:
        return calculate_expense(
            self._values.get("distance_km"), self._values.get("travel_mode"), self._rates
        )

    def set(self, field: str, value: Any) -> None:
        """Set one logistics field, recomputing the expense when it depends on it."""

        if field not in self._editable:
            raise PermissionError(f"Field '{field}' is not editable")
        # run the value through the update model for coercion and bounds checks
        coerced = LogisticsUpdate.model_validate({field: value})
        self._values[field] = getattr(coerced, field)
        if field in _COST_INPUTS:
            self._expense = self._compute()

    def set_distance(self, distance_km: Decimal | int | float | str) -> None:
        self.set("distance_km", Decimal(str(distance_km)))

    def set_travel_mode(self, travel_mode: TravelMode | str) -> None:
        self.set("travel_mode", travel_mode)

    def apply(self, update: LogisticsUpdate) -> None:
        """Apply every field explicitly set on ``update``."""

        for field, value in update.model_dump(exclude_unset=True).items():
            self.set(field, value)

    def build(self) -> MeetingRecord:
        """Return a copy of the record carrying the edited logistics."""

        return self._record.model_copy(
            update={**self._values, "expense": self._expense}
        )
