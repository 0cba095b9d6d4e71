"""Dashboard filters and counts over a user's meetings."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date
from enum import StrEnum

from .lifecycle import effective_status
from .models import MeetingRecord, MeetingStatus


class MeetingView(StrEnum):
    ALL = "ALL"
    UPCOMING = "UPCOMING"
    HISTORY = "HISTORY"


def filter_meetings(
    records: Iterable[MeetingRecord],
    view: MeetingView,
    *,
    today: date | None = None,
) -> list[MeetingRecord]:
    """Return records for a dashboard tab, soonest meeting first for upcoming."""

    current_day = today or date.today()
    if view == MeetingView.ALL:
        return list(records)
    if view == MeetingView.UPCOMING:
        upcoming = [
            record
            for record in records
            if effective_status(record, today=current_day) != MeetingStatus.COMPLETED
        ]
        return sorted(upcoming, key=lambda record: record.meeting_date)
    history = [
        record
        for record in records
        if effective_status(record, today=current_day) == MeetingStatus.COMPLETED
    ]
    return sorted(history, key=lambda record: record.meeting_date, reverse=True)


def status_summary(
    records: Iterable[MeetingRecord], *, today: date | None = None
) -> dict[MeetingStatus, int]:
    """Count records per effective status; every status is present."""

    counts: Counter[MeetingStatus] = Counter(
        effective_status(record, today=today) for record in records
    )
    return {status: counts.get(status, 0) for status in MeetingStatus}
