from __future__ import annotations

from datetime import date, timedelta

from meeting_approval.models import MeetingStatus
from meeting_approval.views import MeetingView, filter_meetings, status_summary

TODAY = date(2030, 6, 15)


def _records(record_factory):
    return [
        record_factory(id="A", status=MeetingStatus.PENDING, meeting_date=TODAY + timedelta(days=3)),
        record_factory(id="B", status=MeetingStatus.APPROVED, meeting_date=TODAY),
        record_factory(id="C", status=MeetingStatus.APPROVED, meeting_date=TODAY - timedelta(days=2)),
        record_factory(id="D", status=MeetingStatus.REJECTED, meeting_date=TODAY - timedelta(days=9)),
    ]


def test_upcoming_is_soonest_first(record_factory) -> None:
    upcoming = filter_meetings(_records(record_factory), MeetingView.UPCOMING, today=TODAY)

    assert [record.id for record in upcoming] == ["B", "A"]


def test_history_is_most_recent_first(record_factory) -> None:
    history = filter_meetings(_records(record_factory), MeetingView.HISTORY, today=TODAY)

    assert [record.id for record in history] == ["C", "D"]


def test_all_keeps_order(record_factory) -> None:
    records = _records(record_factory)

    assert filter_meetings(records, MeetingView.ALL, today=TODAY) == records


def test_status_summary_counts_effective_status(record_factory) -> None:
    summary = status_summary(_records(record_factory), today=TODAY)

    assert summary == {
        MeetingStatus.DRAFT: 0,
        MeetingStatus.PENDING: 1,
        MeetingStatus.APPROVED: 1,
        MeetingStatus.REJECTED: 0,
        MeetingStatus.COMPLETED: 2,
    }
