"""Test configuration for adding src to the import path."""

from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import date, timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from meeting_approval import (
    InMemoryMeetingGateway,
    MeetingRecord,
    MeetingStatus,
    RoleName,
    SessionContext,
)

TOKEN = "token-123"


@pytest.fixture()
def meeting_day() -> date:
    return date.today() + timedelta(days=7)


@pytest.fixture()
def record_factory(meeting_day: date) -> Callable[..., MeetingRecord]:
    def _factory(**overrides: object) -> MeetingRecord:
        data = {
            "contact_name": "Priya Nair",
            "designation": "Procurement Lead",
            "contact_number": "+91 98450 12345",
            "email": "priya.nair@example.com",
            "organization": "Acme Industries",
            "location": "Bengaluru",
            "purpose": "Quarterly supply review",
            "meeting_date": meeting_day,
        }
        data.update(overrides)
        return MeetingRecord(**data)

    return _factory


@pytest.fixture()
def draft_record(record_factory: Callable[..., MeetingRecord]) -> MeetingRecord:
    return record_factory()


@pytest.fixture()
def approved_record(record_factory: Callable[..., MeetingRecord]) -> MeetingRecord:
    return record_factory(
        id="MTG-0042", status=MeetingStatus.APPROVED, requester_id="rep-1"
    )


@pytest.fixture()
def requester_session() -> SessionContext:
    return SessionContext(user_id="rep-1", role=RoleName.REQUESTER, credential=TOKEN)


@pytest.fixture()
def approver_session() -> SessionContext:
    return SessionContext(user_id="ho-1", role=RoleName.APPROVER_HO, credential=TOKEN)


@pytest.fixture()
def gateway() -> InMemoryMeetingGateway:
    return InMemoryMeetingGateway(credentials={TOKEN})
