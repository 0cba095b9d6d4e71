"""Notification fan-out for submissions and approval decisions.

Delivery is best-effort: the status transition that triggered a notification
is authoritative, so a delivery failure is logged and never propagated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .security import APPROVER_ROLES, RoleName

logger = logging.getLogger(__name__)


class NotificationEvent(StrEnum):
    """Workflow events that produce notifications."""

    APPROVAL_REQUESTED = "approval_requested"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"


class Audience(BaseModel):
    """Recipients of a notification: every holder of some roles, or one user."""

    roles: frozenset[RoleName] = Field(default_factory=frozenset)
    user_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _exactly_one_target(self) -> Audience:
        if bool(self.roles) == (self.user_id is not None):
            raise ValueError("Audience must name either roles or a single user")
        return self

    @classmethod
    def approvers(cls) -> Audience:
        return cls(roles=APPROVER_ROLES)

    @classmethod
    def user(cls, user_id: str) -> Audience:
        return cls(user_id=user_id)


class Notifier(Protocol):
    """Delivery transport for notifications."""

    async def notify(
        self, audience: Audience, event: NotificationEvent, payload: dict[str, Any]
    ) -> None: ...


class NotificationPreferences(BaseModel):
    """Stored notification preferences for a user."""

    approval_requests: bool = Field(
        default=True, description="Whether to receive new approval requests"
    )
    decision_updates: bool = Field(
        default=True, description="Whether to receive approve/reject outcomes"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp of the latest preference update",
    )

    def allows(self, event: NotificationEvent) -> bool:
        if event == NotificationEvent.APPROVAL_REQUESTED:
            return self.approval_requests
        return self.decision_updates


class NotificationPreferencesUpdate(BaseModel):
    """Partial update payload for notification preferences."""

    approval_requests: bool | None = None
    decision_updates: bool | None = None

    def apply_to(self, current: NotificationPreferences) -> NotificationPreferences:
        """Return a new NotificationPreferences with updates applied."""

        data = current.model_dump()
        data.update(self.model_dump(exclude_none=True))
        data["updated_at"] = datetime.now(UTC)
        return NotificationPreferences(**data)


@dataclass
class NotificationPreferenceStore:
    """In-memory store for notification preferences keyed by user id."""

    preferences: dict[str, NotificationPreferences] = field(default_factory=dict)

    def get_preferences(self, user_id: str) -> NotificationPreferences:
        return self.preferences.get(user_id, NotificationPreferences())

    def save_preferences(
        self, user_id: str, preferences: NotificationPreferences
    ) -> NotificationPreferences:
        self.preferences[user_id] = preferences
        return preferences

    def update_preferences(
        self, user_id: str, update: NotificationPreferencesUpdate
    ) -> NotificationPreferences:
        updated = update.apply_to(self.get_preferences(user_id))
        self.preferences[user_id] = updated
        return updated


@dataclass(frozen=True)
class Delivery:
    """A notification handed to a notifier."""

    audience: Audience
    event: NotificationEvent
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class RecordingNotifier:
    """Notifier that keeps deliveries in memory."""

    deliveries: list[Delivery] = field(default_factory=list)

    async def notify(
        self, audience: Audience, event: NotificationEvent, payload: dict[str, Any]
    ) -> None:
        self.deliveries.append(Delivery(audience=audience, event=event, payload=payload))

    def for_event(self, event: NotificationEvent) -> list[Delivery]:
        return [delivery for delivery in self.deliveries if delivery.event == event]


class NotificationDispatcher:
    """Send notifications without letting delivery problems escape."""

    def __init__(
        self,
        notifier: Notifier,
        preferences: NotificationPreferenceStore | None = None,
    ) -> None:
        self.notifier = notifier
        self.preferences = preferences

    async def dispatch(
        self, audience: Audience, event: NotificationEvent, payload: dict[str, Any]
    ) -> bool:
        """Deliver a notification; return whether it was handed off successfully."""

        if audience.user_id is not None and self.preferences is not None:
            if not self.preferences.get_preferences(audience.user_id).allows(event):
                logger.debug("User %s opted out of %s", audience.user_id, event.value)
                return False
        try:
            await self.notifier.notify(audience, event, payload)
        except Exception:
            logger.warning(
                "Notification %s for meeting %s could not be delivered",
                event.value,
                payload.get("meeting_id"),
                exc_info=True,
            )
            return False
        return True
