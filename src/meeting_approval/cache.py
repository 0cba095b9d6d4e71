"""Pending-approvals read path with a snapshot fallback.

The network is the primary source. Each successful fetch overwrites the
stored snapshot; the snapshot is only served when a fetch fails.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .errors import Failure, FailureKind, GatewayError, classify_gateway_error
from .gateway import MeetingGateway
from .models import MeetingRecord
from .security import SessionContext, is_approver
from .settings import WorkflowSettings

logger = logging.getLogger(__name__)

PendingSource = Literal["network", "cache", "none"]


class PendingSnapshot(BaseModel):
    """Pending records captured by a successful fetch."""

    records: list[MeetingRecord] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PendingApprovals(BaseModel):
    """What the caller should render for the approval queue."""

    records: list[MeetingRecord] = Field(default_factory=list)
    source: PendingSource = Field(..., description="Where the records came from")
    fetched_at: datetime | None = Field(
        default=None, description="When the served records were fetched"
    )
    failure: Failure | None = Field(
        default=None, description="Why the network fetch did not succeed"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def stale(self) -> bool:
        return self.source == "cache"


class SnapshotStore(Protocol):
    def load(self) -> PendingSnapshot | None: ...

    def save(self, snapshot: PendingSnapshot) -> None: ...


class InMemorySnapshotStore:
    """Snapshot store that lives as long as the process."""

    def __init__(self, snapshot: PendingSnapshot | None = None) -> None:
        self.snapshot = snapshot

    def load(self) -> PendingSnapshot | None:
        return self.snapshot

    def save(self, snapshot: PendingSnapshot) -> None:
        self.snapshot = snapshot


class JsonSnapshotStore:
    """Snapshot store backed by a single JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> PendingSnapshot | None:
        if not self.path.exists():
            return None
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return PendingSnapshot.model_validate(data)

    def save(self, snapshot: PendingSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot.model_dump(mode="json"), separators=(",", ":"))
        # write beside the target and swap so readers never see a partial file
        staging = self.path.with_suffix(self.path.suffix + ".tmp")
        staging.write_text(payload, encoding="utf-8")
        staging.replace(self.path)


class ApprovalListCache:
    """Serve the approver queue, falling back to the last good snapshot."""

    def __init__(
        self, gateway: MeetingGateway, store: SnapshotStore | None = None
    ) -> None:
        self.gateway = gateway
        self.store = store or InMemorySnapshotStore()
        self._session_snapshot: PendingSnapshot | None = None

    @classmethod
    def from_settings(
        cls, gateway: MeetingGateway, settings: WorkflowSettings
    ) -> ApprovalListCache:
        """Back the cache with the configured snapshot file, or memory when unset."""

        if settings.snapshot_path is None:
            return cls(gateway)
        return cls(gateway, JsonSnapshotStore(settings.snapshot_path))

    async def list_pending(self, session: SessionContext) -> PendingApprovals:
        """Fetch pending requests; never raises for gateway failures."""

        if not is_approver(session.role):
            return PendingApprovals(
                source="none",
                failure=Failure(
                    kind=FailureKind.AUTHORIZATION,
                    message=f"Role {session.role} cannot view pending approvals",
                ),
            )

        try:
            records = await self.gateway.list_pending(credential=session.credential or "")
        except GatewayError as exc:
            return self._fallback(classify_gateway_error(exc))

        snapshot = PendingSnapshot(records=list(records))
        self._session_snapshot = snapshot
        try:
            self.store.save(snapshot)
        except OSError:
            logger.warning("Could not persist pending approvals snapshot", exc_info=True)
        return PendingApprovals(
            records=snapshot.records, source="network", fetched_at=snapshot.fetched_at
        )

    def _fallback(self, failure: Failure) -> PendingApprovals:
        snapshot = self._session_snapshot or self._load_stored()
        if snapshot is None:
            logger.warning("Pending approvals unavailable: %s", failure.message)
            return PendingApprovals(source="none", failure=failure)
        logger.info(
            "Serving %d cached pending approvals from %s after: %s",
            len(snapshot.records),
            snapshot.fetched_at.isoformat(),
            failure.message,
        )
        return PendingApprovals(
            records=snapshot.records,
            source="cache",
            fetched_at=snapshot.fetched_at,
            failure=failure,
        )

    def _load_stored(self) -> PendingSnapshot | None:
        try:
            return self.store.load()
        except (OSError, ValueError):
            logger.warning("Stored pending approvals snapshot is unreadable", exc_info=True)
            return None
