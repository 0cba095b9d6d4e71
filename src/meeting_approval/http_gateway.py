"""HTTP implementation of the meeting gateway for the meetings REST API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from .errors import (
    AuthorizationError,
    ConflictError,
    GatewayError,
    NotFoundError,
    TransportError,
)
from .gateway import DecisionReceipt, WriteReceipt
from .models import (
    COMPUTED_FIELDS,
    PHASE_ONE_FIELDS,
    PHASE_TWO_FIELDS,
    Decision,
    MeetingRecord,
    MeetingStatus,
    RequestId,
)
from .security import RoleName
from .settings import WorkflowSettings
from .wire import WireMapping, load_wire_mapping

logger = logging.getLogger(__name__)

_CREATE_FIELDS = PHASE_ONE_FIELDS | {"requester_id", "previous_cycle_id"}
_UPDATE_FIELDS = PHASE_TWO_FIELDS | COMPUTED_FIELDS


def _error_detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        return str(detail) if detail else None
    return None


def _status(value: object) -> MeetingStatus:
    try:
        return MeetingStatus(str(value).lower())
    except ValueError as exc:
        raise GatewayError(f"Server returned an unknown status: {value!r}") from exc


def raise_for_response(response: httpx.Response) -> None:
    """Translate an error response into the gateway error hierarchy."""

    if response.is_success:
        return
    detail = _error_detail(response)
    status = response.status_code
    if status in (401, 403):
        raise AuthorizationError(detail, status_code=status)
    if status in (409, 412):
        raise ConflictError(detail, status_code=status)
    if status == 404:
        raise NotFoundError(detail, status_code=status)
    raise TransportError(detail, status_code=status)


class HttpMeetingGateway:
    """Talk to the meetings API over HTTP with per-call credentials."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        auth_scheme: str = "Token",
        mapping: WireMapping | None = None,
    ) -> None:
        self.client = client
        self.auth_scheme = auth_scheme
        self.mapping = mapping or load_wire_mapping()

    @classmethod
    def from_settings(
        cls,
        settings: WorkflowSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpMeetingGateway:
        client = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        return cls(client, auth_scheme=settings.auth_scheme)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _headers(self, credential: str) -> dict[str, str]:
        return {"Authorization": f"{self.auth_scheme} {credential}"}

    async def _request(
        self, method: str, url: str, *, credential: str, json: Any = None
    ) -> Any:
        try:
            response = await self.client.request(
                method, url, json=json, headers=self._headers(credential)
            )
        except httpx.TimeoutException as exc:
            raise TransportError("Request timed out") from exc
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise TransportError() from exc
        raise_for_response(response)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError("Server returned an invalid response") from exc

    def _write_receipt(self, body: Any, request_id: RequestId) -> WriteReceipt:
        if not isinstance(body, dict):
            raise GatewayError("Expected a meeting acknowledgement")
        record_id = body.get("id")
        if record_id is None:
            raise GatewayError("Server response did not include a meeting id")
        return WriteReceipt(
            id=str(record_id),
            status=_status(body.get("status", MeetingStatus.PENDING.value)),
            request_id=body.get("request_id", request_id.value),
        )

    async def create(
        self, record: MeetingRecord, *, request_id: RequestId, credential: str
    ) -> WriteReceipt:
        payload = self.mapping.to_wire(record, include=_CREATE_FIELDS)
        payload["request_id"] = request_id.value
        body = await self._request(
            "POST", "meetings/create/", credential=credential, json=payload
        )
        return self._write_receipt(body, request_id)

    async def update(
        self,
        record_id: str,
        record: MeetingRecord,
        *,
        request_id: RequestId,
        credential: str,
    ) -> WriteReceipt:
        payload = self.mapping.to_wire(record, include=_UPDATE_FIELDS)
        payload["request_id"] = request_id.value
        body = await self._request(
            "PUT", f"meetings/{record_id}/", credential=credential, json=payload
        )
        if isinstance(body, dict):
            body.setdefault("id", record_id)
        return self._write_receipt(body, request_id)

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
        payload: dict[str, Any] = {
            "action": decision.value,
            "remarks": remarks,
            "actor": actor,
            "role": str(role),
        }
        if expected_status is not None:
            payload["expected_status"] = expected_status.value
        if decided_at is not None:
            payload["decided_at"] = decided_at.isoformat()
        body = await self._request(
            "POST", f"meetings/{record_id}/approve/", credential=credential, json=payload
        )
        if not isinstance(body, dict):
            raise GatewayError("Expected a decision acknowledgement")
        return DecisionReceipt(
            status=_status(body.get("status")), decided_at=body.get("decided_at")
        )

    async def fetch(self, record_id: str, *, credential: str) -> MeetingRecord:
        body = await self._request("GET", f"meetings/{record_id}/", credential=credential)
        return self._record(body)

    async def list_pending(self, *, credential: str) -> list[MeetingRecord]:
        body = await self._request("GET", "meetings/pending/", credential=credential)
        if not isinstance(body, list):
            raise GatewayError("Expected a list of pending meetings")
        return [self._record(item) for item in body]

    def _record(self, body: Any) -> MeetingRecord:
        if not isinstance(body, dict):
            raise GatewayError("Expected a meeting object")
        try:
            return self.mapping.from_wire(body)
        except ValueError as exc:
            raise GatewayError("Server returned an invalid meeting") from exc
