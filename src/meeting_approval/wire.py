"""Field-name mapping between meeting records and the meetings REST API."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models import COMPUTED_FIELDS, PHASE_TWO_FIELDS, MeetingRecord, MeetingStatus

DEFAULT_WIRE_VERSION = "MEETINGS-API-v1"
_LOGISTICS_STATUSES = {MeetingStatus.APPROVED.value, MeetingStatus.COMPLETED.value}

DEFAULT_FIELD_MAP: dict[str, str] = {
    "id": "id",
    "status": "status",
    "requester_id": "requester",
    "previous_cycle_id": "previous_meeting",
    "contact_name": "contact_person",
    "designation": "designation",
    "contact_number": "contact_number",
    "email": "email",
    "organization": "client_name",
    "location": "location",
    "purpose": "meeting_purpose",
    "meeting_date": "meeting_date",
    "visit_place": "visit_place",
    "discussion_summary": "discussion_summary",
    "travel_mode": "path_of_travel",
    "distance_km": "distance_km",
    "expense": "expenses",
    "remarks": "remarks",
    "start_time": "start_time",
    "end_time": "end_time",
    "request_id": "request_id",
    "approval_history": "approval_log",
}


def _default_mapping_path() -> Path | None:
    """Return the repository mapping file if present."""

    for parent in Path(__file__).resolve().parents:
        candidate = parent / "config" / "wire_mappings.yaml"
        if candidate.exists():
            return candidate
    return None


@dataclass(frozen=True)
class WireMapping:
    """Structured mapping for a single API version."""

    version: str
    fields: dict[str, str]
    metadata: dict[str, object] = field(default_factory=dict)

    def missing_fields(self, required_fields: Iterable[str]) -> list[str]:
        """Return any required model fields that lack a wire name."""

        return [name for name in required_fields if name not in self.fields]

    def to_wire(
        self, record: MeetingRecord, *, include: Iterable[str] | None = None
    ) -> dict[str, Any]:
        """Serialize a record using the API's field names."""

        names = set(include) if include is not None else set(self.fields)
        data = record.model_dump(mode="json", include=names)
        return {self.fields.get(name, name): value for name, value in data.items()}

    def from_wire(self, payload: Mapping[str, Any]) -> MeetingRecord:
        """Build a record from an API payload, ignoring unknown keys.

        Logistics values the server echoes for a request that has not been
        approved (form defaults such as a zero distance) are dropped.
        """

        reverse = {wire: name for name, wire in self.fields.items()}
        data = {reverse[key]: value for key, value in payload.items() if key in reverse}
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        status = str(data.get("status") or MeetingStatus.DRAFT.value).lower()
        data["status"] = status
        if status not in _LOGISTICS_STATUSES:
            for name in PHASE_TWO_FIELDS | COMPUTED_FIELDS:
                data.pop(name, None)
        return MeetingRecord.model_validate(data)


DEFAULT_WIRE_MAPPING = WireMapping(
    version=DEFAULT_WIRE_VERSION, fields=dict(DEFAULT_FIELD_MAP)
)


def load_wire_mapping(
    version: str = DEFAULT_WIRE_VERSION,
    path: str | Path | None = None,
) -> WireMapping:
    """Load the field mapping for a specific API version.

    Without an explicit path, the repository's ``config/wire_mappings.yaml``
    is used when present and the built-in mapping otherwise.
    """

    mapping_path = Path(path) if path is not None else _default_mapping_path()
    if mapping_path is None:
        if version != DEFAULT_WIRE_VERSION:
            raise FileNotFoundError("Unable to locate wire_mappings.yaml")
        return DEFAULT_WIRE_MAPPING
    if not mapping_path.exists():
        raise FileNotFoundError(f"Unable to locate {mapping_path}")

    data = yaml.safe_load(mapping_path.read_text(encoding="utf-8")) or {}
    versions: dict[str, dict[str, Any]] = data.get("versions") or {}
    if version not in versions:
        available = ", ".join(sorted(versions)) or "none"
        raise ValueError(
            f"Wire mapping version '{version}' not found; available versions: {available}"
        )

    payload = versions[version]
    fields = dict(payload.get("fields") or {})
    unknown = sorted(set(fields) - set(MeetingRecord.model_fields))
    if unknown:
        raise ValueError(f"Wire mapping references unknown fields: {', '.join(unknown)}")

    return WireMapping(
        version=version,
        fields=fields,
        metadata=dict(payload.get("metadata") or {}),
    )
