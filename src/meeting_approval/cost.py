"""Travel cost computation for approved meetings."""

from __future__ import annotations

import os
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from .models import TravelMode

_CENTS = Decimal("0.01")

DEFAULT_RATES_PER_KM: dict[str, Decimal] = {
    TravelMode.CAR.value: Decimal("10"),
    TravelMode.BIKE.value: Decimal("5"),
    TravelMode.CAB.value: Decimal("15"),
    TravelMode.PUBLIC_TRANSPORT.value: Decimal("3"),
    TravelMode.WALK.value: Decimal("0"),
}


def _default_rates_path() -> Path | None:
    """Return the repository rate table if present."""

    for parent in Path(__file__).resolve().parents:
        candidate = parent / "config" / "travel_rates.yaml"
        if candidate.exists():
            return candidate
    return None


def _mode_key(travel_mode: TravelMode | str | None) -> str | None:
    if travel_mode is None:
        return None
    if isinstance(travel_mode, TravelMode):
        return travel_mode.value
    return str(travel_mode)


class RateTable(BaseModel):
    """Per-kilometre reimbursement rate for each travel mode."""

    currency: str = Field(default="INR", description="Currency of the rates")
    rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_RATES_PER_KM),
        description="Rate per kilometre keyed by travel mode display name",
    )

    @field_validator("rates", mode="before")
    @classmethod
    def _coerce_rates(cls, value: object) -> dict[str, Decimal]:
        if value is None:
            return dict(DEFAULT_RATES_PER_KM)
        if not isinstance(value, dict):
            raise TypeError("rates must be a mapping of travel mode to rate")
        coerced: dict[str, Decimal] = {}
        for mode, rate in value.items():
            amount = Decimal(str(rate))
            if amount < 0:
                raise ValueError(f"Rate for '{mode}' must not be negative")
            coerced[_mode_key(mode) or str(mode)] = amount
        return coerced

    @classmethod
    def from_yaml(cls, content: str) -> RateTable:
        """Load a rate table from YAML content."""

        data = yaml.safe_load(content) or {}
        if "rates" not in data:
            raise ValueError("Rate configuration must include a 'rates' mapping")
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> RateTable:
        """Load a rate table from a YAML file, defaulting to config/travel_rates.yaml."""

        target_path = Path(path) if path is not None else _default_rates_path()
        if target_path is None:
            raise FileNotFoundError("No travel_rates.yaml file found")
        return cls.from_yaml(target_path.read_text(encoding="utf-8"))

    @classmethod
    def from_environment(cls, env_var: str = "TRAVEL_RATES") -> RateTable:
        """Load a rate table from an environment variable containing YAML."""

        content = os.getenv(env_var)
        if not content:
            raise ValueError(f"Environment variable '{env_var}' is not set or empty")
        return cls.from_yaml(content)

    def rate_for(self, travel_mode: TravelMode | str | None) -> Decimal:
        """Return the rate for a mode; unknown modes cost nothing."""

        key = _mode_key(travel_mode)
        if key is None:
            return Decimal("0")
        return self.rates.get(key, Decimal("0"))


DEFAULT_RATE_TABLE = RateTable()


def calculate_expense(
    distance_km: Decimal | int | float | str | None,
    travel_mode: TravelMode | str | None,
    rates: RateTable | None = None,
) -> Decimal:
    """Return distance times the mode's rate, rounded to two decimal places."""

    table = rates or DEFAULT_RATE_TABLE
    distance = Decimal(str(distance_km)) if distance_km is not None else Decimal("0")
    if distance < 0:
        raise ValueError(f"Distance must not be negative; got {distance}")
    amount = distance * table.rate_for(travel_mode)
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
