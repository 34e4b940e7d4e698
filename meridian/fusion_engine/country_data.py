"""Meridian — Per-country aggregate state.

Each ingestion call is applied to the store as a batch against one field,
and every field has a fixed write policy:

  APPEND         events accumulate for the whole session
  OVERWRITE      latest value per country wins
  REPLACE_BATCH  reset for every known country, then rebuilt from the batch
                 (upstream always sends a full current snapshot)
"""

from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field

from meridian.backend.models import (
    ClusteredEvent,
    ConflictEvent,
    HapiConflictSummary,
    InternetOutage,
    MilitaryFlight,
    MilitaryVessel,
    SocialUnrestEvent,
    UcdpConflictStatus,
)


class FieldPolicy(str, Enum):
    APPEND = "append"
    OVERWRITE = "overwrite"
    REPLACE_BATCH = "replace_batch"


class CountryData(BaseModel):
    protests: list[SocialUnrestEvent] = Field(default_factory=list)
    conflicts: list[ConflictEvent] = Field(default_factory=list)
    ucdp_status: Optional[UcdpConflictStatus] = None
    hapi_summary: Optional[HapiConflictSummary] = None
    military_flights: list[MilitaryFlight] = Field(default_factory=list)
    military_vessels: list[MilitaryVessel] = Field(default_factory=list)
    news_events: list[ClusteredEvent] = Field(default_factory=list)
    outages: list[InternetOutage] = Field(default_factory=list)
    displacement_outflow: float = 0
    climate_stress: float = 0


FIELD_POLICIES: dict[str, FieldPolicy] = {
    "protests": FieldPolicy.APPEND,
    "conflicts": FieldPolicy.APPEND,
    "military_flights": FieldPolicy.APPEND,
    "military_vessels": FieldPolicy.APPEND,
    "news_events": FieldPolicy.APPEND,
    "outages": FieldPolicy.APPEND,
    "ucdp_status": FieldPolicy.OVERWRITE,
    "hapi_summary": FieldPolicy.OVERWRITE,
    "displacement_outflow": FieldPolicy.REPLACE_BATCH,
    "climate_stress": FieldPolicy.REPLACE_BATCH,
}

# Value a REPLACE_BATCH field is reset to at the start of each batch
_BATCH_RESET_VALUES: dict[str, Any] = {
    "displacement_outflow": 0,
    "climate_stress": 0,
}


class CountryDataStore:
    """Insertion-ordered map of ISO2 code -> CountryData."""

    def __init__(self):
        self._data: dict[str, CountryData] = {}

    def __contains__(self, code: str) -> bool:
        return code in self._data

    def __len__(self) -> int:
        return len(self._data)

    def codes(self) -> Iterator[str]:
        return iter(list(self._data))

    def get(self, code: str) -> Optional[CountryData]:
        return self._data.get(code)

    def get_or_create(self, code: str) -> CountryData:
        data = self._data.get(code)
        if data is None:
            data = CountryData()
            self._data[code] = data
        return data

    def _check_policy(self, field: str, expected: FieldPolicy) -> None:
        policy = FIELD_POLICIES.get(field)
        if policy is not expected:
            raise ValueError(f"Field {field!r} has policy {policy}, not {expected.value}")

    def append(self, code: str, field: str, *items: Any) -> None:
        self._check_policy(field, FieldPolicy.APPEND)
        getattr(self.get_or_create(code), field).extend(items)

    def overwrite(self, code: str, field: str, value: Any) -> None:
        self._check_policy(field, FieldPolicy.OVERWRITE)
        setattr(self.get_or_create(code), field, value)

    def begin_batch(self, field: str) -> None:
        """Reset a REPLACE_BATCH field on every known country."""
        self._check_policy(field, FieldPolicy.REPLACE_BATCH)
        reset = _BATCH_RESET_VALUES[field]
        for data in self._data.values():
            setattr(data, field, reset)

    def set_batch_value(self, code: str, field: str, value: Any) -> None:
        self._check_policy(field, FieldPolicy.REPLACE_BATCH)
        setattr(self.get_or_create(code), field, value)

    def raise_batch_value(self, code: str, field: str, value: float) -> None:
        """Keep the max of the current batch value and ``value``."""
        self._check_policy(field, FieldPolicy.REPLACE_BATCH)
        data = self.get_or_create(code)
        setattr(data, field, max(getattr(data, field), value))

    def clear(self) -> None:
        self._data.clear()
