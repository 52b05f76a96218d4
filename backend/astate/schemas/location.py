import math
from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from astate.core.time_utils import ensure_utc


class LocationFix(BaseModel):
    """One position/motion sample as reported by the location source.

    Accuracies use -1.0 for "unknown", the way device APIs report them.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    altitude: float = 0.0
    speed: float = 0.0  # m/s, never negative
    horizontal_accuracy: float = -1.0
    vertical_accuracy: float = -1.0
    speed_accuracy: float = 0.0

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    # Devices report an invalid speed as a negative number
    @field_validator("speed", "speed_accuracy", mode="before")
    @classmethod
    def _invalid_to_zero(cls, v):
        if v is None:
            return 0.0
        v = float(v)
        if math.isnan(v) or v < 0:
            return 0.0
        return v


class PersistedRecord(BaseModel):
    """A fix that passed the recording policy, as held by the record store."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime
    latitude: float
    longitude: float
    altitude: float

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @classmethod
    def from_fix(cls, fix: LocationFix) -> "PersistedRecord":
        return cls(
            timestamp=fix.timestamp,
            latitude=fix.latitude,
            longitude=fix.longitude,
            altitude=fix.altitude,
        )


class LocationPage(BaseModel):
    """One page of a record query; `cursor` is None once the query is exhausted."""

    records: list[PersistedRecord]
    cursor: Optional[str] = None
