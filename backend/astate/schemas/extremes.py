from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from astate.core.time_utils import ensure_utc


class MinMaxData(BaseModel):
    """Durable/wire form of the extrema state.

    Unobserved channels are None: the +/-infinity sentinels never leave the
    engine.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    last_updated: datetime
    min_altitude: Optional[float] = None
    max_altitude: Optional[float] = None
    min_latitude: Optional[float] = None
    max_latitude: Optional[float] = None
    min_longitude: Optional[float] = None
    max_longitude: Optional[float] = None
    min_speed: Optional[float] = None
    max_speed: Optional[float] = None

    @field_validator("last_updated")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ChannelRangeRead(BaseModel):
    min: float
    max: float


class ExtremaRead(BaseModel):
    """Extremes as shown to clients; a channel is null until it has a sample."""

    altitude: Optional[ChannelRangeRead] = None
    latitude: Optional[ChannelRangeRead] = None
    longitude: Optional[ChannelRangeRead] = None
    speed: Optional[ChannelRangeRead] = None
    last_updated: Optional[datetime] = None
