"""Which fixes get persisted, and when.

`should_record` is the distance-based de-duplication test. `RecordingPolicy`
adds the cadence bookkeeping: when the last evaluation happened and which fix
was last actually recorded.
"""

import math
from datetime import datetime
from typing import Optional

from astate.core.constants import EARTH_RADIUS_M, MIN_RECORD_DISTANCE_M, RECORDING_INTERVAL_S
from astate.schemas.location import LocationFix


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return great-circle distance in meters between two WGS84 points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def should_record(
    fix: LocationFix,
    last_recorded_fix: Optional[LocationFix],
    min_distance_m: float = MIN_RECORD_DISTANCE_M,
) -> bool:
    if last_recorded_fix is None:
        return True
    distance = haversine_m(
        last_recorded_fix.latitude, last_recorded_fix.longitude, fix.latitude, fix.longitude
    )
    return distance >= min_distance_m


class RecordingPolicy:
    def __init__(
        self,
        interval_s: float = RECORDING_INTERVAL_S,
        min_distance_m: float = MIN_RECORD_DISTANCE_M,
    ):
        self.interval_s = interval_s
        self.min_distance_m = min_distance_m
        self.last_recorded_fix: Optional[LocationFix] = None
        self.last_recording_time: Optional[datetime] = None

    def is_due(self, now: datetime) -> bool:
        """True when a fresh fix should be evaluated without waiting for the timer.

        Covers the first fix after start and gaps where timers were suspended.
        """
        if self.last_recording_time is None:
            return True
        return (now - self.last_recording_time).total_seconds() >= self.interval_s

    def evaluate(self, fix: LocationFix, now: datetime) -> bool:
        # Stamped on every evaluation, accepted or not, so drift does not compound.
        self.last_recording_time = now
        return should_record(fix, self.last_recorded_fix, self.min_distance_m)

    def mark_recorded(self, fix: LocationFix) -> None:
        self.last_recorded_fix = fix

    def reset(self) -> None:
        self.last_recorded_fix = None
        self.last_recording_time = None
