"""Running minimum/maximum per channel, persisted as one fixed-id record."""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from astate.core.constants import CHANNELS, MINMAX_RECORD_ID
from astate.core.time_utils import utc_now
from astate.schemas.extremes import ChannelRangeRead, ExtremaRead, MinMaxData
from astate.schemas.location import LocationFix
from astate.store.base import RecordNotFound, RecordStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChannelRange:
    """(min, max) for one channel; (+inf, -inf) until the first sample."""

    min: float = math.inf
    max: float = -math.inf

    @property
    def observed(self) -> bool:
        return self.min <= self.max


@dataclass(frozen=True, slots=True)
class ExtremeEvent:
    """A newly broken minimum or maximum."""

    channel: str
    value: float
    is_min: bool

    @property
    def description(self) -> str:
        return f"{'Min' if self.is_min else 'Max'} {self.channel.capitalize()}: {self.value:.6f}"


def channel_values(fix: LocationFix) -> dict[str, float]:
    return {
        "altitude": fix.altitude,
        "latitude": fix.latitude,
        "longitude": fix.longitude,
        "speed": max(fix.speed, 0.0),
    }


class ExtremaState:
    def __init__(self):
        self.channels: dict[str, ChannelRange] = {name: ChannelRange() for name in CHANNELS}
        self.last_updated: Optional[datetime] = None

    def apply(self, fix: LocationFix, now: datetime) -> list[ExtremeEvent]:
        """Fold one fix into the ranges; min and max are checked independently."""
        events: list[ExtremeEvent] = []
        for name, value in channel_values(fix).items():
            rng = self.channels[name]
            if value < rng.min:
                rng.min = value
                events.append(ExtremeEvent(name, value, is_min=True))
            if value > rng.max:
                rng.max = value
                events.append(ExtremeEvent(name, value, is_min=False))
        if events:
            self.last_updated = now
        return events

    def to_data(self, record_id: str) -> MinMaxData:
        fields = {}
        for name, rng in self.channels.items():
            fields[f"min_{name}"] = rng.min if rng.observed else None
            fields[f"max_{name}"] = rng.max if rng.observed else None
        return MinMaxData(id=record_id, last_updated=self.last_updated or utc_now(), **fields)

    @classmethod
    def from_data(cls, data: MinMaxData) -> "ExtremaState":
        state = cls()
        for name in CHANNELS:
            lo = getattr(data, f"min_{name}")
            hi = getattr(data, f"max_{name}")
            if lo is not None and hi is not None:
                state.channels[name] = ChannelRange(lo, hi)
        state.last_updated = data.last_updated
        return state

    def to_read(self) -> ExtremaRead:
        ranges = {
            name: ChannelRangeRead(min=rng.min, max=rng.max)
            for name, rng in self.channels.items()
            if rng.observed
        }
        return ExtremaRead(last_updated=self.last_updated, **ranges)


class ExtremumTracker:
    """Owns the ExtremaState of one installation.

    Callers serialize `update`; the upsert itself is additionally guarded so
    only one save for the fixed id is ever in flight.
    """

    def __init__(self, store: RecordStore, record_id: str = MINMAX_RECORD_ID, clock=utc_now):
        self.store = store
        self.record_id = record_id
        self.clock = clock
        self.state = ExtremaState()
        self.loaded = False
        self._load_lock = asyncio.Lock()
        self._save_lock = asyncio.Lock()

    async def load(self) -> None:
        """Rehydrate from the store once. A transient failure is raised and retried next call."""
        async with self._load_lock:
            if self.loaded:
                return
            try:
                data = await self.store.fetch_minmax(self.record_id)
            except RecordNotFound:
                logger.info("No stored min/max values yet")
            else:
                self.state = ExtremaState.from_data(data)
                logger.info("Loaded min/max values from store")
            self.loaded = True

    async def update(self, fix: LocationFix) -> list[ExtremeEvent]:
        """Apply `fix`; persist the whole state once if any channel changed.

        Returns the broken extremes in channel order (min before max), empty
        when nothing changed.
        """
        await self.load()
        events = self.state.apply(fix, self.clock())
        if not events:
            return events
        try:
            await self.save()
        except StoreError as e:
            # In-memory state stands; the next change writes all channels again.
            logger.warning("Error saving min/max values: %s", e)
        return events

    async def save(self) -> MinMaxData:
        async with self._save_lock:
            data = self.state.to_data(self.record_id)
            try:
                existing = await self.store.fetch_minmax(self.record_id)
            except RecordNotFound:
                record = data
            else:
                record = existing.model_copy(update=data.model_dump(exclude={"id"}))
            return await self.store.save_minmax(record)
