"""The recording session: one queue, one worker.

Fix deliveries, track replays, timer ticks, start/stop and authorization
changes are all messages on a single inbox consumed by one worker task, so
the recording policy, the extrema state and the notification window only
ever change on that worker.

Record path for an accepted fix:
    persist PersistedRecord -> mark recorded -> change signal
    -> ExtremumTracker.update -> NotificationDebouncer.notify per event
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from astate.core.time_utils import utc_now
from astate.engine.extremes import ExtremumTracker
from astate.engine.notifications import NotificationDebouncer
from astate.engine.recording import RecordingPolicy
from astate.schemas.location import LocationFix, PersistedRecord
from astate.sources.authorization import AuthorizationStatus
from astate.store.base import RecordStore, StoreError

logger = logging.getLogger(__name__)


def _fail(done: Optional[asyncio.Future], error: Exception) -> None:
    if done is not None and not done.done():
        done.set_exception(error)


class RecordingNotAuthorized(Exception):
    def __init__(self, status: AuthorizationStatus):
        super().__init__(f"location authorization is {status.value}")
        self.status = status


@dataclass(frozen=True)
class FixDelivered:
    fix: LocationFix


@dataclass(frozen=True)
class TrackReplayed:
    # Activity imports: timestamps are in the past, so they drive their own cadence.
    fixes: tuple[LocationFix, ...]


@dataclass(frozen=True)
class TimerFired:
    pass


@dataclass(frozen=True)
class StartRecording:
    pass


@dataclass(frozen=True)
class StopRecording:
    pass


@dataclass(frozen=True)
class AuthorizationChanged:
    status: AuthorizationStatus


class TrackingSession:
    def __init__(
        self,
        store: RecordStore,
        policy: RecordingPolicy,
        tracker: ExtremumTracker,
        debouncer: NotificationDebouncer,
        authorization: AuthorizationStatus = AuthorizationStatus.not_determined,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.policy = policy
        self.tracker = tracker
        self.debouncer = debouncer
        self.authorization = authorization
        self.clock = clock

        self.is_recording = False
        self.latest_fix: Optional[LocationFix] = None
        self.last_saved_at: Optional[datetime] = None

        self._record_listeners: list[Callable[[PersistedRecord], None]] = []
        self._inbox: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.Task] = None

    # -- lifecycle -----------------------------------------------------

    async def start(self) -> None:
        """Start the worker and rehydrate stored extremes."""
        self._inbox = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())
        try:
            await self.tracker.load()
        except StoreError as e:
            logger.warning("Error loading min/max values: %s", e)

    async def close(self) -> None:
        self._cancel_timer()
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        if self._inbox is not None:
            while not self._inbox.empty():
                _, done = self._inbox.get_nowait()
                _fail(done, RuntimeError("session closed"))
            self._inbox = None
        # Deliver whatever is still waiting for the window to close.
        self.debouncer.flush()

    def add_record_listener(self, listener: Callable[[PersistedRecord], None]) -> None:
        """`listener(record)` runs each time a record is persisted."""
        self._record_listeners.append(listener)

    # -- public controls (all serialized through the inbox) ------------

    async def start_recording(self) -> None:
        await self._submit(StartRecording())

    async def stop_recording(self) -> None:
        await self._submit(StopRecording())

    async def deliver_fix(self, fix: LocationFix) -> bool:
        """Hand a fix to the session; True when it was persisted."""
        return await self._submit(FixDelivered(fix))

    async def replay(self, fixes: list[LocationFix]) -> int:
        """Feed a recorded track through the policy in one go; returns how many fixes were persisted."""
        return await self._submit(TrackReplayed(tuple(fixes)))

    async def set_authorization(self, status: AuthorizationStatus) -> None:
        await self._submit(AuthorizationChanged(status))

    async def _submit(self, message):
        if self._inbox is None:
            raise RuntimeError("session not started or already closed")
        done = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait((message, done))
        return await done

    # -- worker ------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            message, done = await self._inbox.get()
            try:
                result = await self._handle(message)
            except asyncio.CancelledError:
                _fail(done, RuntimeError("session closed"))
                raise
            except Exception as e:
                if done is None:
                    logger.exception("Error handling %s", type(message).__name__)
                elif not done.cancelled():
                    done.set_exception(e)
            else:
                if done is not None and not done.cancelled():
                    done.set_result(result)

    async def _handle(self, message):
        if isinstance(message, FixDelivered):
            return await self._on_fix(message.fix)
        if isinstance(message, TrackReplayed):
            return await self._on_replay(message.fixes)
        if isinstance(message, TimerFired):
            return await self._on_timer()
        if isinstance(message, StartRecording):
            return await self._on_start()
        if isinstance(message, StopRecording):
            return self._on_stop()
        if isinstance(message, AuthorizationChanged):
            return self._on_authorization(message.status)
        raise TypeError(f"unknown message {message!r}")

    async def _on_fix(self, fix: LocationFix) -> bool:
        self.latest_fix = fix
        if not self.is_recording:
            return False
        now = self.clock()
        # Catch-up: timers may have been suspended (backgrounded device).
        if not self.policy.is_due(now):
            return False
        return await self._record(fix, now)

    async def _on_replay(self, fixes: tuple[LocationFix, ...]) -> int:
        if not self.is_recording:
            if fixes:
                self.latest_fix = fixes[-1]
            return 0
        # The live cadence resumes from where it was once the track is done.
        live_baseline = self.policy.last_recording_time
        self.policy.last_recording_time = None
        recorded = 0
        try:
            for fix in fixes:
                self.latest_fix = fix
                if self.policy.is_due(fix.timestamp) and await self._record(fix, fix.timestamp):
                    recorded += 1
        finally:
            self.policy.last_recording_time = live_baseline
        logger.info("Replayed %s fixes, %s recorded", len(fixes), recorded)
        return recorded

    async def _on_timer(self) -> bool:
        if not self.is_recording or self.latest_fix is None:
            return False
        return await self._record(self.latest_fix, self.clock())

    async def _on_start(self) -> None:
        if self.is_recording:
            return
        if not self.authorization.allows_recording:
            raise RecordingNotAuthorized(self.authorization)
        self.is_recording = True
        self._timer = asyncio.create_task(self._tick())
        logger.info("Recording started")
        if self.latest_fix is not None:
            await self._record(self.latest_fix, self.clock())

    def _on_stop(self) -> None:
        if not self.is_recording:
            return
        self.is_recording = False
        self._cancel_timer()
        self.policy.reset()
        logger.info("Recording stopped")

    def _on_authorization(self, status: AuthorizationStatus) -> None:
        self.authorization = status
        logger.info("Location authorization changed to %s", status.value)
        if self.is_recording and not status.allows_recording:
            logger.warning("Recording stopped: location authorization is %s", status.value)
            self._on_stop()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.policy.interval_s)
            self._inbox.put_nowait((TimerFired(), None))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _record(self, fix: LocationFix, now: datetime) -> bool:
        if not self.policy.evaluate(fix, now):
            logger.debug("Fix within %.1fm of last recorded fix, skipped", self.policy.min_distance_m)
            return False

        record = PersistedRecord.from_fix(fix)
        try:
            await self.store.save_location(record)
        except StoreError as e:
            logger.warning("Error saving location record: %s", e)
            return False
        self.policy.mark_recorded(fix)
        self.last_saved_at = self.clock()
        logger.info("Saved location %.6f, %.6f", record.latitude, record.longitude)
        self._emit_saved(record)

        try:
            events = await self.tracker.update(fix)
        except StoreError as e:
            logger.warning("Error loading min/max values: %s", e)
            return True
        for event in events:
            self.debouncer.notify(event)
        return True

    def _emit_saved(self, record: PersistedRecord) -> None:
        for listener in self._record_listeners:
            try:
                listener(record)
            except Exception:
                logger.exception("Record listener %r failed", listener)
