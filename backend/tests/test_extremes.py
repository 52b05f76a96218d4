import asyncio
import math

import pytest

from astate.engine.extremes import ExtremaState, ExtremeEvent, ExtremumTracker
from astate.schemas.extremes import MinMaxData
from astate.store.base import StoreError

from fakes import T0, MemoryStore, make_fix


def run(coro):
    return asyncio.run(coro)


def test_first_fix_breaks_every_min_and_max():
    store = MemoryStore()
    tracker = ExtremumTracker(store)

    events = run(tracker.update(make_fix(lat=47.0, lon=8.0, alt=400.0, speed=2.5)))

    assert [(e.channel, e.is_min) for e in events] == [
        ("altitude", True), ("altitude", False),
        ("latitude", True), ("latitude", False),
        ("longitude", True), ("longitude", False),
        ("speed", True), ("speed", False),
    ]
    assert len(store.minmax_saves) == 1
    saved = store.minmax_saves[0]
    assert saved.id == "minmax-singleton"
    assert saved.min_altitude == saved.max_altitude == 400.0
    assert saved.min_speed == saved.max_speed == 2.5


def test_identical_fix_twice_writes_once():
    store = MemoryStore()
    tracker = ExtremumTracker(store)
    fix = make_fix()

    assert run(tracker.update(fix))
    assert run(tracker.update(fix)) == []
    assert len(store.minmax_saves) == 1


def test_one_write_per_changing_update_and_min_le_max():
    store = MemoryStore()
    tracker = ExtremumTracker(store)
    fixes = [
        make_fix(alt=400.0),
        make_fix(alt=410.0),   # new max altitude
        make_fix(alt=405.0),   # inside range
        make_fix(alt=390.0, lat=46.9),  # new min altitude and min latitude
        make_fix(alt=395.0),
    ]
    changed = 0
    for fix in fixes:
        if run(tracker.update(fix)):
            changed += 1
    assert changed == 3
    assert len(store.minmax_saves) == 3
    for rng in tracker.state.channels.values():
        assert rng.observed
        assert rng.min <= rng.max
    last = store.minmax_saves[-1]
    assert (last.min_altitude, last.max_altitude) == (390.0, 410.0)
    assert (last.min_latitude, last.max_latitude) == (46.9, 47.0)


def test_whole_state_written_when_one_channel_changes():
    store = MemoryStore()
    tracker = ExtremumTracker(store)
    run(tracker.update(make_fix(alt=400.0, speed=1.0)))

    events = run(tracker.update(make_fix(alt=400.0, speed=9.0)))

    assert events == [ExtremeEvent("speed", 9.0, is_min=False)]
    saved = store.minmax_saves[-1]
    assert saved.min_altitude == 400.0
    assert saved.min_latitude == 47.0
    assert saved.max_longitude == 8.0
    assert (saved.min_speed, saved.max_speed) == (1.0, 9.0)


def test_negative_speed_counts_as_zero():
    tracker = ExtremumTracker(MemoryStore())
    run(tracker.update(make_fix(speed=-1.0)))
    assert tracker.state.channels["speed"].min == 0.0
    assert tracker.state.channels["speed"].max == 0.0


def test_min_and_max_checked_independently():
    state = ExtremaState()
    state.channels["altitude"].min = 100.0
    state.channels["altitude"].max = 50.0  # inconsistent on purpose
    events = state.apply(make_fix(alt=75.0), T0)
    altitude = [e for e in events if e.channel == "altitude"]
    assert altitude == [ExtremeEvent("altitude", 75.0, True), ExtremeEvent("altitude", 75.0, False)]


def test_rehydrates_once_from_store():
    store = MemoryStore()
    store.minmax["minmax-singleton"] = MinMaxData(
        id="minmax-singleton",
        last_updated=T0,
        min_altitude=100.0, max_altitude=900.0,
        min_latitude=40.0, max_latitude=50.0,
        min_longitude=0.0, max_longitude=10.0,
        min_speed=0.0, max_speed=30.0,
    )
    tracker = ExtremumTracker(store)

    assert run(tracker.update(make_fix(lat=47.0, lon=8.0, alt=400.0, speed=1.0))) == []
    assert run(tracker.update(make_fix(lat=47.0, lon=8.0, alt=950.0, speed=1.0))) == [
        ExtremeEvent("altitude", 950.0, is_min=False)
    ]
    # one fetch to rehydrate, one inside the upsert
    assert store.minmax_fetches == 2
    assert store.minmax_saves[-1].min_altitude == 100.0


def test_upsert_creates_then_overwrites_fixed_id():
    store = MemoryStore()
    tracker = ExtremumTracker(store, record_id="device-1")
    run(tracker.update(make_fix(alt=10.0)))
    run(tracker.update(make_fix(alt=20.0)))

    assert list(store.minmax) == ["device-1"]
    assert store.minmax["device-1"].max_altitude == 20.0
    assert store.minmax["device-1"].min_altitude == 10.0


def test_failed_save_keeps_state_and_reports_events():
    store = MemoryStore()
    store.fail_minmax_save = True
    tracker = ExtremumTracker(store)

    events = run(tracker.update(make_fix(alt=123.0)))

    assert len(events) == 8
    assert store.minmax_saves == []
    assert tracker.state.channels["altitude"].max == 123.0


def test_transient_rehydrate_failure_is_raised_and_retried():
    store = MemoryStore()
    store.fail_minmax_fetch = True
    tracker = ExtremumTracker(store)

    with pytest.raises(StoreError):
        run(tracker.update(make_fix()))
    assert not tracker.loaded
    assert not tracker.state.channels["altitude"].observed

    store.fail_minmax_fetch = False
    assert run(tracker.update(make_fix()))
    assert tracker.loaded


def test_sentinels_never_surface_before_first_sample():
    state = ExtremaState()
    assert math.isinf(state.channels["altitude"].min)

    read = state.to_read()
    assert read.altitude is None and read.speed is None

    data = state.to_data("minmax-singleton")
    assert data.min_altitude is None
    assert data.max_speed is None


def test_event_description_format():
    assert ExtremeEvent("altitude", 12.5, True).description == "Min Altitude: 12.500000"
    assert ExtremeEvent("speed", 3.0, False).description == "Max Speed: 3.000000"
