import asyncio
import logging

from astate.engine.extremes import ExtremeEvent
from astate.engine.notifications import NotificationDebouncer, build_notification
from astate.engine.notifiers import LogNotifier, WebhookNotifier, build_notifier

from fakes import FakeClock, FakeScheduler, RecordingNotifier


def make_debouncer():
    clock = FakeClock(0.0)
    scheduler = FakeScheduler(clock)
    notifier = RecordingNotifier()
    debouncer = NotificationDebouncer(notifier, window_s=3600.0, clock=clock, scheduler=scheduler)
    return debouncer, notifier, scheduler


def max_alt(value):
    return ExtremeEvent("altitude", value, is_min=False)


def test_first_event_sent_immediately():
    debouncer, notifier, scheduler = make_debouncer()
    debouncer.notify(max_alt(100.0))
    assert notifier.sent == [("New Extreme Found", "Max Altitude: 100.000000")]
    assert debouncer.pending_events == []
    assert debouncer.last_notification_time == 0.0
    assert scheduler.pending() == []


def test_window_timeline_each_event_in_exactly_one_notification():
    debouncer, notifier, scheduler = make_debouncer()

    debouncer.notify(max_alt(1.0))          # t=0: window opens, sent now
    scheduler.advance_to(10.0)
    debouncer.notify(max_alt(2.0))          # t=10: queued, flush scheduled for t=3600
    assert [h.when for h in scheduler.pending()] == [3600.0]
    assert len(notifier.sent) == 1

    scheduler.advance_to(3700.0)            # scheduled flush fired at t=3600
    assert notifier.sent[1] == ("New Extreme Found", "Max Altitude: 2.000000")
    assert debouncer.last_notification_time == 3600.0

    debouncer.notify(max_alt(3.0))          # t=3700: inside the window the t=3600 flush opened
    assert len(notifier.sent) == 2
    assert [h.when for h in scheduler.pending()] == [7200.0]

    scheduler.advance_to(7200.0)
    assert notifier.sent[2] == ("New Extreme Found", "Max Altitude: 3.000000")
    assert len(notifier.sent) == 3
    assert debouncer.pending_events == []


def test_events_in_window_ride_along_with_one_scheduled_flush():
    debouncer, notifier, scheduler = make_debouncer()
    debouncer.notify(max_alt(1.0))

    scheduler.advance_to(100.0)
    debouncer.notify(max_alt(2.0))
    scheduler.advance_to(200.0)
    debouncer.notify(ExtremeEvent("speed", 0.0, is_min=True))
    scheduler.advance_to(300.0)
    debouncer.notify(max_alt(4.0))

    # scheduling is idempotent: one timer for the whole window
    assert len(scheduler.handles) == 1
    scheduler.advance_to(3600.0)

    assert notifier.sent[1] == (
        "New Extremes Found",
        "Max Altitude: 2.000000, Min Speed: 0.000000, Max Altitude: 4.000000",
    )
    assert len(notifier.sent) == 2


def test_event_after_window_closes_is_sent_immediately():
    debouncer, notifier, scheduler = make_debouncer()
    debouncer.notify(max_alt(1.0))
    scheduler.advance_to(3600.0)
    debouncer.notify(max_alt(2.0))
    assert len(notifier.sent) == 2
    assert scheduler.pending() == []


def test_immediate_flush_cancels_stale_timer():
    debouncer, notifier, scheduler = make_debouncer()
    debouncer.notify(max_alt(1.0))
    scheduler.advance_to(10.0)
    debouncer.notify(max_alt(2.0))
    handle = debouncer.scheduled_flush

    debouncer.flush()

    assert handle.cancelled
    assert debouncer.scheduled_flush is None
    assert notifier.sent[-1] == ("New Extreme Found", "Max Altitude: 2.000000")


def test_flush_with_nothing_pending_is_a_noop():
    debouncer, notifier, _ = make_debouncer()
    assert debouncer.flush() is None
    assert notifier.sent == []
    assert debouncer.last_notification_time is None


def test_build_notification_single_and_many():
    one = build_notification([ExtremeEvent("latitude", 47.5, True)])
    assert (one.title, one.body) == ("New Extreme Found", "Min Latitude: 47.500000")

    many = build_notification([ExtremeEvent("latitude", 47.5, True), ExtremeEvent("longitude", 8.25, False)])
    assert many.title == "New Extremes Found"
    assert many.body == "Min Latitude: 47.500000, Max Longitude: 8.250000"


def test_build_notifier_picks_sink_from_config():
    assert isinstance(build_notifier(None), LogNotifier)
    assert isinstance(build_notifier(""), LogNotifier)
    assert isinstance(build_notifier("http://hooks.local/alert"), WebhookNotifier)


def test_webhook_failure_is_logged_not_raised(caplog):
    # nothing listens on the discard port
    notifier = WebhookNotifier("http://127.0.0.1:9/alert", timeout=2.0)

    async def scenario():
        notifier.send("New Extreme Found", "Max Speed: 9.000000")
        await notifier.drain()

    with caplog.at_level(logging.WARNING, logger="astate.engine.notifiers"):
        asyncio.run(scenario())
    assert "Notification webhook failed" in caplog.text
