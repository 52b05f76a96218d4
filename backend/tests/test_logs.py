import logging
import re

from astate.core.logs import LogBuffer


def make_logger(buffer, name="astate.engine.recording"):
    log = logging.getLogger(f"{name}.test{id(buffer)}")
    log.propagate = False
    log.setLevel(logging.DEBUG)
    log.addHandler(buffer)
    return log


def test_entries_newest_first_and_bounded():
    buffer = LogBuffer(max_entries=3, tz_name="UTC")
    log = make_logger(buffer)
    for i in range(5):
        log.info("entry %s", i)

    assert [e.message for e in buffer.entries()] == ["entry 4", "entry 3", "entry 2"]
    assert buffer.entries()[0].level == "INFO"


def test_export_is_oldest_first_with_clock_prefix():
    buffer = LogBuffer(tz_name="UTC")
    log = make_logger(buffer, name="astate.store.sql")
    log.warning("Error saving location record: offline")
    log.info("Saved location 47.000000, 8.000000")

    lines = buffer.export().splitlines()
    assert len(lines) == 2
    assert re.fullmatch(r"\[\d{2}:\d{2}:\d{2}\.\d{3}\] \[WARNING\] \[test\d+\] Error saving location record: offline", lines[0])
    assert lines[1].endswith("[INFO] [test%d] Saved location 47.000000, 8.000000" % id(buffer))


def test_category_is_last_logger_name_component():
    buffer = LogBuffer()
    record = logging.LogRecord("astate.engine.session", logging.INFO, __file__, 1, "Recording started", None, None)
    buffer.handle(record)
    assert buffer.entries()[0].category == "session"


def test_clear_empties_buffer():
    buffer = LogBuffer()
    log = make_logger(buffer)
    log.error("boom")
    buffer.clear()
    assert all(e.message != "boom" for e in buffer.entries())
