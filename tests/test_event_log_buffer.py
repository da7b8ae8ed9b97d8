from __future__ import annotations

import logging
import threading

import pytest

from lhserver.core.events.log_buffer import EventLogBuffer
from lhserver.core.events.models import EventSeverity, LogEntry
from lhserver.core.events.sinks import LoggerSink, build_syslog_sink

from .helpers.fakes import FakeClock, ListSink


def test_export_is_oldest_first_after_wraparound():
    buf = EventLogBuffer(capacity=5)
    for i in range(8):
        buf.info(f"event {i}")
    msgs = [e.message for e in buf.export()]
    assert msgs == ["event 3", "event 4", "event 5", "event 6", "event 7"]
    assert len(buf) == 5


def test_export_limit_returns_most_recent():
    buf = EventLogBuffer(capacity=100)
    for i in range(10):
        buf.info(f"e{i}")
    assert [e.message for e in buf.export(3)] == ["e7", "e8", "e9"]
    assert buf.export(0) == []
    assert len(buf.export(500)) == 10


def test_capacity_plus_k_keeps_last_capacity_entries():
    cap, k = 100, 37
    buf = EventLogBuffer(capacity=cap)
    for i in range(cap + k):
        buf.debug(str(i))
    out = buf.export(cap)
    assert [int(e.message) for e in out] == list(range(k, cap + k))


def test_message_is_truncated():
    buf = EventLogBuffer(capacity=3)
    entry = buf.warning("x" * 1000)
    assert len(entry.message) == 256
    assert buf.export()[0].message == "x" * 256


def test_secrets_are_redacted_before_storage():
    buf = EventLogBuffer(capacity=3)
    buf.info("login failed password=hunter2 for root")
    assert "hunter2" not in buf.export()[0].message


def test_basic_and_bearer_header_values_are_redacted():
    buf = EventLogBuffer(capacity=3)
    buf.warning("rejected Basic cm9vdDpwdw== then Bearer abc.def-123")
    msg = buf.export()[0].message
    assert "cm9vdDpwdw==" not in msg
    assert "abc.def-123" not in msg
    assert msg.count("***REDACTED***") == 2


def test_unknown_severity_is_coerced_to_info():
    buf = EventLogBuffer(capacity=3)
    assert buf.record("loud", "hello").severity == EventSeverity.INFO
    assert buf.record("CRITICAL", "hot").severity == EventSeverity.CRITICAL


def test_failing_sink_never_affects_ring():
    sink = ListSink(fail=True)
    buf = EventLogBuffer(capacity=3, sink=sink)
    buf.critical("overheat")
    assert [e.message for e in buf.export()] == ["overheat"]


def test_sink_receives_every_entry():
    sink = ListSink()
    buf = EventLogBuffer(capacity=2, sink=sink)
    for i in range(4):
        buf.info(str(i))
    assert [e.message for e in sink.entries] == ["0", "1", "2", "3"]


def test_entry_dict_uses_iso_timestamp():
    clock = FakeClock(start=0.0)
    buf = EventLogBuffer(capacity=2, clock=clock)
    d = buf.info("boot").to_dict()
    assert d == {"timestamp": "1970-01-01T00:00:00Z", "severity": "info", "message": "boot"}


def test_concurrent_records_keep_count_consistent():
    buf = EventLogBuffer(capacity=50)

    def writer(n):
        for i in range(200):
            buf.info(f"{n}-{i}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(buf) == 50
    assert len(buf.export()) == 50


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        EventLogBuffer(capacity=0)


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_logger_sink_forwards_through_queue_listener():
    cap = _Capture()
    sink = LoggerSink(cap)
    assert sink.active
    sink(LogEntry(timestamp=10.0, severity=EventSeverity.WARNING, message="disk low"))
    sink.close()  # stop() drains the queue
    assert len(cap.records) == 1
    rec = cap.records[0]
    assert rec.levelno == logging.WARNING
    assert rec.getMessage() == "[warning] disk low"
    assert rec.created == 10.0


def test_inactive_sink_is_a_noop():
    sink = LoggerSink()
    assert not sink.active
    sink(LogEntry(severity=EventSeverity.INFO, message="x"))
    sink.close()


def test_syslog_sink_builds_without_a_listening_daemon(tmp_path):
    sink = build_syslog_sink(address=str(tmp_path / "no-such-socket"))
    sink.close()
