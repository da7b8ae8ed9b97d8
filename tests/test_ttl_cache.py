from __future__ import annotations

import threading

import pytest

from lhserver.core.cache.ttl_cache import TtlCache
from lhserver.core.errors import NoDataError, TransportError


class ScriptedRefresh:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        item = self.outcomes.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def _stale_warnings(event_log):
    return [e for e in event_log.export() if e.severity.value == "warning" and "Serving stale" in e.message]


def test_fresh_hit_does_not_call_refresh(clock, event_log):
    refresh = ScriptedRefresh(46.7)
    cache = TtlCache("temperature", ttl_seconds=60, refresh=refresh, clock=clock, event_log=event_log)
    assert cache.get_cached() == 46.7
    clock.advance(59.9)
    assert cache.get_cached() == 46.7
    assert refresh.calls == 1
    assert cache.snapshot()["hits"] == 1


def test_expired_entry_refreshes(clock):
    refresh = ScriptedRefresh(1.0, 2.0)
    cache = TtlCache("t", ttl_seconds=60, refresh=refresh, clock=clock)
    assert cache.get_cached() == 1.0
    clock.advance(60)  # age == ttl is no longer fresh
    assert cache.get_cached() == 2.0
    assert refresh.calls == 2


def test_failure_without_prior_value_raises_no_data(clock, event_log):
    cache = TtlCache("temperature", ttl_seconds=60, refresh=ScriptedRefresh(TransportError()), clock=clock, event_log=event_log)
    with pytest.raises(NoDataError) as ei:
        cache.get_cached()
    assert ei.value.context["reason"] == "transport_error"
    assert not cache.has_data()
    assert _stale_warnings(event_log) == []


def test_any_exception_counts_as_failed_refresh(clock):
    cache = TtlCache("x", ttl_seconds=10, refresh=ScriptedRefresh(5, RuntimeError("boom")), clock=clock)
    cache.get_cached()
    clock.advance(11)
    assert cache.get_cached() == 5
    snap = cache.snapshot()
    assert snap["refresh_failures"] == 1
    assert snap["stale_served"] == 1
    assert snap["last_error"] == "RuntimeError"
    assert cache.last_refresh_ok() is False


def test_stale_value_is_served_with_one_warning_per_failure(clock, event_log):
    refresh = ScriptedRefresh(10.0, TransportError(), TransportError())
    cache = TtlCache("temperature", ttl_seconds=60, refresh=refresh, clock=clock, event_log=event_log)
    cache.get_cached()
    clock.advance(61)
    assert cache.get_cached() == 10.0
    assert len(_stale_warnings(event_log)) == 1
    assert cache.get_cached() == 10.0
    assert len(_stale_warnings(event_log)) == 2


def test_end_to_end_temperature_scenario(clock, event_log):
    refresh = ScriptedRefresh(46.7, TransportError(), 50.2)
    cache = TtlCache("temperature", ttl_seconds=60, refresh=refresh, clock=clock, event_log=event_log)

    assert cache.get_cached() == 46.7  # t=0
    clock.advance(30)
    assert cache.get_cached() == 46.7  # t=30 hit
    assert refresh.calls == 1

    clock.advance(31)
    assert cache.get_cached() == 46.7  # t=61 stale
    assert refresh.calls == 2
    assert len(_stale_warnings(event_log)) == 1

    clock.advance(69)
    assert cache.get_cached() == 50.2  # t=130 fresh again
    assert refresh.calls == 3
    assert cache.last_refresh_ok() is True
    assert len(_stale_warnings(event_log)) == 1


def test_fetched_at_is_refresh_start_time(clock):
    def slow():
        clock.advance(5)
        return 1.0

    cache = TtlCache("t", ttl_seconds=10, refresh=slow, clock=clock)
    cache.get_cached()
    assert cache.snapshot()["age_seconds"] == 5
    clock.advance(5)  # 10s since the refresh began
    calls = []
    cache.get_cached(lambda: calls.append(1) or 2.0)
    assert calls == [1]


def test_ttl_override_per_call(clock):
    refresh = ScriptedRefresh(1.0, 2.0)
    cache = TtlCache("t", ttl_seconds=300, refresh=refresh, clock=clock)
    cache.get_cached()
    clock.advance(20)
    assert cache.get_cached(ttl=10) == 2.0


def test_invalidate_forces_refresh_and_drops_value(clock):
    refresh = ScriptedRefresh(1.0, TransportError())
    cache = TtlCache("t", ttl_seconds=60, refresh=refresh, clock=clock)
    cache.get_cached()
    cache.invalidate()
    assert not cache.has_data()
    with pytest.raises(NoDataError):
        cache.get_cached()


def test_none_is_a_valid_cached_value(clock):
    refresh = ScriptedRefresh(None, TransportError())
    cache = TtlCache("t", ttl_seconds=1, refresh=refresh, clock=clock)
    assert cache.get_cached() is None
    clock.advance(2)
    assert cache.get_cached() is None
    assert cache.snapshot()["stale_served"] == 1


def test_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        TtlCache("t", ttl_seconds=0)


def test_refresh_runs_outside_the_lock(clock):
    cache = TtlCache("t", ttl_seconds=60, clock=clock)
    observed = []

    def refresh():
        # a second thread can read cache state while this refresh is in flight
        t = threading.Thread(target=lambda: observed.append(cache.snapshot()["misses"]))
        t.start()
        t.join(timeout=2)
        return 3.0

    assert cache.get_cached(refresh) == 3.0
    assert observed == [1]
