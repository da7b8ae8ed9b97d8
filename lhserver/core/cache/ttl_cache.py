from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from lhserver.core.errors import LhServerError, NoDataError


T = TypeVar("T")


@dataclass
class CachedReading(Generic[T]):
    value: Optional[T] = None
    fetched_at: float = 0.0
    valid: bool = False
    ttl: float = 60.0


class TtlCache(Generic[T]):
    """
    Demand-driven TTL cache for one external quantity.

    - fresh hit: returned under the lock, no refresh call
    - miss/expired: refresh runs OUTSIDE the lock, result written under it
    - failed refresh: prior valid value is served stale (one warning per
      failed attempt), otherwise NoDataError

    Concurrent misses may refresh twice; the locked write keeps the record whole.
    """

    def __init__(
        self,
        name: str,
        *,
        ttl_seconds: float,
        refresh: Optional[Callable[[], T]] = None,
        clock: Callable[[], float] = time.time,
        logger=None,
        event_log=None,
    ):
        if float(ttl_seconds) <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.name = str(name)
        self._refresh = refresh
        self._clock = clock
        self.logger = logger
        self.event_log = event_log
        self._lock = threading.Lock()
        self._entry: CachedReading[T] = CachedReading(ttl=float(ttl_seconds))
        self._hits = 0
        self._misses = 0
        self._refresh_failures = 0
        self._stale_served = 0
        self._last_refresh_ok: Optional[bool] = None
        self._last_error: Optional[str] = None

    def get_cached(self, refresh: Optional[Callable[[], T]] = None, *, ttl: Optional[float] = None) -> T:
        fn = refresh or self._refresh
        if fn is None:
            raise ValueError(f"cache {self.name!r} has no refresh function")
        max_age = float(self._entry.ttl if ttl is None else ttl)

        with self._lock:
            now = float(self._clock())
            if self._entry.valid and (now - self._entry.fetched_at) < max_age:
                self._hits += 1
                return self._entry.value  # type: ignore[return-value]
            self._misses += 1

        # network I/O never runs under the lock
        try:
            fresh = fn()
        except Exception as e:  # noqa: BLE001
            return self._on_refresh_failure(e)

        with self._lock:
            self._entry.value = fresh
            self._entry.fetched_at = now
            self._entry.valid = True
            self._last_refresh_ok = True
            self._last_error = None
        return fresh

    def _on_refresh_failure(self, exc: Exception) -> T:
        reason = exc.code if isinstance(exc, LhServerError) else type(exc).__name__
        with self._lock:
            self._refresh_failures += 1
            self._last_refresh_ok = False
            self._last_error = reason
            has_stale = self._entry.valid
            stale = self._entry.value
            age = float(self._clock()) - self._entry.fetched_at
            if has_stale:
                self._stale_served += 1
        if not has_stale:
            if self.logger:
                self.logger.warning(f"Cache {self.name}: refresh failed ({reason}); no data available")
            raise NoDataError(f"No {self.name} data available.", cache=self.name, reason=reason) from exc
        msg = f"Serving stale {self.name} cache (age {age:.0f}s, refresh failed: {reason})"
        if self.logger:
            self.logger.warning(msg)
        if self.event_log is not None:
            self.event_log.warning(msg)
        return stale

    def has_data(self) -> bool:
        with self._lock:
            return self._entry.valid

    def last_refresh_ok(self) -> Optional[bool]:
        with self._lock:
            return self._last_refresh_ok

    def invalidate(self) -> None:
        with self._lock:
            self._entry.valid = False
            self._entry.value = None
            self._entry.fetched_at = 0.0

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            age = (float(self._clock()) - self._entry.fetched_at) if self._entry.valid else None
            return {
                "name": self.name,
                "ttl_seconds": self._entry.ttl,
                "valid": self._entry.valid,
                "age_seconds": age,
                "hits": self._hits,
                "misses": self._misses,
                "refresh_failures": self._refresh_failures,
                "stale_served": self._stale_served,
                "last_refresh_ok": self._last_refresh_ok,
                "last_error": self._last_error,
            }
