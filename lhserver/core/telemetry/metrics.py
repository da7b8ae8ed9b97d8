from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from lhserver.core.cache.readings import DeviceReadings
from lhserver.core.telemetry.probes import ResourceProbes


def _tag_key(tags: Optional[Dict[str, Any]]) -> Tuple[Tuple[str, str], ...]:
    if not tags:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in tags.items() if v is not None))


@dataclass(frozen=True)
class MetricSample:
    name: str
    value: float
    kind: str = "gauge"  # gauge|counter
    help: str = ""
    labels: Dict[str, str] = field(default_factory=dict)


class RequestCounters:
    """Thread-safe monotonically increasing counters, keyed by name and tags."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def inc(self, name: str, n: int = 1, tags: Optional[Dict[str, Any]] = None) -> None:
        k = (str(name), _tag_key(tags))
        with self._lock:
            self._counters[k] = int(self._counters.get(k, 0)) + int(n)

    def get(self, name: str, tags: Optional[Dict[str, Any]] = None) -> int:
        with self._lock:
            return int(self._counters.get((str(name), _tag_key(tags)), 0))

    def total(self, name: str) -> int:
        with self._lock:
            return sum(v for (n, _), v in self._counters.items() if n == name)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


class MetricsCollector:
    """
    Builds one scrape worth of samples from host probes, the device caches
    and the request counters. A probe that yields nothing drops its samples.
    """

    def __init__(self, *, probes: ResourceProbes, readings: Optional[DeviceReadings], counters: RequestCounters, logger=None):
        self.probes = probes
        self.readings = readings
        self.counters = counters
        self.logger = logger

    def collect(self) -> List[MetricSample]:
        out: List[MetricSample] = []
        p = self.probes

        self._gauge(out, "uptime_seconds", p.uptime_seconds, "System uptime in seconds")

        mem = p.memory()
        if mem is not None:
            out.append(MetricSample("memory_total_bytes", float(mem.total_bytes), help="Total memory in bytes"))
            out.append(MetricSample("memory_available_bytes", float(mem.available_bytes), help="Available memory in bytes"))
        else:
            self._skipped("memory")

        self._gauge(out, "load_average_1m", p.load_average_1m, "1-minute load average")
        self._gauge(out, "cpu_usage_percent", p.cpu_usage_percent, "CPU usage percent")

        net = p.network()
        if net is not None:
            labels = {"interface": net.interface}
            out.append(MetricSample("network_rx_bytes_total", float(net.rx_bytes), "counter", "Network bytes received", labels))
            out.append(MetricSample("network_tx_bytes_total", float(net.tx_bytes), "counter", "Network bytes transmitted", labels))
        else:
            self._skipped("network")

        disk = p.disk()
        if disk is not None:
            out.append(MetricSample("disk_total_bytes", float(disk.total_bytes), help="Total disk space in bytes"))
            out.append(MetricSample("disk_free_bytes", float(disk.free_bytes), help="Free disk space in bytes"))
        else:
            self._skipped("disk")

        out.append(
            MetricSample("http_requests_total", float(self.counters.total("http_requests_total")), "counter", "Total HTTP requests served")
        )
        self._gauge(out, "process_count", p.process_count, "Number of running processes")

        if self.readings is not None:
            out.extend(self._device_samples(self.readings))
        return out

    def _device_samples(self, readings: DeviceReadings) -> List[MetricSample]:
        out: List[MetricSample] = []
        temp = readings.temperature_or_none()
        if temp is not None:
            out.append(MetricSample("temperature_celsius", float(temp), help="Device temperature in celsius"))
        info = readings.device_info_or_none()
        if info is not None:
            out.append(
                MetricSample(
                    "device_info",
                    1.0,
                    help="Device identity",
                    labels={"serial": info.serial_number, "firmware": info.firmware_version, "model": info.model},
                )
            )
        for name, cache in readings.caches().items():
            snap = cache.snapshot()
            labels = {"cache": name}
            out.append(MetricSample("cache_hits_total", float(snap["hits"]), "counter", "Cache hits", labels))
            out.append(MetricSample("cache_misses_total", float(snap["misses"]), "counter", "Cache misses", labels))
            out.append(MetricSample("cache_refresh_failures_total", float(snap["refresh_failures"]), "counter", "Failed cache refreshes", labels))
            out.append(MetricSample("cache_stale_served_total", float(snap["stale_served"]), "counter", "Stale values served", labels))
        return out

    def _gauge(self, out: List[MetricSample], name: str, probe: Callable[[], Any], help_text: str) -> None:
        v = probe()
        if v is None:
            self._skipped(name)
            return
        out.append(MetricSample(name, float(v), help=help_text))

    def _skipped(self, name: str) -> None:
        if self.logger:
            self.logger.warning(f"Metric {name} skipped: probe returned no data")
