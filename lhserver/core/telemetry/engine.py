from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from lhserver.core.cache.readings import DeviceReadings
from lhserver.core.config.models import HealthConfig, ThresholdConfig
from lhserver.core.events.models import EventSeverity
from lhserver.core.telemetry.health_checks import dependency_with_status, evaluate_overall, make_check
from lhserver.core.telemetry.models import DependencyCheck, Direction, HealthCheck, HealthReport, HealthStatus
from lhserver.core.telemetry.probes import ResourceProbes


DEFAULT_THRESHOLDS: Dict[str, Tuple[float, float, Direction]] = {
    "memory_available_mb": (50.0, 20.0, Direction.LOWER_IS_BAD),
    "disk_free_mb": (100.0, 50.0, Direction.LOWER_IS_BAD),
    "temperature_celsius": (70.0, 80.0, Direction.HIGHER_IS_BAD),
    "cpu_usage_percent": (80.0, 95.0, Direction.HIGHER_IS_BAD),
}

DEVICE_API_DEPENDENCY = "device-api"

_EVENT_SEVERITY = {
    HealthStatus.HEALTHY: EventSeverity.INFO,
    HealthStatus.DEGRADED: EventSeverity.WARNING,
    HealthStatus.UNHEALTHY: EventSeverity.CRITICAL,
}


class HealthEngine:
    """
    Assembles a HealthReport on demand.

    Remembers the previous overall and per-check statuses; every change is
    recorded as one event whose severity follows the new status.
    """

    def __init__(
        self,
        *,
        cfg: Optional[HealthConfig] = None,
        probes: ResourceProbes,
        readings: Optional[DeviceReadings] = None,
        event_log=None,
        service_name: str = "lh-server",
        clock: Callable[[], float] = time.time,
        logger=None,
    ):
        self.cfg = cfg or HealthConfig()
        self.probes = probes
        self.readings = readings
        self.event_log = event_log
        self.service_name = service_name
        self._clock = clock
        self.logger = logger
        self._lock = threading.Lock()
        self._last_overall: Optional[HealthStatus] = None
        self._last_checks: Dict[str, HealthStatus] = {}

    def _thresholds(self, name: str) -> Tuple[float, float, Direction]:
        warning, critical, direction = DEFAULT_THRESHOLDS[name]
        t: Optional[ThresholdConfig] = self.cfg.thresholds.get(name)
        if t is not None:
            warning, critical = t.warning, t.critical
        return warning, critical, direction

    def _check(self, name: str, value: Optional[float], source: str) -> HealthCheck:
        warning, critical, direction = self._thresholds(name)
        return make_check(name, value, warning=warning, critical=critical, direction=direction, source=source)

    def _temperature(self) -> Tuple[Optional[float], str]:
        if self.readings is not None:
            t = self.readings.temperature_or_none()
            if t is not None:
                return t, "device_api"
        t = self.probes.thermal_zone_celsius(self.cfg.thermal_zone_path)
        if t is not None:
            return t, "thermal_zone"
        return None, ""

    def collect_checks(self) -> List[HealthCheck]:
        temp, temp_source = self._temperature()
        return [
            self._check("memory_available_mb", self.probes.memory_available_mb(), "psutil"),
            self._check("disk_free_mb", self.probes.disk_free_mb(self.cfg.disk_path), "psutil"),
            self._check("temperature_celsius", temp, temp_source),
            self._check("cpu_usage_percent", self.probes.cpu_usage_percent(), "psutil"),
        ]

    def collect_dependencies(self) -> List[DependencyCheck]:
        deps = [
            dependency_with_status(DependencyCheck(name=n.name, reachable=self.probes.device_node_available(n.path)))
            for n in self.cfg.device_nodes
        ]
        if self.cfg.include_device_api_dependency and self.readings is not None:
            deps.append(dependency_with_status(DependencyCheck(name=DEVICE_API_DEPENDENCY, reachable=self.readings.reachable())))
        return deps

    def generate_report(self) -> HealthReport:
        checks = self.collect_checks()
        deps = self.collect_dependencies()
        overall = evaluate_overall(checks, deps)
        device = self.readings.device_info_or_none() if self.readings is not None else None
        report = HealthReport(
            service_name=self.service_name,
            overall_status=overall,
            generated_at=float(self._clock()),
            checks=checks,
            dependencies=deps,
            device=device,
        )
        self._record_transitions(report)
        return report

    def _record_transitions(self, report: HealthReport) -> None:
        changes: List[Tuple[HealthStatus, str]] = []
        with self._lock:
            for c in report.checks:
                prev = self._last_checks.get(c.name)
                if c.status is not None and prev is not None and prev != c.status:
                    changes.append((c.status, f"Check {c.name} {prev.value} -> {c.status.value} (value={_fmt(c.value)})"))
                if c.status is not None:
                    self._last_checks[c.name] = c.status
            prev_overall = self._last_overall
            if prev_overall != report.overall_status:
                if prev_overall is None:
                    changes.append((report.overall_status, f"Health status {report.overall_status.value}"))
                else:
                    changes.append((report.overall_status, f"Health status {prev_overall.value} -> {report.overall_status.value}"))
                self._last_overall = report.overall_status

        for status, msg in changes:
            if self.event_log is not None:
                self.event_log.record(_EVENT_SEVERITY[status], msg)
            if self.logger:
                self.logger.log(_EVENT_SEVERITY[status].log_level, msg)


def _fmt(v: Optional[float]) -> str:
    return "unmeasured" if v is None else f"{v:.2f}"
