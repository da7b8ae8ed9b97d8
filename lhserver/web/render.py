from __future__ import annotations

from typing import Any, Dict, Iterable, List

from lhserver.core.telemetry.metrics import MetricSample
from lhserver.core.telemetry.models import HealthCheck, HealthReport


PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4"


def _check_dict(c: HealthCheck) -> Dict[str, Any]:
    status = c.status.value if c.status is not None else None
    return {
        "name": c.name,
        "value": c.value,
        "measured": c.measured,
        "warning": c.warning_threshold,
        "critical": c.critical_threshold,
        "status": status,
    }


def report_to_dict(report: HealthReport) -> Dict[str, Any]:
    return {
        "service": report.service_name,
        "status": report.overall_status.value,
        "severity": report.overall_status.severity,
        "timestamp": report.iso_timestamp(),
        "checks": [_check_dict(c) for c in report.checks],
        "dependencies": [
            {"service": d.name, "reachable": d.reachable, "status": d.status.value if d.status is not None else None}
            for d in report.dependencies
        ],
        "device": report.device.model_dump() if report.device is not None else None,
    }


def _escape_label(v: str) -> str:
    return str(v).replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_value(s: MetricSample) -> str:
    if s.kind == "counter":
        return str(int(s.value))
    return f"{s.value:.2f}"


def render_prometheus(samples: Iterable[MetricSample], *, prefix: str = "ptz") -> str:
    """Text exposition format 0.0.4; HELP/TYPE emitted once per metric family."""
    lines: List[str] = []
    seen = set()
    pre = f"{prefix}_" if prefix else ""
    for s in samples:
        name = pre + s.name
        if name not in seen:
            seen.add(name)
            if s.help:
                lines.append(f"# HELP {name} {s.help}")
            lines.append(f"# TYPE {name} {s.kind}")
        if s.labels:
            labels = ",".join(f'{k}="{_escape_label(v)}"' for k, v in sorted(s.labels.items()))
            lines.append(f"{name}{{{labels}}} {_format_value(s)}")
        else:
            lines.append(f"{name} {_format_value(s)}")
    return "\n".join(lines) + "\n"
