from lhserver.core.telemetry.engine import HealthEngine
from lhserver.core.telemetry.health_checks import evaluate_check, evaluate_dependency, evaluate_overall
from lhserver.core.telemetry.metrics import MetricSample, MetricsCollector, RequestCounters
from lhserver.core.telemetry.models import DependencyCheck, Direction, HealthCheck, HealthReport, HealthStatus
from lhserver.core.telemetry.probes import ResourceProbes

__all__ = [
    "DependencyCheck",
    "Direction",
    "HealthCheck",
    "HealthEngine",
    "HealthReport",
    "HealthStatus",
    "MetricSample",
    "MetricsCollector",
    "RequestCounters",
    "ResourceProbes",
    "evaluate_check",
    "evaluate_dependency",
    "evaluate_overall",
]
