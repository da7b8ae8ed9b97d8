from __future__ import annotations

from typing import Iterable, Optional

from lhserver.core.telemetry.models import DependencyCheck, Direction, HealthCheck, HealthStatus


def evaluate_check(check: HealthCheck) -> HealthStatus:
    """
    Threshold rule (strict comparisons, a value equal to a threshold does not cross it).

    LOWER_IS_BAD:  value < critical -> UNHEALTHY; value < warning -> DEGRADED
    HIGHER_IS_BAD: value > critical -> UNHEALTHY; value > warning -> DEGRADED
    Unmeasured checks are DEGRADED: no reading lowers confidence, it does not prove failure.
    """
    if check.value is None:
        return HealthStatus.DEGRADED
    v = float(check.value)
    if check.direction == Direction.LOWER_IS_BAD:
        if v < check.critical_threshold:
            return HealthStatus.UNHEALTHY
        if v < check.warning_threshold:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY
    if v > check.critical_threshold:
        return HealthStatus.UNHEALTHY
    if v > check.warning_threshold:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def evaluate_dependency(dep: DependencyCheck) -> HealthStatus:
    # unreachable never escalates past DEGRADED
    return HealthStatus.HEALTHY if dep.reachable else HealthStatus.DEGRADED


def worst(statuses: Iterable[HealthStatus]) -> HealthStatus:
    out = HealthStatus.HEALTHY
    for s in statuses:
        if s > out:
            out = s
    return out


def evaluate_overall(checks: Iterable[HealthCheck], dependencies: Optional[Iterable[DependencyCheck]] = None) -> HealthStatus:
    statuses = [evaluate_check(c) for c in checks]
    statuses.extend(evaluate_dependency(d) for d in (dependencies or []))
    return worst(statuses)


def with_status(check: HealthCheck) -> HealthCheck:
    return check.model_copy(update={"status": evaluate_check(check)})


def dependency_with_status(dep: DependencyCheck) -> DependencyCheck:
    return dep.model_copy(update={"status": evaluate_dependency(dep)})


def make_check(name: str, value: Optional[float], *, warning: float, critical: float, direction: Direction, source: str = "") -> HealthCheck:
    return with_status(
        HealthCheck(
            name=name,
            value=None if value is None else float(value),
            warning_threshold=float(warning),
            critical_threshold=float(critical),
            direction=direction,
            source=source,
        )
    )
