from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lhserver.core.device_api.models import DeviceInfo


class HealthStatus(str, Enum):
    """Totally ordered by severity: HEALTHY < DEGRADED < UNHEALTHY."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @property
    def severity(self) -> str:
        return _SEVERITY[self]

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank >= other.rank


_RANK: Dict[HealthStatus, int] = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}

_SEVERITY: Dict[HealthStatus, str] = {
    HealthStatus.HEALTHY: "info",
    HealthStatus.DEGRADED: "warning",
    HealthStatus.UNHEALTHY: "critical",
}


class Direction(str, Enum):
    LOWER_IS_BAD = "lower_is_bad"  # free memory, free disk
    HIGHER_IS_BAD = "higher_is_bad"  # temperature, cpu load


class HealthCheck(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    value: Optional[float] = None  # None = unmeasured this cycle
    warning_threshold: float
    critical_threshold: float
    direction: Direction
    status: Optional[HealthStatus] = None
    source: str = ""

    @property
    def measured(self) -> bool:
        return self.value is not None


class DependencyCheck(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    reachable: bool
    status: Optional[HealthStatus] = None


class HealthReport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    service_name: str
    overall_status: HealthStatus
    generated_at: float = Field(default_factory=lambda: time.time())
    checks: List[HealthCheck] = Field(default_factory=list)
    dependencies: List[DependencyCheck] = Field(default_factory=list)
    device: Optional[DeviceInfo] = None

    def iso_timestamp(self) -> str:
        return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.generated_at))

    def check(self, name: str) -> Optional[HealthCheck]:
        for c in self.checks:
            if c.name == name:
                return c
        return None
