from __future__ import annotations

import logging
import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


MAX_MESSAGE_LENGTH = 256


class EventSeverity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]

    @classmethod
    def coerce(cls, value: "EventSeverity | str") -> "EventSeverity":
        if isinstance(value, EventSeverity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            # unknown severities are kept visible rather than dropped
            return cls.INFO


_LOG_LEVELS = {
    EventSeverity.DEBUG: logging.DEBUG,
    EventSeverity.INFO: logging.INFO,
    EventSeverity.WARNING: logging.WARNING,
    EventSeverity.CRITICAL: logging.CRITICAL,
}


class LogEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    timestamp: float = Field(default_factory=lambda: time.time())
    severity: EventSeverity
    message: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)

    def iso_timestamp(self) -> str:
        return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.timestamp))

    def to_dict(self) -> dict:
        return {"timestamp": self.iso_timestamp(), "severity": self.severity.value, "message": self.message}
