from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from lhserver.core.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LhServerError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Config ----
class ConfigError(LhServerError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


# ---- Credentials ----
class AuthError(LhServerError):
    def __init__(self, user_message: str = "Device API credentials unavailable.", *, code: str = "auth_error", **ctx: Any):
        super().__init__(code, user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class NotInitializedError(AuthError):
    def __init__(self, user_message: str = "Device API client not initialized.", **ctx: Any):
        super().__init__(user_message, code="not_initialized", **ctx)


# ---- Device API fetches ----
class FetchError(LhServerError):
    def __init__(self, code: str, user_message: str, **ctx: Any):
        super().__init__(code, user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class TransportError(FetchError):
    def __init__(self, user_message: str = "Device API request failed.", **ctx: Any):
        super().__init__("transport_error", user_message, **ctx)


class BadStatusError(FetchError):
    def __init__(self, status_code: Any, user_message: Optional[str] = None, **ctx: Any):
        super().__init__("bad_status", user_message or f"Device API returned status {status_code}.", status_code=status_code, **ctx)
        self.status_code = status_code


class ParseError(FetchError):
    def __init__(self, user_message: str = "Device API response could not be parsed.", **ctx: Any):
        super().__init__("parse_error", user_message, **ctx)


# ---- Cache ----
class NoDataError(LhServerError):
    def __init__(self, user_message: str = "No data available.", **ctx: Any):
        super().__init__("no_data", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
