from __future__ import annotations

import re
from typing import Any, Dict


REDACT_KEYS = {
    "password",
    "passwd",
    "secret",
    "token",
    "authorization",
    "credentials",
}

_SENSITIVE_INLINE = [
    # e.g. "password: abc", "secret=xyz"
    re.compile(r"(?i)\b(password|passwd|secret|token|authorization)\b\s*[:=]\s*([^\s,;]+)"),
    # e.g. "Basic <b64>", "Bearer <token>"
    re.compile(r"(?i)\b(Basic|Bearer)\s+([A-Za-z0-9\-\._~\+/]+=*)"),
    # user:pass@host in URLs
    re.compile(r"(?i)(https?://)([^/\s:@]+):([^/\s@]+)@"),
]


def _redact_string(s: str) -> str:
    out = _SENSITIVE_INLINE[1].sub(lambda m: f"{m.group(1)} ***REDACTED***", s)
    out = _SENSITIVE_INLINE[2].sub(lambda m: f"{m.group(1)}{m.group(2)}:***REDACTED***@", out)
    out = _SENSITIVE_INLINE[0].sub(lambda m: f"{m.group(1)}=***REDACTED***", out)
    return out


def redact(obj: Any) -> Any:
    """
    Scrub secrets from anything headed for a log line or the event buffer:
    - key-based redaction for dicts
    - inline string scrubbing for common credential patterns
    """
    if obj is None:
        return None
    if isinstance(obj, str):
        return _redact_string(obj)
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if str(k).lower() in REDACT_KEYS:
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(obj, list):
        return [redact(x) for x in obj]
    return obj
