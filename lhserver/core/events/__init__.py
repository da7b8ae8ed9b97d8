"""
In-memory event log (ring buffer) with best-effort syslog forwarding.
"""

from lhserver.core.events.log_buffer import EventLogBuffer
from lhserver.core.events.models import EventSeverity, LogEntry
from lhserver.core.events.sinks import LoggerSink, build_syslog_sink

__all__ = [
    "EventLogBuffer",
    "EventSeverity",
    "LogEntry",
    "LoggerSink",
    "build_syslog_sink",
]
