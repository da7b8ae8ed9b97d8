from __future__ import annotations

import logging
import queue
import socket
from logging.handlers import QueueHandler, QueueListener, SysLogHandler
from typing import Optional, Tuple, Union

from lhserver.core.events.models import LogEntry


_FACILITIES = {
    "daemon": SysLogHandler.LOG_DAEMON,
    "user": SysLogHandler.LOG_USER,
    "local0": SysLogHandler.LOG_LOCAL0,
    "local1": SysLogHandler.LOG_LOCAL1,
    "local7": SysLogHandler.LOG_LOCAL7,
}


class LoggerSink:
    """
    Forwards ring-buffer events to stdlib logging handlers.

    Records go through a QueueHandler so the recording thread only pays for a
    queue put; the listener thread owns the (possibly slow) real handlers.
    """

    def __init__(self, *handlers: logging.Handler, name: str = "lhserver.events", max_queue: int = 1000):
        self.name = name
        self._queue: "queue.Queue[logging.LogRecord]" = queue.Queue(maxsize=max(10, int(max_queue)))
        self._queue_handler = _DroppingQueueHandler(self._queue)
        self._listener: Optional[QueueListener] = None
        if handlers:
            self._listener = QueueListener(self._queue, *handlers, respect_handler_level=True)
            self._listener.start()

    @property
    def active(self) -> bool:
        return self._listener is not None

    def __call__(self, entry: LogEntry) -> None:
        if self._listener is None:
            return
        record = logging.LogRecord(
            self.name,
            entry.severity.log_level,
            pathname=__file__,
            lineno=0,
            msg="[%s] %s",
            args=(entry.severity.value, entry.message),
            exc_info=None,
        )
        record.created = entry.timestamp
        self._queue_handler.handle(record)

    def close(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener.stop()
        except Exception:  # noqa: BLE001
            pass
        for h in self._listener.handlers:
            try:
                h.close()
            except Exception:  # noqa: BLE001
                pass
        self._listener = None


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            # forwarding is fire-and-forget; a full queue drops the record
            pass


def build_syslog_handler(address: Union[str, Tuple[str, int]] = "/dev/log", facility: str = "daemon", ident: str = "lh-server") -> logging.Handler:
    fac = _FACILITIES.get(str(facility).lower(), SysLogHandler.LOG_DAEMON)
    if isinstance(address, (list, tuple)):
        h = SysLogHandler(address=(str(address[0]), int(address[1])), facility=fac, socktype=socket.SOCK_DGRAM)
    else:
        h = SysLogHandler(address=str(address), facility=fac)
    h.ident = f"{ident}: "
    h.setFormatter(logging.Formatter("%(message)s"))
    return h


def build_syslog_sink(*, address: Union[str, Tuple[str, int]] = "/dev/log", facility: str = "daemon", ident: str = "lh-server") -> LoggerSink:
    """
    Syslog sink for EventLogBuffer. A handler that cannot be created yields an
    inactive sink; a socket that disappears later only costs the forwarded records.
    """
    log = logging.getLogger("lhserver")
    try:
        handler = build_syslog_handler(address, facility, ident)
    except OSError as e:
        log.warning("syslog unavailable (%s); events stay in memory only", e)
        return LoggerSink()
    return LoggerSink(handler)
