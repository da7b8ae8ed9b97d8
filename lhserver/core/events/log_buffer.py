from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

from lhserver.core.events.models import MAX_MESSAGE_LENGTH, EventSeverity, LogEntry
from lhserver.core.redaction import redact


class EventLogBuffer:
    """
    Fixed-capacity ring of recent events (newest overwrites oldest).

    - record() writes at the cursor under the lock, then forwards to the sink
      outside the lock; sink failures never reach the caller
    - export() snapshots under the same lock and returns oldest -> newest
    """

    def __init__(
        self,
        *,
        capacity: int = 100,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        sink: Optional[Callable[[LogEntry], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        if int(capacity) < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = int(capacity)
        self.max_message_length = max(1, min(int(max_message_length), MAX_MESSAGE_LENGTH))
        self._sink = sink
        self._clock = clock
        self._lock = threading.Lock()
        self._slots: List[Optional[LogEntry]] = [None] * self.capacity
        self._cursor = 0
        self._count = 0

    def record(self, severity: EventSeverity | str, message: str) -> LogEntry:
        text = str(redact(str(message or "")))[: self.max_message_length]
        entry = LogEntry(timestamp=float(self._clock()), severity=EventSeverity.coerce(severity), message=text)
        with self._lock:
            self._slots[self._cursor] = entry
            self._cursor = (self._cursor + 1) % self.capacity
            if self._count < self.capacity:
                self._count += 1
        self._forward(entry)
        return entry

    def debug(self, message: str) -> LogEntry:
        return self.record(EventSeverity.DEBUG, message)

    def info(self, message: str) -> LogEntry:
        return self.record(EventSeverity.INFO, message)

    def warning(self, message: str) -> LogEntry:
        return self.record(EventSeverity.WARNING, message)

    def critical(self, message: str) -> LogEntry:
        return self.record(EventSeverity.CRITICAL, message)

    def export(self, max_entries: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            limit = self.capacity if max_entries is None else max(0, int(max_entries))
            n = min(limit, self._count)
            start = (self._cursor + self.capacity - n) % self.capacity
            out: List[LogEntry] = []
            for i in range(n):
                entry = self._slots[(start + i) % self.capacity]
                if entry is not None:
                    out.append(entry)
            return out

    def __len__(self) -> int:
        with self._lock:
            return self._count

    def _forward(self, entry: LogEntry) -> None:
        if self._sink is None:
            return
        try:
            self._sink(entry)
        except Exception:  # noqa: BLE001
            # external sink is best-effort
            pass
