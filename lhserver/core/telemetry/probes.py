from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Optional

import psutil


@dataclass(frozen=True)
class MemorySample:
    total_bytes: int
    available_bytes: int


@dataclass(frozen=True)
class DiskSample:
    total_bytes: int
    free_bytes: int


@dataclass(frozen=True)
class NetworkSample:
    interface: str
    rx_bytes: int
    tx_bytes: int


class ResourceProbes:
    """
    Best-effort host readings. Every probe returns None when the source is
    unavailable; callers treat None as "unmeasured this cycle".
    """

    def __init__(self, *, disk_path: str = "/", thermal_zone_path: str = "/sys/class/thermal/thermal_zone0/temp", logger=None):
        self.disk_path = disk_path
        self.thermal_zone_path = thermal_zone_path
        self.logger = logger
        try:
            # prime cpu_percent so the first real sample covers an interval
            psutil.cpu_percent(interval=None)
        except Exception:  # noqa: BLE001
            pass

    def _warn(self, probe: str, exc: Exception) -> None:
        if self.logger:
            self.logger.warning(f"Probe {probe} unavailable: {type(exc).__name__}: {exc}")

    def memory(self) -> Optional[MemorySample]:
        try:
            vm = psutil.virtual_memory()
            return MemorySample(total_bytes=int(vm.total), available_bytes=int(vm.available))
        except Exception as e:  # noqa: BLE001
            self._warn("memory", e)
            return None

    def memory_available_mb(self) -> Optional[float]:
        m = self.memory()
        return None if m is None else m.available_bytes / (1024.0 * 1024.0)

    def disk(self, path: Optional[str] = None) -> Optional[DiskSample]:
        try:
            du = psutil.disk_usage(path or self.disk_path)
            # psutil's free is the space available to unprivileged users
            return DiskSample(total_bytes=int(du.total), free_bytes=int(du.free))
        except Exception as e:  # noqa: BLE001
            self._warn("disk", e)
            return None

    def disk_free_mb(self, path: Optional[str] = None) -> Optional[float]:
        d = self.disk(path)
        return None if d is None else d.free_bytes / (1024.0 * 1024.0)

    def cpu_usage_percent(self) -> Optional[float]:
        try:
            return float(psutil.cpu_percent(interval=None))
        except Exception as e:  # noqa: BLE001
            self._warn("cpu", e)
            return None

    def load_average_1m(self) -> Optional[float]:
        try:
            return float(psutil.getloadavg()[0])
        except Exception as e:  # noqa: BLE001
            self._warn("loadavg", e)
            return None

    def uptime_seconds(self) -> Optional[float]:
        try:
            return max(0.0, time.time() - float(psutil.boot_time()))
        except Exception as e:  # noqa: BLE001
            self._warn("uptime", e)
            return None

    def network(self) -> Optional[NetworkSample]:
        """Counters of the first non-loopback interface."""
        try:
            counters = psutil.net_io_counters(pernic=True)
        except Exception as e:  # noqa: BLE001
            self._warn("network", e)
            return None
        for name, c in (counters or {}).items():
            if name == "lo":
                continue
            return NetworkSample(interface=name, rx_bytes=int(c.bytes_recv), tx_bytes=int(c.bytes_sent))
        return None

    def process_count(self) -> Optional[int]:
        try:
            return len(psutil.pids())
        except Exception as e:  # noqa: BLE001
            self._warn("processes", e)
            return None

    def thermal_zone_celsius(self, path: Optional[str] = None) -> Optional[float]:
        p = path or self.thermal_zone_path
        try:
            with open(p, "r", encoding="ascii") as f:
                raw = f.read().strip()
            return int(raw) / 1000.0  # millidegrees
        except (OSError, ValueError) as e:
            self._warn("thermal_zone", e)
            return None

    @staticmethod
    def device_node_available(path: str) -> bool:
        try:
            fd = os.open(path, os.O_RDWR)
        except OSError:
            return False
        os.close(fd)
        return True
