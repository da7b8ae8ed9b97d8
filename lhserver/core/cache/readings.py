from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from lhserver.core.cache.ttl_cache import TtlCache
from lhserver.core.config.models import CacheConfig
from lhserver.core.device_api.client import DeviceApiClient
from lhserver.core.device_api.models import DeviceInfo
from lhserver.core.errors import NoDataError


class DeviceReadings:
    """
    The two cached device-API quantities: a fast-changing temperature scalar
    and a slow-changing device info record.
    """

    def __init__(self, *, client: DeviceApiClient, cfg: Optional[CacheConfig] = None, clock: Callable[[], float] = time.time, logger=None, event_log=None):
        cfg = cfg or CacheConfig()
        self.client = client
        self.temperature_cache: TtlCache[float] = TtlCache(
            "temperature",
            ttl_seconds=cfg.temperature_ttl_seconds,
            refresh=client.fetch_temperature,
            clock=clock,
            logger=logger,
            event_log=event_log,
        )
        self.device_info_cache: TtlCache[DeviceInfo] = TtlCache(
            "device_info",
            ttl_seconds=cfg.device_info_ttl_seconds,
            refresh=client.fetch_device_info,
            clock=clock,
            logger=logger,
            event_log=event_log,
        )

    def temperature(self) -> float:
        return self.temperature_cache.get_cached()

    def device_info(self) -> DeviceInfo:
        return self.device_info_cache.get_cached()

    def temperature_or_none(self) -> Optional[float]:
        try:
            return self.temperature()
        except NoDataError:
            return None

    def device_info_or_none(self) -> Optional[DeviceInfo]:
        try:
            return self.device_info()
        except NoDataError:
            return None

    def reachable(self) -> bool:
        # device API counts as reachable once it has answered and its latest refresh did not fail
        return self.temperature_cache.has_data() and self.temperature_cache.last_refresh_ok() is not False

    def caches(self) -> Dict[str, TtlCache[Any]]:
        return {c.name: c for c in (self.temperature_cache, self.device_info_cache)}
