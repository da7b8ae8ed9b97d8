from lhserver.core.cache.readings import DeviceReadings
from lhserver.core.cache.ttl_cache import CachedReading, TtlCache

__all__ = ["CachedReading", "DeviceReadings", "TtlCache"]
