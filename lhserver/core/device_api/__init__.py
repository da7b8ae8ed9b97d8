from lhserver.core.device_api.client import DeviceApiClient, parse_device_info, parse_scalar
from lhserver.core.device_api.models import DeviceInfo

__all__ = ["DeviceApiClient", "DeviceInfo", "parse_device_info", "parse_scalar"]
