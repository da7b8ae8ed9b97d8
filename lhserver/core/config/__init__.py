from lhserver.core.config.manager import ConfigFsPaths, ConfigManager, load_config
from lhserver.core.config.models import AppConfig

__all__ = ["AppConfig", "ConfigFsPaths", "ConfigManager", "load_config"]
