from .client_config import ClientConfig
from .config_manager import ConfigManager
from .profiles import DEFAULT_PROFILE, ProfileManager, ProfileNotFound

__all__ = [
    "ClientConfig",
    "ConfigManager",
    "DEFAULT_PROFILE",
    "ProfileManager",
    "ProfileNotFound",
]
