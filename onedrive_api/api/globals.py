from typing import Optional

from ..core.drive import OneDrive


class GlobalSingleton(object):
    _instance = None
    _active_client: Optional[OneDrive] = None
    _active_profile: Optional[str] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance
