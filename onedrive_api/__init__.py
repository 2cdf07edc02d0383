from .api.core import *  # noqa: F403
from .api.core import __all__ as _api_core_all
from .core.drive import OneDrive
from .core.exceptions import (
    APIError,
    AuthenticationError,
    ConfigError,
    NotFoundError,
    OneDriveError,
    ShortFileError,
    TooManyRetriesError,
    UnexpectedStatusError,
    UploadCancelledError,
    UploadError,
)
from .core.models import DriveItem, DriveItemPage, UploadSession
from .core.upload import BackoffPolicy, ChunkSource, ResumableUploadDriver

__version__ = "0.4.0"

__all__ = [
    *_api_core_all,
    "OneDrive",
    "DriveItem",
    "DriveItemPage",
    "UploadSession",
    "BackoffPolicy",
    "ChunkSource",
    "ResumableUploadDriver",
    "OneDriveError",
    "APIError",
    "AuthenticationError",
    "ConfigError",
    "UploadError",
    "NotFoundError",
    "ShortFileError",
    "TooManyRetriesError",
    "UnexpectedStatusError",
    "UploadCancelledError",
]
