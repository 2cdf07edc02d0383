import os
from typing import Any, Callable, Optional, Union

from ..core.auth import get_auth
from ..core.config.config_manager import ConfigManager
from ..core.config.profiles import ProfileManager
from ..core.const import SIMPLE_UPLOAD_MAX_BYTES
from ..core.drive import OneDrive, child_locator
from ..core.exceptions import AuthenticationError, NotFoundError
from ..core.locator import ItemLocator, ODataAppendix
from ..core.models import DriveItem, DriveItemPage
from ..core.upload import UploadResult
from .globals import GlobalSingleton

__all__ = [
    "login",
    "logout",
    "get_client",
    "set_drive",
    "set_max_duration",
    "item",
    "children",
    "delete",
    "upload_file",
]


def login(
    access_token: Optional[str] = None,
    profile: Optional[str] = None,
    save: bool = False,
) -> OneDrive:
    """
    Authenticate and create the active client.

    Args:
        access_token: Bearer token. If not provided, ONEDRIVE_ACCESS_TOKEN or
                the token stored in the profile is used.
        profile: Profile providing drive, timeout and chunk size settings.
        save: Whether to store the token in the profile.

    Returns:
        The active OneDrive client.

    Raises:
        AuthenticationError: If no token could be found
    """
    profile_manager = ProfileManager()
    get_auth().login(access_token, profile, save, profile_manager)
    config = ConfigManager(profile_manager, profile).resolve_effective_config(
        {"access_token": get_auth().access_token}
    )
    client = OneDrive.from_config(config)
    GlobalSingleton()._active_client = client
    GlobalSingleton()._active_profile = profile
    return client


def logout(forget: bool = False) -> None:
    """Clear authentication state, and the stored token if ``forget``."""
    get_auth().logout(GlobalSingleton()._active_profile, forget)
    GlobalSingleton()._active_client = None
    GlobalSingleton()._active_profile = None


def get_client() -> OneDrive:
    """
    Get the active client.

    Raises:
        AuthenticationError: If login() has not been called
    """
    client = GlobalSingleton()._active_client
    if client is None:
        raise AuthenticationError("No active client. Call login() first.")
    return client


def set_drive(drive_type: str, drive_id: Optional[str] = None) -> None:
    """Select the drive of the active client."""
    get_client().set_drive(drive_type, drive_id)


def set_max_duration(max_duration_ms: int) -> None:
    """Set the request timeout of the active client, 0 for none."""
    get_client().set_max_duration(max_duration_ms)


def item(locator: ItemLocator, appendix: ODataAppendix = None) -> DriveItem:
    return get_client().item(locator, appendix)


def children(locator: ItemLocator, appendix: ODataAppendix = None) -> DriveItemPage:
    return get_client().children(locator, appendix)


def delete(locator: ItemLocator) -> bool:
    return get_client().delete(locator)


def upload_file(
    parent: ItemLocator,
    filepath: Union[str, os.PathLike],
    filename: str = "",
    progress_callback: Optional[Callable[[int], None]] = None,
    **kwargs: Any,
) -> Union[DriveItem, UploadResult]:
    """
    Upload a local file into a folder, choosing the upload method by size.

    Files up to 4MB go up in a single request; larger ones through a
    resumable upload session.

    Args:
        parent: Folder to upload into, e.g. {"path": "docs/"} or {"id": ...}
        filepath: Local file
        filename: Remote name, defaults to the local file name
        progress_callback: Called with each acknowledged byte count
        **kwargs: Passed to OneDrive.upload_large for large files

    Raises:
        NotFoundError: If the file does not exist
    """
    if not os.path.isfile(filepath):
        raise NotFoundError(f"File not found: {filepath}")
    client = get_client()
    name = filename or os.path.basename(filepath)
    size = os.path.getsize(filepath)
    if size <= SIMPLE_UPLOAD_MAX_BYTES:
        result = client.upload_simple(parent, filepath, name)
        if progress_callback is not None:
            progress_callback(size)
        return result
    return client.upload_large(
        child_locator(parent, name),
        filepath,
        progress_callback=progress_callback,
        **kwargs,
    )
