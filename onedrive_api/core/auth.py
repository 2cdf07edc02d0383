"""Bearer token handling.

Acquiring and refreshing tokens (the OAuth flows) is left to the caller;
this module only stores a token, optionally persists it to a profile, and
produces request headers from it.
"""

from __future__ import annotations

import logging
import os

from onedrive_api.core.config.profiles import ProfileManager
from onedrive_api.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class Auth:
    """Holds the access token used for Graph API requests."""

    def __init__(self, access_token: str | None = None) -> None:
        self._access_token = access_token

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    def login(
        self,
        access_token: str | None = None,
        profile: str | None = None,
        save: bool = False,
        profile_manager: ProfileManager | None = None,
    ) -> None:
        """Set the access token.

        The token is taken from ``access_token``, then the
        ``ONEDRIVE_ACCESS_TOKEN`` environment variable, then the profile.

        Args:
            access_token: Token to use.
            profile: Profile to read the token from, or save it to.
            save: Whether to persist the token in the profile.
            profile_manager: Profile store, defaults to the user's home.

        Raises:
            AuthenticationError: If no token could be found.
        """
        profile_manager = profile_manager or ProfileManager()
        token = access_token or os.getenv("ONEDRIVE_ACCESS_TOKEN")
        if not token:
            token = profile_manager.get_profile(profile).access_token
        if not token:
            raise AuthenticationError(
                "No access token provided. Pass one to login() or set "
                "ONEDRIVE_ACCESS_TOKEN."
            )
        self._access_token = token
        if save:
            profile_manager.update_profile({"access_token": token}, profile)
            logger.info("Saved access token to profile %s", profile or "default")

    def logout(
        self,
        profile: str | None = None,
        forget: bool = False,
        profile_manager: ProfileManager | None = None,
    ) -> None:
        """Clear the access token, and remove it from the profile if ``forget``."""
        self._access_token = None
        if forget:
            profile_manager = profile_manager or ProfileManager()
            profile_manager.update_profile({"access_token": None}, profile)

    def get_headers(self) -> dict[str, str]:
        """Get the Authorization header for API requests.

        Raises:
            AuthenticationError: If no token has been set.
        """
        if not self._access_token:
            raise AuthenticationError("Not authenticated. Call login() first.")
        return {"Authorization": f"Bearer {self._access_token}"}


_auth = Auth()


def get_auth() -> Auth:
    """Return the process-wide Auth instance."""
    return _auth
