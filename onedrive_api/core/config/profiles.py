"""Named client profiles stored as YAML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from onedrive_api.core.config.client_config import ClientConfig
from onedrive_api.core.config.helpers import parse_bytes
from onedrive_api.core.const import CONFIG_ENCODING
from onedrive_api.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"


class ProfileNotFound(ConfigError):
    """Raised when a requested profile cannot be found on disk."""


class ProfileManager:
    """Manage client profiles stored on disk."""

    def __init__(self, home_path: Path | None = None) -> None:
        """Initialise ProfileManager.

        Args:
            home_path: Directory holding ``.onedrive_api``; defaults to the
                user's home directory.
        """
        self._home_path = home_path or Path.home()

    @property
    def home_path(self) -> Path:
        return self._home_path

    def _profiles_dir(self) -> Path:
        return self._home_path / ".onedrive_api" / "profiles"

    def _get_profile_path(self, profile: str) -> Path:
        return self._profiles_dir() / f"{profile}.yaml"

    def list_profiles(self) -> list[str]:
        """List available profile names, without the ``.yaml`` suffix."""
        profiles_dir = self._profiles_dir()
        if not profiles_dir.exists():
            return []
        return sorted(
            path.stem
            for path in profiles_dir.iterdir()
            if path.is_file() and path.suffix == ".yaml"
        )

    def get_profile(self, profile: str | None = None) -> ClientConfig:
        """Load a profile configuration from disk.

        A missing default profile yields the default configuration.

        Args:
            profile: Name of the profile to load, None for the default one.

        Returns:
            Parsed client configuration for the profile.

        Raises:
            ProfileNotFound: If a named profile does not exist.
            ConfigError: If the profile content is invalid.
        """
        name = profile or DEFAULT_PROFILE
        profile_path = self._get_profile_path(name)
        try:
            with profile_path.open("r", encoding=CONFIG_ENCODING) as profile_file:
                profile_data: dict[str, Any] = yaml.safe_load(profile_file) or {}
        except FileNotFoundError as exc:
            if profile is None or profile == DEFAULT_PROFILE:
                return ClientConfig()
            raise ProfileNotFound(f"Profile {name!r} not found.") from exc

        if isinstance(profile_data.get("chunk_size"), str):
            try:
                profile_data["chunk_size"] = parse_bytes(profile_data["chunk_size"])
            except ValueError as exc:
                raise ConfigError(f"Profile {name!r}: {exc}") from exc

        try:
            return ClientConfig(**profile_data)
        except ValidationError as exc:
            raise ConfigError(f"Profile {name!r} is invalid: {exc}") from exc

    def save_profile(self, config: ClientConfig, profile: str | None = None) -> Path:
        """Write ``config`` to disk, replacing any existing profile.

        Returns:
            Path of the written profile file.
        """
        name = profile or DEFAULT_PROFILE
        profiles_dir = self._profiles_dir()
        profiles_dir.mkdir(parents=True, exist_ok=True)
        profile_path = self._get_profile_path(name)
        with profile_path.open("w", encoding=CONFIG_ENCODING) as profile_file:
            yaml.safe_dump(
                config.model_dump(exclude_none=True), profile_file, sort_keys=True
            )
        profile_path.chmod(0o600)
        logger.debug("Saved profile %s to %s", name, profile_path)
        return profile_path

    def update_profile(
        self, updates: dict[str, Any], profile: str | None = None
    ) -> ClientConfig:
        """Apply ``updates`` to a profile and save it.

        Fields set to None are removed from the stored profile.
        """
        current = self.get_profile(profile)
        try:
            updated = ClientConfig(**{**current.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid profile update: {exc}") from exc
        self.save_profile(updated, profile)
        return updated

    def delete_profile(self, profile: str) -> None:
        """Delete a profile from disk.

        Raises:
            ProfileNotFound: If the profile does not exist.
        """
        profile_path = self._get_profile_path(profile)
        if not profile_path.exists():
            raise ProfileNotFound(f"Profile {profile!r} not found.")
        profile_path.unlink()
