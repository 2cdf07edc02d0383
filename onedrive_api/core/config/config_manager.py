"""Resolve client configuration from profile, environment, and CLI overrides."""

from __future__ import annotations

import os
from typing import Any

from pydantic import ValidationError

from onedrive_api.core.config.client_config import ClientConfig
from onedrive_api.core.config.helpers import parse_bytes
from onedrive_api.core.config.profiles import ProfileManager
from onedrive_api.core.exceptions import ConfigError

_ENV_MAP: dict[str, str] = {
    "access_token": "ONEDRIVE_ACCESS_TOKEN",
    "drive": "ONEDRIVE_DRIVE",
    "max_duration_ms": "ONEDRIVE_MAX_DURATION_MS",
    "graph_url": "ONEDRIVE_GRAPH_URL",
    "chunk_size": "ONEDRIVE_UPLOAD_CHUNK_SIZE",
}


class ConfigManager:
    """Build effective client configuration from profile, env, and CLI overrides."""

    def __init__(
        self, profile_manager: ProfileManager | None = None, profile: str | None = None
    ) -> None:
        """Initialise ConfigManager.

        Args:
            profile_manager: ProfileManager instance.
            profile: Name of the profile to load as the base configuration.
        """
        self.profile_manager = profile_manager or ProfileManager()
        self.profile = profile

    def _read_env_overrides(self) -> dict[str, Any]:
        """Read configuration overrides from environment variables.

        Returns:
            A dictionary of configuration field names to override values.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.
        """
        overrides: dict[str, Any] = {}
        for field_name, env_var_name in _ENV_MAP.items():
            env_value = os.getenv(env_var_name)
            if env_value is None:
                continue
            try:
                if field_name == "chunk_size":
                    overrides[field_name] = parse_bytes(env_value)
                elif field_name == "max_duration_ms":
                    overrides[field_name] = int(env_value)
                else:
                    overrides[field_name] = env_value
            except ValueError as exc:
                raise ConfigError(f"Invalid value for {env_var_name}: {exc}") from exc
        return overrides

    def resolve_effective_config(
        self, cli_config: dict[str, Any] | None = None
    ) -> ClientConfig:
        """Resolve the effective client configuration for this run.

        Args:
            cli_config: Optional CLI-provided overrides; None values are ignored.

        Returns:
            The resolved ``ClientConfig``.
        """
        base_config = self.profile_manager.get_profile(self.profile)
        merged = base_config.model_dump()
        merged.update(self._read_env_overrides())
        if cli_config:
            merged.update(
                {key: value for key, value in cli_config.items() if value is not None}
            )
        try:
            return ClientConfig(**merged)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
