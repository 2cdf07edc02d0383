"""Pydantic model for OneDrive client configuration."""

from pydantic import BaseModel, field_validator

from onedrive_api.core.const import (
    CHUNK_SIZE,
    DEFAULT_DRIVE,
    GRAPH_URL,
    UPLOAD_BLOCK_SIZE,
)


class ClientConfig(BaseModel):
    """Configuration options for a OneDrive client.

    Attributes:
        access_token: bearer token attached to every API request.
        drive: drive prefix for item paths, e.g. ``/me/drive``.
        max_duration_ms: request timeout in milliseconds, 0 or less for none.
        graph_url: base URL of the Graph API.
        chunk_size: bytes per resumable upload request.
    """

    access_token: str | None = None
    drive: str = DEFAULT_DRIVE
    max_duration_ms: int = 0
    graph_url: str = GRAPH_URL
    chunk_size: int = CHUNK_SIZE

    @field_validator("chunk_size")
    @classmethod
    def _check_chunk_size(cls, value: int) -> int:
        if value <= 0 or value % UPLOAD_BLOCK_SIZE != 0:
            raise ValueError(
                f"chunk_size must be a positive multiple of {UPLOAD_BLOCK_SIZE}"
            )
        return value
