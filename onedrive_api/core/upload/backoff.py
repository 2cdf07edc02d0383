"""Exponential backoff policy for chunk retries."""

from dataclasses import dataclass

from onedrive_api.core.const import (
    UPLOAD_BACKOFF_MULTIPLIER,
    UPLOAD_BASE_DELAY_SECONDS,
    UPLOAD_MAX_RETRIES,
)


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry ceiling and geometric delay schedule.

    Attributes:
        base_delay: Delay in seconds before the first retry.
        multiplier: Growth factor applied for each further retry.
        max_retries: Number of retries allowed for a single chunk.
    """

    base_delay: float = UPLOAD_BASE_DELAY_SECONDS
    multiplier: float = UPLOAD_BACKOFF_MULTIPLIER
    max_retries: int = UPLOAD_MAX_RETRIES

    def __post_init__(self) -> None:
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be non-negative, got {self.base_delay}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be at least 1, got {self.multiplier}")
        if self.max_retries < 0:
            raise ValueError(
                f"max_retries must be non-negative, got {self.max_retries}"
            )

    def delay(self, error_count: int) -> float:
        """Seconds to wait before retry number ``error_count`` (1-based)."""
        if error_count < 1:
            raise ValueError(f"error_count must be at least 1, got {error_count}")
        return self.base_delay * self.multiplier ** (error_count - 1)

    def exhausted(self, error_count: int) -> bool:
        """Whether ``error_count`` consecutive failures exceed the ceiling."""
        return error_count > self.max_retries
