"""Exception classes for the OneDrive client."""

from __future__ import annotations


class OneDriveError(Exception):
    """Base error for all client failures."""


class AuthenticationError(OneDriveError):
    """Raised when no access token is available for a request."""


class ConfigError(OneDriveError):
    """Raised when a configuration value or profile is invalid."""


class LocatorError(OneDriveError, ValueError):
    """Raised when an item locator cannot be turned into an API path."""


class APIError(OneDriveError):
    """Raised when the Graph API answers with a non-success status."""

    def __init__(
        self,
        status_code: int,
        reason: str,
        endpoint: str,
        detail: str | None = None,
    ):
        """Initialize APIError.

        Args:
            status_code: HTTP status code of the response.
            reason: HTTP reason phrase.
            endpoint: Fully composed URL that was requested.
            detail: Error message extracted from the response body, if any.
        """
        message = f"{status_code} ({reason}) API-ENDPOINT:{endpoint}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.endpoint = endpoint
        self.detail = detail


class UploadError(OneDriveError):
    """Base error for resumable uploads."""


class NotFoundError(UploadError, FileNotFoundError):
    """Raised when the upload source does not exist."""


class ShortFileError(UploadError):
    """Raised when the source ends before the declared upload size."""

    def __init__(self, offset: int, total_size: int):
        super().__init__(
            f"Source exhausted at byte {offset} of {total_size}; "
            "the file was truncated or changed during upload"
        )
        self.offset = offset
        self.total_size = total_size


class TooManyRetriesError(UploadError):
    """Raised when a chunk keeps failing with server errors."""

    def __init__(self, status: int, attempts: int, offset: int):
        super().__init__(
            f"Chunk at offset {offset} failed {attempts} times, "
            f"last status {status}"
        )
        self.status = status
        self.attempts = attempts
        self.offset = offset


class UnexpectedStatusError(UploadError):
    """Raised for any status the upload protocol does not allow."""

    def __init__(self, status: int):
        super().__init__(f"Unexpected status code: {status}")
        self.status = status


class UploadCancelledError(UploadError):
    """Raised when an upload is aborted by its caller or by a timeout."""


class TransportError(UploadError):
    """Raised when a chunk request fails below the HTTP layer."""
