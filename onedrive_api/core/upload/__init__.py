"""Resumable large-file upload."""

from .backoff import BackoffPolicy
from .chunk_source import ChunkSource, ChunkWindow
from .resumable_upload import (
    ResumableUploadDriver,
    TransferState,
    UploadResult,
    UploadState,
    content_range,
    validate_chunk_size,
)
from .transport import AiohttpTransport, Transport

__all__ = [
    "AiohttpTransport",
    "BackoffPolicy",
    "ChunkSource",
    "ChunkWindow",
    "ResumableUploadDriver",
    "TransferState",
    "Transport",
    "UploadResult",
    "UploadState",
    "content_range",
    "validate_chunk_size",
]
