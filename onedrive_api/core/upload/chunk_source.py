"""Sequential fixed-size reads over a local file or binary stream.

The chunk source knows nothing about HTTP. It exposes the absolute size of
the data up front and hands out windows addressed by absolute byte offset,
which the resumable upload driver turns into range-framed requests.
"""

import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from onedrive_api.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkWindow:
    """A contiguous byte range of the source.

    Attributes:
        offset: Absolute offset of the first byte.
        data: The bytes of the window.
    """

    offset: int
    data: bytes

    @property
    def length(self) -> int:
        """Number of bytes in the window."""
        return len(self.data)

    @property
    def last_byte(self) -> int:
        """Inclusive offset of the last byte (``offset - 1`` when empty)."""
        return self.offset + len(self.data) - 1


class ChunkSource:
    """Read a byte source in windows addressed by absolute offset.

    Use :meth:`open` for a filesystem path or :meth:`from_fileobj` for any
    seekable binary stream. Reads are synchronous and issued one at a time.
    """

    def __init__(self, fileobj: BinaryIO, size: int, owns_handle: bool = False):
        """Initialize the chunk source.

        Args:
            fileobj: Seekable binary stream to read from.
            size: Number of bytes the source is expected to hold.
            owns_handle: Whether ``close`` should close ``fileobj``.
        """
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self._fileobj = fileobj
        self._size = size
        self._owns_handle = owns_handle

    @classmethod
    def open(cls, path: str | os.PathLike) -> "ChunkSource":
        """Open a local file as a chunk source.

        Args:
            path: Path of the file to read.

        Returns:
            A chunk source that owns the opened handle.

        Raises:
            NotFoundError: If the path does not exist or is not a file.
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise NotFoundError(f"File not found: {file_path}")
        size = file_path.stat().st_size
        logger.debug("Opened chunk source %s (%d bytes)", file_path, size)
        return cls(file_path.open("rb"), size, owns_handle=True)

    @classmethod
    def from_fileobj(cls, fileobj: BinaryIO, size: int | None = None) -> "ChunkSource":
        """Wrap an already open binary stream.

        Args:
            fileobj: Seekable binary stream. Its position is not preserved.
            size: Declared size; defaults to the length of the stream.

        Returns:
            A chunk source that leaves closing the stream to the caller.
        """
        if size is None:
            size = fileobj.seek(0, io.SEEK_END)
        return cls(fileobj, size)

    @property
    def size(self) -> int:
        """Declared size of the source in bytes."""
        return self._size

    def read_at(self, offset: int, max_length: int) -> bytes:
        """Read up to ``max_length`` bytes starting at ``offset``.

        Reads are repeated until ``max_length`` bytes are collected or the
        underlying data ends, so a short result only happens at end of data.
        Nothing is read past the declared size.

        Args:
            offset: Absolute offset to read from.
            max_length: Maximum number of bytes to return.

        Returns:
            The bytes read; empty when ``offset >= size``.
        """
        if offset < 0 or max_length < 0:
            raise ValueError("offset and max_length must be non-negative")
        wanted = min(max_length, self._size - offset)
        if wanted <= 0:
            return b""

        self._fileobj.seek(offset)
        parts: list[bytes] = []
        remaining = wanted
        while remaining > 0:
            part = self._fileobj.read(remaining)
            if not part:
                break
            parts.append(part)
            remaining -= len(part)
        return b"".join(parts)

    def window(self, offset: int, max_length: int) -> ChunkWindow:
        """Read a :class:`ChunkWindow` at ``offset``."""
        return ChunkWindow(offset=offset, data=self.read_at(offset, max_length))

    def close(self) -> None:
        """Close the underlying handle if this source opened it."""
        if self._owns_handle:
            self._fileobj.close()

    def __enter__(self) -> "ChunkSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
