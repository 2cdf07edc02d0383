"""Resumable upload of large files to a OneDrive upload session.

The driver pulls fixed-size windows from a :class:`ChunkSource` and PUTs them
one at a time to the session URL with ``Content-Range`` framing. The service
answers 202 while it expects more data and 200/201 once the whole file has
been received. Server errors (5xx) retry the same window with exponential
backoff; any other status ends the upload.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from onedrive_api.core.const import (
    ACCEPTED_STATUS_CODE,
    CHUNK_SIZE,
    COMPLETED_STATUS_CODES,
    UPLOAD_BLOCK_SIZE,
)
from onedrive_api.core.exceptions import (
    ConfigError,
    ShortFileError,
    TooManyRetriesError,
    UnexpectedStatusError,
    UploadCancelledError,
    UploadError,
)
from onedrive_api.core.models import UploadSession

from .backoff import BackoffPolicy
from .chunk_source import ChunkSource, ChunkWindow
from .transport import Transport

logger = logging.getLogger(__name__)


class UploadState(Enum):
    """Phases of a single upload call."""

    READING = "reading"
    SENDING = "sending"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TransferState:
    """Progress of one upload call.

    ``position`` only moves forward, by exactly the length of an accepted
    window. ``error_count`` counts consecutive server errors for the window
    at ``position``.
    """

    position: int = 0
    error_count: int = 0


@dataclass(frozen=True)
class UploadResult:
    """Summary of a completed upload."""

    total_size: int
    requests_sent: int
    retries: int


def content_range(window: ChunkWindow, total_size: int) -> str:
    """Format the ``Content-Range`` header for a window.

    An empty window at offset 0 yields ``bytes 0--1/0``, the framing used
    for zero-byte files.
    """
    return f"bytes {window.offset}-{window.last_byte}/{total_size}"


def validate_chunk_size(chunk_size: int) -> int:
    """Check that ``chunk_size`` is a positive multiple of the upload block."""
    if chunk_size <= 0 or chunk_size % UPLOAD_BLOCK_SIZE != 0:
        raise ConfigError(
            f"chunk_size must be a positive multiple of {UPLOAD_BLOCK_SIZE} bytes, "
            f"got {chunk_size}"
        )
    return chunk_size


class ResumableUploadDriver:
    """Drive a file to completion against an upload session URL.

    A driver keeps no per-upload state between calls, so one instance (and
    one transport) can serve several independent uploads concurrently.
    """

    def __init__(
        self,
        transport: Transport,
        chunk_size: int = CHUNK_SIZE,
        backoff: BackoffPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        progress_callback: Callable[[int], None] | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            transport: Sends each chunk and reports the status code.
            chunk_size: Bytes per request; a multiple of 320 KiB.
            backoff: Retry policy for server errors.
            sleep: Coroutine function used to wait between retries.
            progress_callback: Called with the byte count of every window
                the service acknowledges.
        """
        self._transport = transport
        self._chunk_size = validate_chunk_size(chunk_size)
        self._backoff = backoff or BackoffPolicy()
        self._sleep = sleep
        self._progress_callback = progress_callback

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    async def upload(
        self,
        session: UploadSession,
        source: ChunkSource | str | os.PathLike,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        """Upload ``source`` to ``session``.

        Args:
            session: Upload session holding the URL and total size.
            source: Chunk source, or a path that is opened for the call.
            cancel_event: Setting this event aborts the upload.
            timeout: Seconds allowed for the whole call.

        Returns:
            Summary of the completed upload.

        Raises:
            NotFoundError: If ``source`` is a path that does not exist.
            ShortFileError: If the source ends before ``session.total_size``.
            TooManyRetriesError: If a chunk keeps failing with 5xx.
            UnexpectedStatusError: For any status outside the protocol.
            UploadCancelledError: If cancelled or timed out.
            TransportError: If a request fails without a response.
        """
        if isinstance(source, ChunkSource):
            return await self._run_with_cancellation(
                session, source, cancel_event, timeout
            )
        with ChunkSource.open(source) as chunk_source:
            return await self._run_with_cancellation(
                session, chunk_source, cancel_event, timeout
            )

    async def _run_with_cancellation(
        self,
        session: UploadSession,
        source: ChunkSource,
        cancel_event: asyncio.Event | None,
        timeout: float | None,
    ) -> UploadResult:
        if cancel_event is None and timeout is None:
            return await self._run(session, source)

        upload_task = asyncio.ensure_future(self._run(session, source))
        waiters: set[asyncio.Future] = {upload_task}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if not upload_task.done():
                upload_task.cancel()
                # The source must stay open until the request or backoff unwinds
                await asyncio.gather(upload_task, return_exceptions=True)

        if upload_task in done:
            return upload_task.result()

        if cancel_event is not None and cancel_event.is_set():
            reason = "Upload cancelled"
        else:
            reason = f"Upload timed out after {timeout} seconds"
        logger.warning("%s: %s", reason, _short_url(session.upload_url))
        raise UploadCancelledError(reason)

    async def _run(self, session: UploadSession, source: ChunkSource) -> UploadResult:
        total_size = session.total_size
        if source.size != total_size:
            logger.warning(
                "Source size %d differs from session size %d",
                source.size,
                total_size,
            )
        logger.info(
            "Starting upload of %d bytes to %s",
            total_size,
            _short_url(session.upload_url),
        )

        transfer = TransferState()
        phase = UploadState.READING
        window: ChunkWindow | None = None
        failure: UploadError | None = None
        last_status = 0
        requests_sent = 0
        retries = 0

        while phase not in (UploadState.COMPLETED, UploadState.FAILED):
            if phase is UploadState.READING:
                expected = min(self._chunk_size, total_size - transfer.position)
                window = source.window(transfer.position, expected)
                # A short read before the declared end means the file shrank
                if window.length < expected:
                    failure = ShortFileError(transfer.position, total_size)
                    phase = UploadState.FAILED
                else:
                    phase = UploadState.SENDING

            elif phase is UploadState.SENDING:
                last_status = await self._send(session, window)
                requests_sent += 1
                is_final_range = window.offset + window.length == total_size

                if last_status == ACCEPTED_STATUS_CODE and not is_final_range:
                    transfer.position += window.length
                    transfer.error_count = 0
                    self._report_progress(window.length)
                    phase = UploadState.READING
                elif last_status in COMPLETED_STATUS_CODES:
                    self._report_progress(window.length)
                    phase = UploadState.COMPLETED
                elif 500 <= last_status < 600:
                    transfer.error_count += 1
                    phase = UploadState.RETRYING
                else:
                    # A 202 on the final range means the service never
                    # signalled completion
                    failure = UnexpectedStatusError(last_status)
                    phase = UploadState.FAILED

            elif phase is UploadState.RETRYING:
                if self._backoff.exhausted(transfer.error_count):
                    failure = TooManyRetriesError(
                        last_status, transfer.error_count, transfer.position
                    )
                    phase = UploadState.FAILED
                    continue
                delay = self._backoff.delay(transfer.error_count)
                logger.warning(
                    "Chunk %s failed with HTTP %d (attempt %d/%d), retrying in %.1fs",
                    content_range(window, total_size),
                    last_status,
                    transfer.error_count,
                    self._backoff.max_retries,
                    delay,
                )
                await self._sleep(delay)
                retries += 1
                phase = UploadState.SENDING

        if phase is UploadState.FAILED:
            logger.error(
                "Upload to %s failed at offset %d/%d: %s",
                _short_url(session.upload_url),
                transfer.position,
                total_size,
                failure,
            )
            raise failure

        logger.info(
            "Upload complete: %d bytes in %d requests (%d retries)",
            total_size,
            requests_sent,
            retries,
        )
        return UploadResult(
            total_size=total_size, requests_sent=requests_sent, retries=retries
        )

    async def _send(self, session: UploadSession, window: ChunkWindow) -> int:
        headers = {
            "Content-Length": str(window.length),
            "Content-Range": content_range(window, session.total_size),
        }
        logger.debug("PUT chunk: range=%s", headers["Content-Range"])
        status = await self._transport.put(session.upload_url, window.data, headers)
        logger.debug("PUT chunk response: status=%d", status)
        return status

    def _report_progress(self, num_bytes: int) -> None:
        if self._progress_callback is not None:
            self._progress_callback(num_bytes)


def _short_url(url: str) -> str:
    return url[:80] + "..." if len(url) > 80 else url
