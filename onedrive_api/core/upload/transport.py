"""HTTP transport used to PUT chunks to an upload session URL."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Protocol

import aiohttp

from onedrive_api.core.const import UPLOAD_REQUEST_TIMEOUT_SECONDS
from onedrive_api.core.exceptions import TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can send one PUT and report the status code."""

    async def put(self, url: str, body: bytes, headers: Mapping[str, str]) -> int:
        """Send ``body`` to ``url`` and return the response status."""
        ...


class AiohttpTransport:
    """Transport backed by an ``aiohttp.ClientSession``.

    Upload session URLs are pre-authorized, so no Authorization header is
    attached. When no session is given one is created lazily and closed by
    :meth:`close` (or by leaving the ``async with`` block).
    """

    def __init__(
        self,
        client_session: aiohttp.ClientSession | None = None,
        request_timeout: float | None = UPLOAD_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the transport.

        Args:
            client_session: Session to send requests with. Not closed by us.
            request_timeout: Per-request timeout in seconds, None for none.
        """
        self._session = client_session
        self._owns_session = client_session is None
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def put(self, url: str, body: bytes, headers: Mapping[str, str]) -> int:
        """PUT one chunk.

        Args:
            url: Upload session URL.
            body: Chunk bytes.
            headers: Range framing headers.

        Returns:
            The HTTP status code of the response.

        Raises:
            TransportError: If the request fails without an HTTP response.
        """
        try:
            async with self._get_session().put(
                url, data=body, headers=dict(headers), timeout=self._timeout
            ) as response:
                # Drain the body so the connection can be reused
                await response.read()
                return response.status
        except aiohttp.ClientError as e:
            raise TransportError(f"Chunk request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError("Chunk request timed out") from e

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AiohttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
