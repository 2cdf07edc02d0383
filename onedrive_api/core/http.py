"""Authenticated requests against the Graph drive API."""

from __future__ import annotations

import logging
from typing import Any

import requests

from onedrive_api.core.auth import Auth
from onedrive_api.core.exceptions import APIError
from onedrive_api.core.locator import compose_url

logger = logging.getLogger(__name__)


def extract_error_detail(response: requests.Response) -> str | None:
    """Extract error detail from a Graph error response.

    Graph errors look like ``{"error": {"code": ..., "message": ...}}``.
    """
    try:
        payload: Any = response.json()
    except ValueError:
        return response.text or None

    if not isinstance(payload, dict):
        return str(payload)

    error = payload.get("error", payload)
    if not isinstance(error, dict):
        return str(error)

    code = error.get("code")
    message = error.get("message")
    if code and message:
        return f"{code}: {message}"
    return message or code


class DriveHttp:
    """Compose drive URLs and send authenticated requests.

    Args:
        auth: Token holder used for the Authorization header.
        graph_url: Base URL of the Graph API.
        drive: Drive prefix, e.g. ``/me/drive``.
        max_duration_ms: Timeout per request; 0 or less disables it.
        session: Optional ``requests.Session`` to reuse connections.
    """

    def __init__(
        self,
        auth: Auth,
        graph_url: str,
        drive: str,
        max_duration_ms: int = 0,
        session: requests.Session | None = None,
    ) -> None:
        self.auth = auth
        self.graph_url = graph_url
        self.drive = drive
        self.max_duration_ms = max_duration_ms
        self._session = session or requests.Session()

    @property
    def timeout(self) -> float | None:
        if self.max_duration_ms <= 0:
            return None
        return self.max_duration_ms / 1000

    def endpoint(self, url: str | list[str]) -> str:
        """Build the absolute URL for ``url``.

        Absolute URLs (such as ``@odata.nextLink``) are returned unchanged;
        anything else is appended to the drive URL.
        """
        parts = url if isinstance(url, list) else [url]
        if len(parts) == 1 and parts[0].startswith(("http://", "https://")):
            return parts[0]
        return compose_url(self.graph_url, self.drive, *parts)

    def fetch_data(
        self,
        url: str | list[str],
        method: str = "GET",
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Send a request and return the response if it succeeded.

        Raises:
            APIError: If the response status is not 2xx or 3xx.
            AuthenticationError: If no token is set.
            requests.RequestException: On network failures and timeouts.
        """
        api_endpoint = self.endpoint(url)
        request_headers = {**(headers or {}), **self.auth.get_headers()}
        logger.debug("%s %s", method, api_endpoint)
        response = self._session.request(
            method,
            api_endpoint,
            headers=request_headers,
            timeout=self.timeout,
            **kwargs,
        )
        if response.ok or response.is_redirect:
            return response
        detail = extract_error_detail(response)
        logger.debug(
            "%s %s failed: status=%d detail=%s",
            method,
            api_endpoint,
            response.status_code,
            detail,
        )
        raise APIError(response.status_code, response.reason, api_endpoint, detail)

    def fetch_json(
        self, url: str | list[str], method: str = "GET", **kwargs: Any
    ) -> Any:
        """Send a request and decode the JSON body (None for empty bodies)."""
        headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
        response = self.fetch_data(url, method, headers=headers, **kwargs)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def fetch_url(
        self, url: str | list[str], method: str = "GET", **kwargs: Any
    ) -> str:
        """Return the URL a request redirects to, without following it.

        Content downloads answer with a redirect to a short-lived,
        pre-authenticated URL.
        """
        response = self.fetch_data(url, method, allow_redirects=False, **kwargs)
        if response.is_redirect:
            return response.headers["Location"]
        return response.url

    def fetch_ok(
        self, url: str | list[str], method: str = "GET", **kwargs: Any
    ) -> bool:
        """Send a request and report whether the API accepted it."""
        try:
            self.fetch_data(url, method, **kwargs)
        except APIError as e:
            logger.warning("Request failed: %s", e)
            return False
        return True
