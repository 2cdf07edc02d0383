"""OneDrive client exposing the drive item operations of the Graph API.

See https://learn.microsoft.com/onedrive/developer/rest-api/ for the
underlying endpoints.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, BinaryIO

import requests

from onedrive_api.core.auth import Auth, get_auth
from onedrive_api.core.config.client_config import ClientConfig
from onedrive_api.core.const import (
    CHUNK_SIZE,
    DEFAULT_DRIVE,
    GRAPH_URL,
    SIMPLE_UPLOAD_MAX_BYTES,
)
from onedrive_api.core.exceptions import LocatorError, NotFoundError
from onedrive_api.core.http import DriveHttp
from onedrive_api.core.locator import (
    ItemLocator,
    ODataAppendix,
    id_wrap,
    locator_wrap,
    simple_odata,
)
from onedrive_api.core.models import (
    DriveItem,
    DriveItemPage,
    PreviewResult,
    Thumbnail,
    ThumbnailSet,
    UploadSession,
)
from onedrive_api.core.upload import (
    AiohttpTransport,
    BackoffPolicy,
    ChunkSource,
    ResumableUploadDriver,
    UploadResult,
)

logger = logging.getLogger(__name__)

DRIVE_TYPES = ("me", "drives", "groups", "sites", "users", "approot")


def child_locator(parent: ItemLocator, filename: str) -> str:
    """Address a (possibly not yet existing) file inside a parent folder.

    Args:
        parent: Raw path segment, ``{"id": folder_id}`` or
            ``{"path": "folder/"}``. Folder paths must end with ``/``.
        filename: Name of the file inside the folder.

    Raises:
        LocatorError: If the parent cannot be addressed.
    """
    if isinstance(parent, str):
        return parent
    if isinstance(parent, Mapping):
        if "id" in parent:
            return f"{id_wrap(parent['id'])}:/{filename}:"
        if "path" in parent:
            path = parent["path"]
            if path and not path.endswith("/"):
                raise LocatorError("A parent folder path must end with '/'")
            return f"/root:/{path}{filename}:"
    raise LocatorError("locator must be a string or an ItemLocator")


class OneDrive:
    """Client for one drive.

    Args:
        access_token: Bearer token; when omitted the shared ``get_auth()``
            instance is used.
        drive: Drive prefix, see :meth:`set_drive`.
        max_duration_ms: Per-request timeout, 0 or less for none.
        graph_url: Base URL of the Graph API.
        chunk_size: Bytes per resumable upload request.
        session: Optional ``requests.Session`` for REST calls.
    """

    def __init__(
        self,
        access_token: str | None = None,
        drive: str = DEFAULT_DRIVE,
        max_duration_ms: int = 0,
        graph_url: str = GRAPH_URL,
        chunk_size: int = CHUNK_SIZE,
        session: requests.Session | None = None,
    ) -> None:
        auth = Auth(access_token) if access_token else get_auth()
        self._http = DriveHttp(auth, graph_url, drive, max_duration_ms, session)
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, config: ClientConfig) -> "OneDrive":
        """Build a client from a resolved :class:`ClientConfig`."""
        return cls(
            access_token=config.access_token,
            drive=config.drive,
            max_duration_ms=config.max_duration_ms,
            graph_url=config.graph_url,
            chunk_size=config.chunk_size,
        )

    @property
    def drive(self) -> str:
        return self._http.drive

    @property
    def auth(self) -> Auth:
        return self._http.auth

    def set_drive(self, drive_type: str, drive_id: str | None = None) -> None:
        """Select the drive that item locators are resolved against.

        Args:
            drive_type: One of ``me``, ``approot``, ``drives``, ``groups``,
                ``sites`` or ``users``.
            drive_id: Required for every type except ``me`` and ``approot``.

        Raises:
            ValueError: If the type is unknown or the id is missing.
        """
        if drive_type not in DRIVE_TYPES:
            raise ValueError(f"drive_type must be one of {', '.join(DRIVE_TYPES)}")
        if drive_type == "me":
            self._http.drive = "/me/drive"
        elif drive_type == "approot":
            self._http.drive = "/drive/special/approot"
        elif not drive_id:
            raise ValueError(f"drive_id is required for {drive_type}")
        elif drive_type == "drives":
            self._http.drive = f"/drives/{drive_id}"
        else:
            self._http.drive = f"/{drive_type}/{drive_id}/drives"

    def set_max_duration(self, max_duration_ms: int) -> None:
        """Set the request timeout in milliseconds; 0 or less disables it."""
        self._http.max_duration_ms = max_duration_ms

    def set_access_token(self, access_token: str) -> None:
        """Replace the token used by this client."""
        self._http.auth = Auth(access_token)

    def checkin(self, locator: ItemLocator, comment: str) -> bool:
        """Check in a checked out item, publishing its version to others."""
        return self._http.fetch_ok(
            [locator_wrap(locator), "/checkin"], "POST", json={"comment": comment}
        )

    def checkout(self, locator: ItemLocator) -> bool:
        """Check out an item so changes stay private until check-in."""
        return self._http.fetch_ok([locator_wrap(locator), "/checkout"], "POST")

    def copy(
        self,
        locator: ItemLocator,
        parent_reference: dict[str, str] | None = None,
        name: str | None = None,
    ) -> str | None:
        """Start an asynchronous copy of an item.

        Args:
            locator: Item to copy.
            parent_reference: ``{"driveId": ..., "id": ...}`` of the target
                folder; defaults to the current parent.
            name: New name for the copy.

        Returns:
            The URL to monitor the copy operation, when the service sends one.
        """
        body: dict[str, Any] = {}
        if parent_reference is not None:
            body["parentReference"] = parent_reference
        if name is not None:
            body["name"] = name
        response = self._http.fetch_data(
            [locator_wrap(locator), "/copy"], "POST", json=body
        )
        return response.headers.get("Location")

    def mkdir(self, name: str, parent_id: str = "root") -> DriveItem:
        """Create a folder, renaming it if the name is taken."""
        data = self._http.fetch_json(
            [id_wrap(parent_id), "/children"],
            "POST",
            json={
                "name": name,
                "folder": {},
                "@microsoft.graph.conflictBehavior": "rename",
            },
        )
        return DriveItem.model_validate(data)

    def delete(self, locator: ItemLocator) -> bool:
        """Delete an item (it moves to the recycle bin)."""
        return self._http.fetch_ok(locator_wrap(locator), "DELETE")

    def download(
        self,
        locator: ItemLocator,
        byte_range: tuple[int, int] | None = None,
        appendix: ODataAppendix = None,
    ) -> str:
        """Get a short-lived, pre-authenticated download URL for a file.

        Args:
            locator: File to download.
            byte_range: Inclusive ``(start, end)`` range for partial downloads.
            appendix: Extra query, e.g. ``{"format": "pdf"}`` for conversion.
        """
        headers = {}
        if byte_range is not None:
            headers["Range"] = f"bytes={byte_range[0]}-{byte_range[1]}"
        return self._http.fetch_url(
            [locator_wrap(locator), "/content" + simple_odata(appendix)],
            headers=headers,
        )

    def item(self, locator: ItemLocator, appendix: ODataAppendix = None) -> DriveItem:
        """Retrieve the metadata of an item.

        Example::

            drive.item({"path": "docs/report.pdf"}, {"select": ["name", "size"]})
        """
        data = self._http.fetch_json(locator_wrap(locator) + simple_odata(appendix))
        return DriveItem.model_validate(data)

    def children(
        self, locator: ItemLocator, appendix: ODataAppendix = None
    ) -> DriveItemPage:
        """List the children of a folder (first page)."""
        data = self._http.fetch_json(
            [locator_wrap(locator), "/children" + simple_odata(appendix)]
        )
        return DriveItemPage.model_validate(data)

    def iter_children(self, locator: ItemLocator, appendix: ODataAppendix = None):
        """Yield every child of a folder, following ``@odata.nextLink``."""
        page = self.children(locator, appendix)
        while True:
            yield from page.value
            if not page.next_link:
                return
            page = self.next_page(page.next_link)

    def next_page(self, link: str) -> DriveItemPage:
        """Fetch the page behind a ``@odata.nextLink``."""
        return DriveItemPage.model_validate(self._http.fetch_json(link))

    def move(
        self, locator: ItemLocator, new_parent_id: str, new_name: str | None = None
    ) -> DriveItem:
        """Move an item to another folder, optionally renaming it."""
        body: dict[str, Any] = {"parentReference": {"id": new_parent_id}}
        if new_name is not None:
            body["name"] = new_name
        data = self._http.fetch_json([locator_wrap(locator)], "PATCH", json=body)
        return DriveItem.model_validate(data)

    def preview(
        self,
        locator: ItemLocator,
        viewer: str | None = None,
        chromeless: bool | None = None,
        allow_edit: bool | None = None,
        page: int | str | None = None,
        zoom: float | None = None,
    ) -> PreviewResult:
        """Get short-lived embeddable URLs for an item."""
        options = {
            "viewer": viewer,
            "chromeless": chromeless,
            "allowEdit": allow_edit,
            "page": page,
            "zoom": zoom,
        }
        data = self._http.fetch_json(
            [locator_wrap(locator), "/preview"],
            "POST",
            json={key: value for key, value in options.items() if value is not None},
        )
        return PreviewResult.model_validate(data)

    def search(self, locator: ItemLocator, search_text: str) -> DriveItemPage:
        """Search the hierarchy below an item."""
        # OData string literals escape quotes by doubling them
        query = search_text.replace("'", "''")
        data = self._http.fetch_json([locator_wrap(locator), f"/search(q='{query}')"])
        return DriveItemPage.model_validate(data)

    def delta(
        self, locator: ItemLocator, appendix: ODataAppendix = None
    ) -> DriveItemPage:
        """Track changes below an item.

        Pass ``{"token": "latest"}`` to start from now. Follow
        ``next_link`` with :meth:`next_page` until ``delta_link`` is set.
        """
        data = self._http.fetch_json(
            [locator_wrap(locator), "/delta" + simple_odata(appendix)]
        )
        return DriveItemPage.model_validate(data)

    def thumbnails(
        self,
        locator: ItemLocator,
        thumb_id: str | None = None,
        size: str | None = None,
        appendix: ODataAppendix = None,
    ) -> list[ThumbnailSet] | Thumbnail | str:
        """Retrieve thumbnails of an item.

        Without ``thumb_id`` and ``size`` all thumbnail sets are returned.
        With both, a single thumbnail; passing ``appendix="/content"`` returns
        the URL of the thumbnail image instead.
        """
        base = locator_wrap(locator)
        if thumb_id and size:
            odata = simple_odata(appendix)
            parts = [base, f"/thumbnails/{thumb_id}", f"/{size}" + odata]
            if odata == "/content":
                return self._http.fetch_url(parts)
            return Thumbnail.model_validate(self._http.fetch_json(parts))
        data = self._http.fetch_json([base, "/thumbnails" + simple_odata(appendix)])
        return [ThumbnailSet.model_validate(entry) for entry in data.get("value", [])]

    def rename(self, locator: ItemLocator, name: str) -> DriveItem:
        data = self._http.fetch_json(
            [locator_wrap(locator)], "PATCH", json={"name": name}
        )
        return DriveItem.model_validate(data)

    def upload_simple(
        self,
        locator: ItemLocator,
        file: str | os.PathLike | bytes | BinaryIO,
        filename: str | None = None,
    ) -> DriveItem:
        """Upload a small file (less than 4MB) in a single request.

        Args:
            locator: The item to replace when ``filename`` is None, otherwise
                the parent folder (``{"path": "folder/"}`` or ``{"id": ...}``).
            file: Local path, raw bytes or a binary stream.
            filename: Name of the new file; ``""`` uses the local file name.

        Raises:
            NotFoundError: If ``file`` is a path that does not exist.
        """
        if isinstance(file, (str, os.PathLike)):
            file_path = Path(file)
            if not file_path.is_file():
                raise NotFoundError(f"File not found: {file_path}")
            if file_path.stat().st_size > SIMPLE_UPLOAD_MAX_BYTES:
                logger.warning(
                    "%s is larger than 4MB, the service may reject a simple upload",
                    file_path,
                )
            if filename == "":
                filename = file_path.name
            with file_path.open("rb") as body:
                return self._put_content(locator, body, filename)
        return self._put_content(locator, file, filename)

    def _put_content(
        self, locator: ItemLocator, body: bytes | BinaryIO, filename: str | None
    ) -> DriveItem:
        if filename is None:
            target = locator_wrap(locator)
        else:
            if not filename:
                raise ValueError("filename is required when uploading raw data")
            target = child_locator(locator, filename)
        data = self._http.fetch_json([target, "/content"], "PUT", data=body)
        return DriveItem.model_validate(data)

    def create_upload_session(
        self, locator: ItemLocator, total_size: int
    ) -> UploadSession:
        """Create a resumable upload session for the item at ``locator``.

        Args:
            locator: Target file, e.g. ``{"path": "docs/big.iso"}``.
            total_size: Size in bytes of the file that will be uploaded.

        Returns:
            The session holding the pre-authorized upload URL.
        """
        data = self._http.fetch_json(
            [locator_wrap(locator), "/createUploadSession"], "POST", json={}
        )
        session = UploadSession(
            upload_url=data["uploadUrl"],
            total_size=total_size,
            expiration_date_time=data.get("expirationDateTime"),
        )
        logger.info(
            "Created upload session for %s (%d bytes, expires %s)",
            locator_wrap(locator),
            total_size,
            session.expiration_date_time,
        )
        return session

    async def upload_large_async(
        self,
        locator: ItemLocator,
        filepath: str | os.PathLike,
        filename: str | None = None,
        *,
        backoff: BackoffPolicy | None = None,
        progress_callback: Callable[[int], None] | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        """Upload a file of any size through a resumable upload session.

        Args:
            locator: Target item, or its parent folder when ``filename`` is
                given (``""`` uses the local file name).
            filepath: Local file to upload.
            filename: Name of the new file inside the parent folder.
            backoff: Retry policy for server errors.
            progress_callback: Called with each acknowledged byte count.
            cancel_event: Setting this event aborts the upload.
            timeout: Seconds allowed for the whole upload.

        Raises:
            NotFoundError: If ``filepath`` does not exist.
            UploadError: If the upload does not complete.
            APIError: If the session cannot be created.
        """
        with ChunkSource.open(filepath) as source:
            if filename is not None:
                locator = child_locator(locator, filename or Path(filepath).name)
            session = await asyncio.to_thread(
                self.create_upload_session, locator, source.size
            )
            async with AiohttpTransport() as transport:
                driver = ResumableUploadDriver(
                    transport,
                    chunk_size=self.chunk_size,
                    backoff=backoff,
                    progress_callback=progress_callback,
                )
                return await driver.upload(
                    session, source, cancel_event=cancel_event, timeout=timeout
                )

    def upload_large(
        self,
        locator: ItemLocator,
        filepath: str | os.PathLike,
        filename: str | None = None,
        **kwargs: Any,
    ) -> UploadResult:
        """Blocking variant of :meth:`upload_large_async`."""
        return asyncio.run(
            self.upload_large_async(locator, filepath, filename, **kwargs)
        )

    def custom(
        self,
        locator: ItemLocator,
        command: str,
        appendix: ODataAppendix = None,
        body: Any = None,
        method: str | None = None,
    ) -> Any:
        """Send a request this client has no dedicated method for.

        Example::

            drive.custom({"id": item_id}, "versions")
            drive.custom({"id": item_id}, "versions", f"/{version}/restoreVersion",
                         method="POST")
        """
        kwargs = {"json": body} if body is not None else {}
        return self._http.fetch_json(
            [locator_wrap(locator), f"/{command}" + simple_odata(appendix)],
            method or ("POST" if body is not None else "GET"),
            **kwargs,
        )
