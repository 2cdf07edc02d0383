"""Pydantic models for Graph drive resources.

Only the commonly used properties are declared; everything else the service
returns is kept as extra attributes so no data is lost.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GraphModel(BaseModel):
    """Base model mapping camelCase JSON onto snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class Identity(GraphModel):
    display_name: str | None = None
    id: str | None = None


class IdentitySet(GraphModel):
    application: Identity | None = None
    device: Identity | None = None
    group: Identity | None = None
    user: Identity | None = None


class Hashes(GraphModel):
    crc32_hash: str | None = None
    sha1_hash: str | None = None
    quick_xor_hash: str | None = None


class FileFacet(GraphModel):
    mime_type: str | None = None
    hashes: Hashes | None = None
    processing_metadata: bool | None = None


class FolderFacet(GraphModel):
    child_count: int = 0


class FileSystemInfo(GraphModel):
    created_date_time: datetime | None = None
    last_accessed_date_time: datetime | None = None
    last_modified_date_time: datetime | None = None


class ItemReference(GraphModel):
    drive_id: str | None = None
    drive_type: str | None = None
    id: str | None = None
    name: str | None = None
    path: str | None = None
    share_id: str | None = None
    site_id: str | None = None


class DriveItem(GraphModel):
    """A file, folder or other item stored in a drive."""

    id: str
    name: str | None = None
    size: int | None = None
    e_tag: str | None = None
    web_url: str | None = None
    created_date_time: datetime | None = None
    last_modified_date_time: datetime | None = None
    created_by: IdentitySet | None = None
    last_modified_by: IdentitySet | None = None
    parent_reference: ItemReference | None = None
    file: FileFacet | None = None
    folder: FolderFacet | None = None
    file_system_info: FileSystemInfo | None = None
    download_url: str | None = Field(
        default=None, alias="@microsoft.graph.downloadUrl"
    )
    deleted: dict | None = None

    @property
    def is_folder(self) -> bool:
        return self.folder is not None


class DriveItemPage(GraphModel):
    """One page of a collection response (children, delta, search)."""

    value: list[DriveItem] = Field(default_factory=list)
    next_link: str | None = Field(default=None, alias="@odata.nextLink")
    delta_link: str | None = Field(default=None, alias="@odata.deltaLink")


class Thumbnail(GraphModel):
    width: int | None = None
    height: int | None = None
    source_item_id: str | None = None
    url: str | None = None


class ThumbnailSet(GraphModel):
    id: str | None = None
    large: Thumbnail | None = None
    medium: Thumbnail | None = None
    small: Thumbnail | None = None
    source: Thumbnail | None = None


class PreviewResult(GraphModel):
    get_url: str | None = None
    post_parameters: str | None = None
    post_url: str | None = None


class UploadSession(BaseModel):
    """A server-issued, pre-authorized endpoint for one large upload.

    Attributes:
        upload_url: URL that accepts the range-framed chunk requests.
        total_size: Size in bytes of the complete upload.
        expiration_date_time: When the service discards the session.
    """

    model_config = ConfigDict(frozen=True)

    upload_url: str
    total_size: int = Field(ge=0)
    expiration_date_time: datetime | None = None
