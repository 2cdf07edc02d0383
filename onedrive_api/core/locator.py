"""Helpers for addressing drive items and building OData query strings."""

from collections.abc import Mapping, Sequence
from typing import Union
from urllib.parse import urlencode

from onedrive_api.core.exceptions import LocatorError

# A raw API path segment, {"path": "docs/a.txt"} or {"id": "01ABC"}
ItemLocator = Union[str, Mapping[str, str]]
ODataAppendix = Union[str, Mapping[str, Union[str, Sequence[str]]], None]


def path_wrap(path: str) -> str:
    """Address an item by its path relative to the drive root."""
    if path in ("", "/"):
        return "/root"
    return f"/root:/{path}:"


def id_wrap(item_id: str) -> str:
    """Address an item by its unique id."""
    return f"/items/{item_id}"


def locator_wrap(locator: ItemLocator) -> str:
    """Turn an item locator into the API path segment for that item.

    Args:
        locator: A raw path segment, or a mapping with ``path`` or ``id``.

    Returns:
        The path segment to append to the drive URL.

    Raises:
        LocatorError: If the locator has neither form.
    """
    if isinstance(locator, str):
        return locator
    if isinstance(locator, Mapping):
        if "path" in locator:
            return path_wrap(locator["path"])
        if "id" in locator:
            return id_wrap(locator["id"])
    raise LocatorError(
        "Invalid item locator, must be a string or {'path': ...} or {'id': ...}"
    )


def simple_odata(appendix: ODataAppendix) -> str:
    """Build a query string (or extra path suffix) from ``appendix``.

    Strings are used verbatim, which also allows appending path elements
    such as ``/content``. Mappings become ``?key=value`` pairs, with list
    values joined by commas (``{"select": ["id", "name"]}``).
    """
    if not appendix:
        return ""
    if isinstance(appendix, str):
        return appendix
    params = {
        key: value if isinstance(value, str) else ",".join(value)
        for key, value in appendix.items()
    }
    return "?" + urlencode(params)


def compose_url(base_url: str, *parts: str | None) -> str:
    """Join URL parts, inserting ``/`` where a part does not start with one.

    Empty and None parts are skipped.
    """
    url = base_url
    for part in parts:
        if not part:
            continue
        url += part if part.startswith("/") else "/" + part
    return url
