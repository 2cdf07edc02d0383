"""Display helpers for drive items in the CLI."""

from datetime import datetime

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from onedrive_api.core.models import DriveItem

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(num_bytes: int | None) -> str:
    """Format a byte count for humans, e.g. ``1.5 MB``."""
    if num_bytes is None:
        return "-"
    size = float(num_bytes)
    for unit in _UNITS:
        if size < 1024 or unit == _UNITS[-1]:
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{num_bytes} B"


def format_time(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%Y-%m-%d %H:%M")


def item_kind(item: DriveItem) -> Text:
    if item.is_folder:
        return Text("folder", style="blue bold")
    return Text("file")


def print_item_table(console: Console, title: str, items: list[DriveItem]) -> None:
    """Render drive items as a table."""
    table = Table(
        title=title,
        box=box.MINIMAL,
        show_header=True,
        header_style="bold",
        expand=False,
    )
    table.add_column("Name", min_width=8, max_width=40, overflow="fold")
    table.add_column("Type", min_width=6, no_wrap=True)
    table.add_column("Size", justify="right", no_wrap=True)
    table.add_column("Modified", min_width=16, no_wrap=True)
    table.add_column("ID", overflow="fold")

    for item in items:
        table.add_row(
            item.name or "",
            item_kind(item),
            format_size(item.size),
            format_time(item.last_modified_date_time),
            item.id,
        )
    console.print(table)


def print_item_details(console: Console, item: DriveItem) -> None:
    """Render the metadata of one item in a panel."""
    grid = Table.grid(padding=(0, 1), expand=False)
    grid.add_column(style="cyan bold")
    grid.add_column()
    parent = item.parent_reference.path if item.parent_reference else None
    rows: list[tuple[str, str | Text]] = [
        ("ID", item.id),
        ("Type", item_kind(item)),
        ("Size", format_size(item.size)),
        ("Parent", parent or "N/A"),
        ("Created", format_time(item.created_date_time)),
        ("Modified", format_time(item.last_modified_date_time)),
        ("Web URL", item.web_url or "N/A"),
    ]
    if item.file is not None and item.file.mime_type:
        rows.append(("MIME type", item.file.mime_type))
    if item.folder is not None:
        rows.append(("Children", str(item.folder.child_count)))
    for label, value in rows:
        grid.add_row(label, value)
    console.print(Panel(grid, title=item.name or item.id, box=box.SQUARE))
