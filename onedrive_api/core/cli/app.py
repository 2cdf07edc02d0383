"""OneDrive CLI entry point."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from tqdm import tqdm

from onedrive_api import __version__
from onedrive_api.core.auth import get_auth
from onedrive_api.core.cli.item_display import print_item_details, print_item_table
from onedrive_api.core.config.config_manager import ConfigManager
from onedrive_api.core.config.profiles import ProfileManager
from onedrive_api.core.const import SIMPLE_UPLOAD_MAX_BYTES
from onedrive_api.core.drive import OneDrive, child_locator
from onedrive_api.core.exceptions import AuthenticationError, OneDriveError

app = typer.Typer(add_completion=False, help="OneDrive command line interface.")
console = Console()


def _version_callback(value: bool) -> bool:
    if value:
        typer.echo(__version__)
        raise typer.Exit()
    return value


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show the onedrive-api version and exit.",
        callback=_version_callback,
        is_eager=True,
        is_flag=True,
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Configuration profile to use."
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Logging level (DEBUG, INFO, ...)."
    ),
) -> None:
    """Handle global CLI options."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"profile": profile}


def _remote_locator(path: str) -> dict[str, str]:
    return {"path": path.strip("/")}


def _client(ctx: typer.Context) -> OneDrive:
    config = ConfigManager(
        ProfileManager(), ctx.obj["profile"]
    ).resolve_effective_config()
    if not config.access_token:
        raise AuthenticationError(
            "No access token configured. Run 'onedrive-api login --token ...' "
            "or set ONEDRIVE_ACCESS_TOKEN."
        )
    return OneDrive.from_config(config)


def _fail(error: Exception) -> None:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1)


@app.command("login")
def login(
    ctx: typer.Context,
    token: str = typer.Option(..., "--token", help="Access token to store."),
) -> None:
    """Store an access token in the selected profile."""
    try:
        get_auth().login(token, ctx.obj["profile"], save=True)
    except OneDriveError as e:
        _fail(e)
    typer.echo(f"Token saved to profile {ctx.obj['profile'] or 'default'}.")


@app.command("logout")
def logout(ctx: typer.Context) -> None:
    """Remove the stored access token from the selected profile."""
    try:
        get_auth().logout(ctx.obj["profile"], forget=True)
    except OneDriveError as e:
        _fail(e)
    typer.echo("Logged out.")


@app.command("ls")
def list_children(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Folder path relative to the drive root."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
) -> None:
    """List the contents of a folder."""
    try:
        items = []
        for entry in _client(ctx).iter_children(_remote_locator(path)):
            items.append(entry)
            if limit is not None and len(items) >= limit:
                break
    except OneDriveError as e:
        _fail(e)
    if not items:
        typer.echo(f"No items found under /{path.strip('/')}.")
        raise typer.Exit(code=0)
    print_item_table(console, f"/{path.strip('/')}", items)


@app.command("info")
def info(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Item path relative to the drive root."),
) -> None:
    """Show the metadata of an item."""
    try:
        item = _client(ctx).item(_remote_locator(path))
    except OneDriveError as e:
        _fail(e)
    print_item_details(console, item)


@app.command("mkdir")
def mkdir(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the new folder."),
    parent_id: str = typer.Option("root", "--parent-id", help="Parent folder id."),
) -> None:
    """Create a folder."""
    try:
        item = _client(ctx).mkdir(name, parent_id)
    except OneDriveError as e:
        _fail(e)
    typer.echo(f"Created folder {item.name} ({item.id}).")


@app.command("rm")
def remove(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Item path relative to the drive root."),
) -> None:
    """Delete an item (moves it to the recycle bin)."""
    try:
        deleted = _client(ctx).delete(_remote_locator(path))
    except OneDriveError as e:
        _fail(e)
    if not deleted:
        _fail(OneDriveError(f"Could not delete {path}"))
    typer.echo(f"Deleted {path}.")


@app.command("mv")
def move(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Item path relative to the drive root."),
    to_id: str = typer.Option(..., "--to-id", help="Id of the target folder."),
    name: Optional[str] = typer.Option(None, "--name", help="New item name."),
) -> None:
    """Move an item into another folder."""
    try:
        item = _client(ctx).move(_remote_locator(path), to_id, name)
    except OneDriveError as e:
        _fail(e)
    typer.echo(f"Moved to {item.name} ({item.id}).")


@app.command("upload")
def upload(
    ctx: typer.Context,
    local_path: Path = typer.Argument(..., help="Local file to upload."),
    remote_folder: str = typer.Argument("", help="Destination folder path."),
    name: Optional[str] = typer.Option(None, "--name", help="Remote file name."),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds allowed for a large upload."
    ),
) -> None:
    """Upload a file, using a resumable session for files over 4MB."""
    if not local_path.is_file():
        _fail(OneDriveError(f"File not found: {local_path}"))
    folder = remote_folder.strip("/")
    parent = {"path": f"{folder}/" if folder else ""}
    filename = name or local_path.name
    size = local_path.stat().st_size

    try:
        client = _client(ctx)
        if size <= SIMPLE_UPLOAD_MAX_BYTES:
            item = client.upload_simple(parent, local_path, filename)
            typer.echo(f"Uploaded {item.name} ({item.id}).")
            return
        with tqdm(
            total=size, unit="B", unit_scale=True, desc=filename, leave=False
        ) as progress:
            result = client.upload_large(
                child_locator(parent, filename),
                local_path,
                progress_callback=progress.update,
                timeout=timeout,
            )
    except OneDriveError as e:
        _fail(e)
    typer.echo(
        f"Uploaded {filename}: {result.total_size} bytes in "
        f"{result.requests_sent} requests ({result.retries} retries)."
    )


def main() -> None:
    """CLI entrypoint for the onedrive-api command."""
    app()


if __name__ == "__main__":
    main()
