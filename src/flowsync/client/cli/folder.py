"""Sync folder commands for the flowsync CLI.

Commands:
- default-folder: Print the platform default sync folder
- init-folder: Create the sync folder (and save it when given)
- mount: Map the sync folder to a drive letter (Windows)
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from flowsync.client.cli.config import get_sync_folder, update_config
from flowsync.client.host import HostError, create_sync_folder, mount_as_drive
from flowsync.core.config import default_sync_folder


@click.command("default-folder")
def default_folder() -> None:
    """Print the platform default sync folder."""
    click.echo(str(default_sync_folder()))


@click.command("init-folder")
@click.argument("path", required=False, type=click.Path(file_okay=False, path_type=Path))
def init_folder(path: Path | None) -> None:
    """Create the sync folder.

    When PATH is given it becomes the saved sync folder.
    """
    folder = path.expanduser().resolve() if path else get_sync_folder()
    try:
        create_sync_folder(folder)
    except HostError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if path:
        update_config(sync_folder=str(folder))
    click.echo(f"Folder created: {folder}")


@click.command()
@click.option("--drive", "-d", default="E", show_default=True, help="Drive letter.")
def mount(drive: str) -> None:
    """Map the sync folder to a drive letter (Windows only)."""
    try:
        click.echo(mount_as_drive(get_sync_folder(), drive))
    except HostError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
