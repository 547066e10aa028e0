"""Command-line interface for flowsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Log in and save the credentials
- logout: Forget the saved password and team
- teams: Print the teams visible to the account
- select-team: Save the team uploads go to
- sync: Upload the sync folder, optionally watching for changes
- upload: Upload a single file immediately
- default-folder: Print the platform default sync folder
- init-folder: Create the sync folder
- mount: Map the sync folder to a drive letter (Windows)
"""

from __future__ import annotations

import logging

import click

from flowsync.client.cli.auth import login, logout, select_team, teams
from flowsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_sync_folder,
    load_config,
    save_config,
)
from flowsync.client.cli.folder import default_folder, init_folder, mount
from flowsync.client.cli.sync import sync, upload

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool) -> None:
    """Send flowsync logs to stderr."""
    flowsync_logger = logging.getLogger("flowsync")
    for handler in flowsync_logger.handlers[:]:
        flowsync_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    flowsync_logger.addHandler(handler)
    flowsync_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.version_option(package_name="flowsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """flowsync - upload a local folder to Flowen."""
    setup_logging(verbose)


# Account commands
cli.add_command(login)
cli.add_command(logout)
cli.add_command(teams)
cli.add_command(select_team)

# Sync commands
cli.add_command(sync)
cli.add_command(upload)

# Folder commands
cli.add_command(default_folder)
cli.add_command(init_folder)
cli.add_command(mount)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_sync_folder",
    "load_config",
    "save_config",
]
