"""Sync commands for the flowsync CLI.

Commands:
- sync: Upload the sync folder, optionally watching it for changes
- upload: Upload a single file immediately
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from flowsync.client.cli.config import build_agent_config
from flowsync.client.cli.session import agent_session, resolve_team, run_async
from flowsync.client.host import HostError, create_sync_folder
from flowsync.client.sync import UploadOutcome


def _report(outcome: UploadOutcome) -> None:
    """Print the outcome of a queued upload."""
    if outcome.success:
        click.echo(f"  ↑ {outcome.relative_path}")
    else:
        click.echo(f"  ✗ {outcome.path}: {outcome.error}", err=True)


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep watching for changes after the initial sync.")
@click.option("--team", "-t", "team_id", help="Team to upload to (defaults to the saved team).")
@click.option(
    "--skip-initial", is_flag=True, help="Do not upload existing files before watching."
)
def sync(watch: bool, team_id: str | None, skip_initial: bool) -> None:
    """Upload the sync folder to the selected team.

    Existing files are queued first, then with --watch every created or
    modified file is uploaded until interrupted.
    """
    config = build_agent_config()
    try:
        create_sync_folder(config.sync_folder)
    except HostError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    async def _sync() -> tuple[int, int]:
        async with agent_session(config, on_outcome=_report) as agent:
            team = await resolve_team(agent, team_id)
            click.echo(f"Syncing {config.sync_folder} to team {team}")
            agent.start()

            if not skip_initial:
                result = await agent.initial_sync()
                click.echo(result.message)

            if watch:
                click.echo(agent.start_watching())
                click.echo("Press Ctrl+C to stop.")
                await asyncio.Event().wait()

            await agent.wait_idle()
            return agent.worker.completed_count, agent.worker.error_count

    try:
        uploaded, failed = run_async(_sync())
    except KeyboardInterrupt:
        click.echo("\nStopped watching")
        return
    click.echo(f"Done: {uploaded} uploaded, {failed} failed")


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--team", "-t", "team_id", help="Team to upload to (defaults to the saved team).")
def upload(file: Path, team_id: str | None) -> None:
    """Upload a single FILE from the sync folder immediately."""
    config = build_agent_config()

    async def _upload() -> UploadOutcome:
        async with agent_session(config) as agent:
            team = await resolve_team(agent, team_id)
            return await agent.upload_file(file.absolute(), team)

    outcome = run_async(_upload())
    click.echo(f"Uploaded: {outcome.relative_path} ({outcome.size} bytes)")
