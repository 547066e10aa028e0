"""Shared helpers for commands that talk to the service.

This module provides:
- run_async: Run a command coroutine and report flowsync errors
- choose_team: Pick the destination from the teams payload
- agent_session: Logged-in SyncOrchestrator built from the saved settings
- resolve_team: Determine and persist the destination to upload to
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from collections.abc import AsyncIterator, Callable, Coroutine
from typing import TYPE_CHECKING, Any, TypeVar

import click

from flowsync.client.api import FlowenClient
from flowsync.client.cli.config import load_config, load_password, update_config
from flowsync.client.errors import AuthError, FlowSyncError, ParseError
from flowsync.client.sync import SyncOrchestrator

if TYPE_CHECKING:
    from flowsync.client.sync import UploadOutcome
    from flowsync.core.config import AgentConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning flowsync errors into a CLI error exit."""
    try:
        return asyncio.run(coro)
    except FlowSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def choose_team(payload: str, saved_team_id: str | None = None) -> str | None:
    """Pick a destination from the teams payload.

    The saved destination wins if it is still listed, otherwise the first
    listed team is chosen.

    Args:
        payload: Raw JSON returned by the teams endpoint.
        saved_team_id: Previously selected team, if any.

    Returns:
        The chosen team id, or None if no team is listed.

    Raises:
        ParseError: If the payload is not JSON.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse teams: {e}") from e

    teams = data.get("teams") if isinstance(data, dict) else data
    if not isinstance(teams, list):
        return None

    team_ids = [
        str(team["id"]) for team in teams if isinstance(team, dict) and "id" in team
    ]
    if saved_team_id and saved_team_id in team_ids:
        return saved_team_id
    return team_ids[0] if team_ids else None


@contextlib.asynccontextmanager
async def agent_session(
    config: AgentConfig,
    on_outcome: Callable[[UploadOutcome], None] | None = None,
) -> AsyncIterator[SyncOrchestrator]:
    """Log in with the saved credentials and yield a ready orchestrator.

    The worker is stopped and the HTTP client closed on exit.

    Raises:
        AuthError: If no credentials are saved or the login is rejected.
    """
    email = load_config().get("email")
    password = load_password(email) if email else None
    if not email or not password:
        raise AuthError("Not logged in. Run 'flowsync login' first.")

    async with FlowenClient(config) as client:
        sync = SyncOrchestrator(config, client, on_outcome=on_outcome)
        await sync.login(email, password)
        try:
            yield sync
        finally:
            await sync.shutdown()


async def resolve_team(sync: SyncOrchestrator, team_id: str | None = None) -> str:
    """Select the destination on the orchestrator and persist it.

    Args:
        sync: Logged-in orchestrator.
        team_id: Explicit team, skips the lookup when given.

    Returns:
        The selected team id.

    Raises:
        FlowSyncError: If no team is available.
    """
    if not team_id:
        saved = load_config().get("selected_team_id")
        team_id = choose_team(await sync.list_teams(), saved)
    if not team_id:
        raise FlowSyncError("No team available. Ask to be added to a team first.")

    sync.select_destination(team_id)
    update_config(selected_team_id=team_id)
    return team_id
