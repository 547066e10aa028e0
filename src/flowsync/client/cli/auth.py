"""Account commands for the flowsync CLI.

Commands:
- login: Log in and save the credentials
- logout: Forget the saved password and team
- teams: Print the teams visible to the account
- select-team: Save the team uploads go to
"""

from __future__ import annotations

import click

from flowsync.client.api import FlowenClient
from flowsync.client.auth import TokenManager
from flowsync.client.cli.config import (
    build_agent_config,
    delete_password,
    load_config,
    save_password,
    update_config,
)
from flowsync.client.cli.session import agent_session, choose_team, run_async


@click.command()
@click.option("--email", "-e", help="Account email.")
@click.option("--api-base", help="Service base URL (saved for later commands).")
@click.option("--save/--no-save", default=True, help="Save the password in the OS keyring.")
def login(email: str | None, api_base: str | None, save: bool) -> None:
    """Log in to the service.

    On success the email (and, unless --no-save, the password) are saved so
    that later commands log in automatically.
    """
    config = load_config()
    if not email:
        email = click.prompt("Email", default=config.get("email") or None)
    password = click.prompt("Password", hide_input=True)

    if api_base:
        update_config(api_base=api_base.rstrip("/"))
    agent_config = build_agent_config()

    async def _login() -> str | None:
        async with FlowenClient(agent_config) as client:
            tokens = TokenManager(client, refresh_window=agent_config.refresh_window)
            await tokens.login(email, password)
            teams = await client.list_teams(await tokens.ensure_valid())
            return choose_team(teams, config.get("selected_team_id"))

    team_id = run_async(_login())

    update_config(email=email, selected_team_id=team_id)
    click.echo("Logged in successfully")
    if save and not save_password(email, password):
        click.echo(
            "Warning: no usable keyring, password not saved. "
            "Other commands will not log in automatically.",
            err=True,
        )
    if team_id:
        click.echo(f"Selected team: {team_id}")
    else:
        click.echo("No team available for this account.")


@click.command()
def logout() -> None:
    """Forget the saved password and selected team."""
    email = load_config().get("email")
    if email:
        delete_password(email)
    update_config(selected_team_id=None)
    click.echo("Logged out")


@click.command()
def teams() -> None:
    """Print the teams visible to the account (raw JSON)."""
    agent_config = build_agent_config()

    async def _teams() -> str:
        async with agent_session(agent_config) as sync:
            return await sync.list_teams()

    click.echo(run_async(_teams()))


@click.command("select-team")
@click.argument("team_id")
def select_team(team_id: str) -> None:
    """Save the team that uploads go to."""
    update_config(selected_team_id=team_id)
    click.echo(f"Selected team: {team_id}")
