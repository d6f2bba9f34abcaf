"""Signup commands -- ``dsc register`` and ``dsc gen-invite``.

Both use open endpoints and never send a session.
"""

from __future__ import annotations

from typing import Optional

import typer

from dsc.client import api
from dsc.context import get_state
from dsc.exceptions import DscError
from dsc.output import render, success


def register_command(
    ctx: typer.Context,
    collective: str = typer.Option(..., "--collective", "-c", help="Name of the new collective."),
    login: str = typer.Option(..., "--login", help="Login of the new user."),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Password; prompted for when omitted."
    ),
    invite: Optional[str] = typer.Option(
        None, "--invite", help="Invitation key, when the server requires one."
    ),
) -> None:
    """Register a new collective and user."""
    state = get_state(ctx)
    if password is None:
        password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)
    with state.client() as client:
        result = api.register(client, collective, login, password, invite)
    if not result.success:
        raise DscError(f"Registration failed: {result.message}")
    success(f"Registered {collective}/{login}.")
    render(result.model_dump())


def gen_invite_command(
    ctx: typer.Context,
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="The server's invite password; prompted for when omitted."
    ),
) -> None:
    """Generate an invitation key for registering."""
    state = get_state(ctx)
    if password is None:
        password = typer.prompt("Invite password", hide_input=True)
    with state.client() as client:
        result = api.new_invite(client, password)
    if not result.get("success", False):
        raise DscError(f"Generating an invite failed: {result.get('message', '')}")
    render(result)
