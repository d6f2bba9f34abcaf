"""Auth commands -- ``dsc login`` and ``dsc logout``.

``login`` exchanges account and password for a session token and stores it
keyed by the server URL; every later command against the same server
reuses it. ``logout`` removes the stored token.

Typical workflow::

    dsc login --user demo          # prompts for the password
    dsc search 'tag:invoice'       # uses the stored session
    dsc logout
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import typer

from dsc.client import api
from dsc.context import get_state
from dsc.exceptions import AuthError
from dsc.output import info, render, success, suggest


def login_command(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Account name, optionally 'collective/user'."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Password; prompted for when omitted."
    ),
    otp: Optional[str] = typer.Option(
        None, "--otp", help="One-time password when the account uses a second factor."
    ),
) -> None:
    """Log in and store the session for later commands.

    The session is written to the data directory (or ``session_path``) and
    bound to the server URL. Failing to store it is an error, since the
    next command would otherwise run unauthenticated.

    Example::

        dsc login --user demo --password test
    """
    state = get_state(ctx)
    if user is None:
        user = typer.prompt("User")
    if password is None:
        password = typer.prompt("Password", hide_input=True)

    with state.client() as client:
        result = api.login(client, user, password)
        if result.success and result.require_second_factor:
            if otp is None:
                otp = typer.prompt("Authentication code")
            result = api.second_factor(client, result.token or "", otp)

    if not result.success or not result.token:
        raise AuthError(f"Login failed: {result.message or 'no token received'}")

    expires_at = None
    if result.valid_ms > 0:
        expires_at = datetime.now(timezone.utc) + timedelta(milliseconds=result.valid_ms)
    state.store().save(state.config.docspell_url, result.token, expires_at)

    success(f"Logged in as {result.collective}/{result.user}.")
    render(
        {
            "collective": result.collective,
            "user": result.user,
            "message": result.message,
            "validMs": result.valid_ms,
        }
    )


def logout_command(ctx: typer.Context) -> None:
    """Remove the stored session for the configured server.

    Running it without a stored session is not an error.
    """
    state = get_state(ctx)
    store = state.store()
    had_session = store.load_session(state.config.docspell_url) is not None
    store.clear(state.config.docspell_url)
    if had_session:
        success(f"Logged out from {state.config.docspell_url}.")
    else:
        info(f"No stored session for {state.config.docspell_url}.")
        suggest("Log in with: dsc login")
