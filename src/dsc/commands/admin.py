"""Admin commands -- maintenance tasks guarded by the server's admin secret.

The secret comes from ``--admin-secret``, ``DSC_ADMIN_SECRET``, or
``admin_secret`` in the config file, and is sent in the
``Docspell-Admin-Secret`` header instead of a session.
"""

from __future__ import annotations

from typing import Optional

import typer

from dsc.auth.request_builder import ADMIN_SECRET_HEADER
from dsc.client import api
from dsc.context import get_state
from dsc.exceptions import DscError, InvalidUsageError
from dsc.models import BasicResult, HeaderAuth
from dsc.output import render, success

admin_app = typer.Typer(no_args_is_help=True)


@admin_app.callback()
def admin_callback(
    ctx: typer.Context,
    admin_secret: Optional[str] = typer.Option(
        None, "--admin-secret", help="Admin secret configured on the server."
    ),
) -> None:
    """Administrative tasks."""
    ctx.meta["admin_secret"] = admin_secret


def _admin_credential(ctx: typer.Context) -> HeaderAuth:
    state = get_state(ctx)
    secret = ctx.meta.get("admin_secret") or state.config.admin_secret
    if not secret:
        raise InvalidUsageError(
            "An admin secret is required (--admin-secret or DSC_ADMIN_SECRET)."
        )
    return HeaderAuth(name=ADMIN_SECRET_HEADER, value=secret)


def _report(result: BasicResult) -> None:
    if not result.success:
        raise DscError(f"Request failed: {result.message}")
    success(result.message or "Done.")
    render(result.model_dump())


@admin_app.command("reset-password")
def reset_password(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account", help="Account as 'collective/user'."),
) -> None:
    """Reset a user's password; the new password is printed."""
    credential = _admin_credential(ctx)
    state = get_state(ctx)
    with state.client() as client:
        result = api.admin_reset_password(client, credential, account)
    if not result.get("success", False):
        raise DscError(f"Resetting the password failed: {result.get('message', '')}")
    render(result)


@admin_app.command("recreate-index")
def recreate_index(ctx: typer.Context) -> None:
    """Drop and rebuild the full-text index."""
    credential = _admin_credential(ctx)
    state = get_state(ctx)
    with state.client() as client:
        _report(api.admin_recreate_index(client, credential))


@admin_app.command("generate-previews")
def generate_previews(ctx: typer.Context) -> None:
    """Regenerate preview images for all attachments."""
    credential = _admin_credential(ctx)
    state = get_state(ctx)
    with state.client() as client:
        _report(api.admin_generate_previews(client, credential))


@admin_app.command("convert-all-pdfs")
def convert_all_pdfs(ctx: typer.Context) -> None:
    """Convert all PDF attachments that were not converted yet."""
    credential = _admin_credential(ctx)
    state = get_state(ctx)
    with state.client() as client:
        _report(api.admin_convert_all_pdfs(client, credential))
