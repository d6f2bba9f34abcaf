"""Typer application and CLI entry point for dsc.

This module builds the top-level Typer application, registers every
sub-command, and resolves the configuration once per invocation in
:func:`main_callback`.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, invokes the Typer app, and
maps :class:`~dsc.exceptions.DscError` to its exit code. Unexpected
exceptions are written to a crash log under the data directory.

See Also:
    :mod:`dsc.config`: Configuration resolution.
    :mod:`dsc.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from dsc import __version__
from dsc.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="dsc",
    help="Command line client for the Docspell document management system.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from dsc.commands.admin import admin_app  # noqa: E402
from dsc.commands.auth import login_command, logout_command  # noqa: E402
from dsc.commands.items import (  # noqa: E402
    download_command,
    item_app,
    item_view,
    search_command,
    search_summary_command,
)
from dsc.commands.signup import gen_invite_command, register_command  # noqa: E402
from dsc.commands.source import source_app  # noqa: E402
from dsc.commands.upload import (  # noqa: E402
    cleanup_command,
    file_exists_command,
    upload_command,
)
from dsc.commands.watch import watch_command  # noqa: E402

app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("search")(search_command)
app.command("search-summary")(search_summary_command)
app.command("download")(download_command)
app.command("view")(item_view)
app.command("upload")(upload_command)
app.command("file-exists")(file_exists_command)
app.command("cleanup")(cleanup_command)
app.command("watch")(watch_command)
app.command("register")(register_command)
app.command("gen-invite")(gen_invite_command)
app.add_typer(item_app, name="item", help="Inspect single items.")
app.add_typer(source_app, name="source", help="Manage upload sources.")
app.add_typer(admin_app, name="admin", help="Administrative tasks (needs the admin secret).")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"dsc {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ~/.config/dsc/config.toml)."
    ),
    docspell_url: Optional[str] = typer.Option(
        None, "--docspell-url", "-d", help="Base URL of the Docspell server."
    ),
    session: Optional[str] = typer.Option(
        None, "--session", help="Session token to use instead of the stored one."
    ),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Output format: json, lisp, csv, or tabular."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="More log output; repeat for more detail."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Resolves the configuration, initialises the global
    :class:`~dsc.output.OutputManager` and logging, and stores a
    :class:`~dsc.context.CliState` in ``ctx.obj``.

    Tests may pass a ``dict`` as ``obj`` holding ``session_store`` and
    ``transport`` entries; they are handed to the state unchanged.
    """
    from dsc.config import resolve_config
    from dsc.context import CliState
    from dsc.exceptions import InvalidUsageError
    from dsc.models import Format
    from dsc.output import OutputManager, configure_logging, set_output

    fmt: Optional[Format] = None
    if output_format is not None:
        try:
            fmt = Format(output_format.lower())
        except ValueError:
            choices = ", ".join(f.value for f in Format)
            raise InvalidUsageError(
                f"Unknown format '{output_format}', expected one of: {choices}"
            ) from None

    resolved = resolve_config(cli_config=config, cli_docspell_url=docspell_url, cli_format=fmt)

    set_output(
        OutputManager(
            format=resolved.default_format,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    configure_logging(verbose)

    overrides: dict[str, Any] = ctx.obj if isinstance(ctx.obj, dict) else {}
    ctx.obj = CliState(
        config=resolved,
        cli_session=session,
        session_store=overrides.get("session_store"),
        transport=overrides.get("transport"),
    )


@app.command("version")
def version_command(ctx: typer.Context) -> None:
    """Show the client version and the version of the Docspell server."""
    from dsc.client import api
    from dsc.context import get_state
    from dsc.output import render

    state = get_state(ctx)
    with state.client() as client:
        info = api.version(client)
    render(
        {
            "client": __version__,
            "server": info.version,
            "builtAt": info.built_at_string,
            "gitCommit": info.git_commit,
            "url": state.config.docspell_url,
        }
    )


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly.

    ``dsc watch`` replaces it with its own handler while it runs.
    """

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from dsc.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``dsc`` console script.

    Unhandled :class:`~dsc.exceptions.DscError` instances cause a clean exit
    with the error's ``exit_code``. All other exceptions produce a crash log
    and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app(standalone_mode=True)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from dsc.exceptions import DscError
        from dsc.output import error

        if isinstance(exc, DscError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
