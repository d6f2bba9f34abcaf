"""Upload commands -- ``dsc upload``, ``dsc file-exists`` and ``dsc cleanup``.

All accept the endpoint options (``--integration``/``--collective``,
``--basic``/``--header``, ``--source``). Option combinations are validated
before any file is read or any request is sent.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from dsc.client import api
from dsc.commands.common import (
    ALLOW_DUPES_OPTION,
    BASIC_OPTION,
    COLLECTIVE_OPTION,
    DELETE_OPTION,
    DIRECTION_OPTION,
    FILE_FILTER_OPTION,
    FOLDER_OPTION,
    HEADER_OPTION,
    INTEGRATION_OPTION,
    LANGUAGE_OPTION,
    MATCHES_OPTION,
    SINGLE_ITEM_OPTION,
    SOURCE_OPTION,
    TAG_OPTION,
    build_upload_meta,
    resolve_endpoint,
)
from dsc.context import get_state
from dsc.exceptions import DscError, InvalidUsageError
from dsc.models import Direction
from dsc.output import info, render, success, warning
from dsc.upload import (
    check_upload_options,
    collect_files,
    plan_upload,
    run_cleanup,
    run_upload,
)


def upload_command(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Files (or directories with --traverse)."),
    basic: Optional[str] = BASIC_OPTION,
    header: Optional[str] = HEADER_OPTION,
    integration: bool = INTEGRATION_OPTION,
    collective: Optional[str] = COLLECTIVE_OPTION,
    source: Optional[str] = SOURCE_OPTION,
    single_item: bool = SINGLE_ITEM_OPTION,
    direction: Optional[Direction] = DIRECTION_OPTION,
    folder: Optional[str] = FOLDER_OPTION,
    allow_dupes: bool = ALLOW_DUPES_OPTION,
    tag: Optional[list[str]] = TAG_OPTION,
    file_filter: Optional[str] = FILE_FILTER_OPTION,
    language: Optional[str] = LANGUAGE_OPTION,
    traverse: bool = typer.Option(
        False, "--traverse", help="Upload all files below the given directories."
    ),
    matches: Optional[str] = MATCHES_OPTION,
    delete: bool = DELETE_OPTION,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the requests instead of sending them."
    ),
) -> None:
    """Upload files to Docspell.

    By default every file becomes its own item; ``--single-item`` sends all
    files in one request.

    Examples::

        dsc upload scan.pdf
        dsc upload --traverse --matches '*.pdf' ~/inbox
        dsc upload -i -c family --header 'Docspell-Integration:secret' bill.pdf
    """
    state = get_state(ctx)
    selection, session = resolve_endpoint(state, basic, header, integration, collective, source)
    meta = build_upload_meta(
        single_item, direction, folder, allow_dupes, tag, file_filter, language
    )
    check_upload_options(meta, traverse)
    collected = collect_files(files, traverse=traverse, pattern=matches)
    batches = plan_upload(collected, meta, traverse)
    if not batches:
        info("No files to upload.")
        return

    with state.client(dry_run=dry_run) as client:
        rows = run_upload(
            client, selection, batches, meta, session=session, delete=delete and not dry_run
        )

    failed = [r for r in rows if not r["success"]]
    if failed:
        warning(f"{len(failed)} of {len(rows)} upload(s) were not accepted.")
    else:
        success(f"Uploaded {len(rows)} item(s).")
    render(rows, ["files", "success", "message"])
    if failed:
        raise DscError("Some uploads failed.")


def file_exists_command(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Files to check."),
    basic: Optional[str] = BASIC_OPTION,
    header: Optional[str] = HEADER_OPTION,
    integration: bool = INTEGRATION_OPTION,
    collective: Optional[str] = COLLECTIVE_OPTION,
    source: Optional[str] = SOURCE_OPTION,
) -> None:
    """Check by checksum whether files are already stored in Docspell."""
    state = get_state(ctx)
    selection, session = resolve_endpoint(state, basic, header, integration, collective, source)
    paths = collect_files(files)

    rows: list[dict[str, Any]] = []
    with state.client() as client:
        for path in paths:
            result = api.check_file(client, selection, path, session=session)
            rows.append(
                {
                    "file": str(path),
                    "exists": result.exists,
                    "items": ", ".join(i.get("id", "") for i in result.items),
                }
            )
    render(rows, ["file", "exists", "items"])


def cleanup_command(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Files (or directories with --traverse)."),
    basic: Optional[str] = BASIC_OPTION,
    header: Optional[str] = HEADER_OPTION,
    integration: bool = INTEGRATION_OPTION,
    collective: Optional[str] = COLLECTIVE_OPTION,
    source: Optional[str] = SOURCE_OPTION,
    traverse: bool = typer.Option(
        False, "--traverse", help="Check all files below the given directories."
    ),
    matches: Optional[str] = MATCHES_OPTION,
    move_to: Optional[Path] = typer.Option(
        None, "--move", help="Move files already in Docspell into this directory."
    ),
    delete: bool = typer.Option(
        False, "--delete", help="Delete files already in Docspell."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Only report what would be moved or deleted."
    ),
) -> None:
    """Move or delete local files that Docspell already has.

    Files are matched by checksum. With ``--move`` the directory structure
    below each given directory is kept.

    Example::

        dsc cleanup --traverse --move ~/archive ~/inbox
    """
    if (move_to is None) == (not delete):
        raise InvalidUsageError("Use exactly one of --move or --delete.")
    state = get_state(ctx)
    selection, session = resolve_endpoint(state, basic, header, integration, collective, source)
    paths = collect_files(files, traverse=traverse, pattern=matches)
    if not paths:
        info("No files to check.")
        return

    with state.client() as client:
        rows = run_cleanup(
            client,
            selection,
            paths,
            files,
            session=session,
            move_to=move_to,
            delete=delete,
            dry_run=dry_run,
        )
    handled = sum(1 for r in rows if r["action"] != "kept")
    prefix = "[dry-run] " if dry_run else ""
    success(f"{prefix}{handled} of {len(rows)} file(s) already in Docspell.")
    render(rows, ["file", "action", "target"])
