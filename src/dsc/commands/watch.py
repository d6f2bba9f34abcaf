"""Watch command -- upload files as they appear in directories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

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
    SOURCE_OPTION,
    TAG_OPTION,
    build_upload_meta,
    resolve_endpoint,
)
from dsc.context import get_state
from dsc.exceptions import InvalidUsageError, ServerError
from dsc.models import Direction
from dsc.output import info
from dsc.watch import DirectoryWatcher

logger = logging.getLogger(__name__)


def watch_command(
    ctx: typer.Context,
    directories: list[Path] = typer.Argument(..., help="Directories to watch."),
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="Watch subdirectories too."
    ),
    basic: Optional[str] = BASIC_OPTION,
    header: Optional[str] = HEADER_OPTION,
    integration: bool = INTEGRATION_OPTION,
    collective: Optional[str] = COLLECTIVE_OPTION,
    source: Optional[str] = SOURCE_OPTION,
    direction: Optional[Direction] = DIRECTION_OPTION,
    folder: Optional[str] = FOLDER_OPTION,
    allow_dupes: bool = ALLOW_DUPES_OPTION,
    tag: Optional[list[str]] = TAG_OPTION,
    file_filter: Optional[str] = FILE_FILTER_OPTION,
    language: Optional[str] = LANGUAGE_OPTION,
    matches: Optional[str] = MATCHES_OPTION,
    delete: bool = DELETE_OPTION,
) -> None:
    """Watch directories and upload new or changed files.

    A file is uploaded once it has not changed for ``watch.debounce_ms``;
    failed uploads are retried with exponential backoff. Stop with Ctrl-C.

    Example::

        dsc watch --recursive --matches '*.pdf' ~/scans
    """
    state = get_state(ctx)
    for directory in directories:
        if not directory.is_dir():
            raise InvalidUsageError(f"Not a directory: {directory}")
    selection, session = resolve_endpoint(state, basic, header, integration, collective, source)
    meta = build_upload_meta(False, direction, folder, allow_dupes, tag, file_filter, language)

    with state.client() as client:

        def upload_file(path: Path) -> None:
            result = api.upload(client, selection, [path], meta, session=session)
            if not result.success:
                raise ServerError(f"Upload rejected: {result.message}")
            logger.info("Uploaded %s: %s", path, result.message)
            if delete:
                path.unlink(missing_ok=True)
                logger.info("Deleted %s", path)

        watcher = DirectoryWatcher(
            directories,
            upload_file,
            state.config.watch,
            recursive=recursive,
            pattern=matches,
        )
        info("Watching for files, press Ctrl-C to stop.")
        watcher.run()
