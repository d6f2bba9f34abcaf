"""Upload batch policy and execution.

:func:`plan_upload` decides how many items the server should create:

* by default one item per file, i.e. one request per file;
* with ``--single-item`` a single request carrying every file;
* ``--single-item`` together with ``--traverse`` is rejected.

Duplicate detection stays on the server; ``skip_duplicates`` is only
forwarded in the upload meta.

:func:`run_cleanup` is the reverse check: files the server already knows
are moved away or deleted locally.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from dsc.client import api
from dsc.client.sync_client import DocspellClient
from dsc.exceptions import InvalidUsageError
from dsc.models import EndpointSelection, SessionToken, UploadMeta

logger = logging.getLogger(__name__)


class UploadBatch(BaseModel):
    """Files sent together in one item-creation request."""

    files: list[Path]


def matches_pattern(path: Path, pattern: Optional[str]) -> bool:
    """Whether *path*'s file name matches the glob *pattern* (always true without one)."""
    return pattern is None or fnmatch.fnmatch(path.name, pattern)


def collect_files(
    paths: Iterable[Path],
    traverse: bool = False,
    pattern: Optional[str] = None,
) -> list[Path]:
    """Expand the command-line paths into the list of files to upload.

    Directories are only accepted with *traverse*, in which case every file
    below them is included in sorted order.

    Raises:
        InvalidUsageError: For a missing path or a directory without
            *traverse*.
    """
    result: list[Path] = []
    for path in paths:
        if path.is_dir():
            if not traverse:
                raise InvalidUsageError(f"{path} is a directory; use --traverse to upload its files.")
            result.extend(
                p for p in sorted(path.rglob("*")) if p.is_file() and matches_pattern(p, pattern)
            )
        elif path.is_file():
            if matches_pattern(path, pattern):
                result.append(path)
        else:
            raise InvalidUsageError(f"File not found: {path}")
    return result


def check_upload_options(meta: UploadMeta, traverse: bool) -> None:
    """Reject option combinations that cannot be planned.

    Raises:
        InvalidUsageError: If ``--single-item`` is combined with traversal.
    """
    if not meta.multiple and traverse:
        raise InvalidUsageError("--single-item cannot be used together with --traverse.")


def plan_upload(
    files: list[Path],
    meta: UploadMeta,
    traverse: bool = False,
) -> list[UploadBatch]:
    """Group *files* into item-creation requests.

    Raises:
        InvalidUsageError: If ``--single-item`` is combined with traversal.
    """
    check_upload_options(meta, traverse)
    if not files:
        return []
    if meta.multiple:
        return [UploadBatch(files=[f]) for f in files]
    return [UploadBatch(files=list(files))]


def run_upload(
    client: DocspellClient,
    selection: EndpointSelection,
    batches: list[UploadBatch],
    meta: UploadMeta,
    session: Optional[SessionToken] = None,
    delete: bool = False,
) -> list[dict[str, Any]]:
    """Send each batch and return one result row per batch.

    With *delete*, local files of a successful batch are removed.
    """
    rows: list[dict[str, Any]] = []
    for batch in batches:
        result = api.upload(client, selection, batch.files, meta, session=session)
        names = ", ".join(str(f) for f in batch.files)
        logger.info("Uploaded %s: %s", names, result.message)
        if result.success and delete:
            for path in batch.files:
                path.unlink(missing_ok=True)
                logger.info("Deleted %s", path)
        rows.append({"files": names, "success": result.success, "message": result.message})
    return rows


def cleanup_target(path: Path, roots: list[Path], move_to: Path) -> Path:
    """Where ``--move`` puts *path*: its location below the matching root, under *move_to*."""
    for root in roots:
        if root.is_dir():
            try:
                return move_to / path.relative_to(root)
            except ValueError:
                continue
    return move_to / path.name


def run_cleanup(
    client: DocspellClient,
    selection: EndpointSelection,
    files: list[Path],
    roots: list[Path],
    session: Optional[SessionToken] = None,
    move_to: Optional[Path] = None,
    delete: bool = False,
    dry_run: bool = False,
) -> list[dict[str, Any]]:
    """Move or delete local files the server already stores.

    Each file is looked up by checksum; files unknown to the server are left
    alone. Exactly one of *move_to* and *delete* must be given.

    Raises:
        InvalidUsageError: If neither or both actions are requested.
    """
    if (move_to is None) == (not delete):
        raise InvalidUsageError("Use exactly one of --move or --delete.")

    rows: list[dict[str, Any]] = []
    for path in files:
        result = api.check_file(client, selection, path, session=session)
        if not result.exists:
            rows.append({"file": str(path), "action": "kept", "target": ""})
            continue
        if delete:
            if not dry_run:
                path.unlink(missing_ok=True)
            logger.info("Deleted %s", path)
            rows.append({"file": str(path), "action": "deleted", "target": ""})
        else:
            assert move_to is not None
            target = cleanup_target(path, roots, move_to)
            if not dry_run:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(path), str(target))
            logger.info("Moved %s to %s", path, target)
            rows.append({"file": str(path), "action": "moved", "target": str(target)})
    return rows
