"""Item commands -- search, summarise, inspect, and download items.

``json`` and ``lisp`` output show the server's answer unchanged; ``csv``
and ``tabular`` flatten search results into one row per item.
"""

from __future__ import annotations

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import typer

from dsc.client import api
from dsc.context import get_state
from dsc.exceptions import NotFoundError
from dsc.models import Format
from dsc.output import get_output, info, render, success, warning

ITEM_COLUMNS = ["id", "name", "state", "date", "correspondent", "folder", "tags", "files"]

item_app = typer.Typer(no_args_is_help=True)


def _format_millis(value: Any) -> str:
    if not isinstance(value, (int, float)):
        return ""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def _name(ref: Any) -> str:
    return ref.get("name", "") if isinstance(ref, dict) else ""


def flatten_items(result: dict[str, Any]) -> list[dict[str, Any]]:
    """One row per item across all groups of a search result."""
    rows: list[dict[str, Any]] = []
    for group in result.get("groups", []):
        for item in group.get("items", []):
            correspondent = _name(item.get("corrOrg")) or _name(item.get("corrPerson"))
            rows.append(
                {
                    "id": item.get("id", ""),
                    "name": item.get("name", ""),
                    "state": item.get("state", ""),
                    "date": _format_millis(item.get("date")),
                    "correspondent": correspondent,
                    "folder": _name(item.get("folder")),
                    "tags": ", ".join(t.get("name", "") for t in item.get("tags", [])),
                    "files": len(item.get("attachments", [])),
                }
            )
    return rows


def _is_structured() -> bool:
    return get_output().format in (Format.JSON, Format.LISP)


def search_command(
    ctx: typer.Context,
    query: str = typer.Argument(help="Docspell query, e.g. 'tag:invoice date>2021-01-01'."),
    limit: int = typer.Option(20, "--limit", help="Maximum number of items."),
    offset: int = typer.Option(0, "--offset", help="Number of items to skip."),
) -> None:
    """Search items with a query."""
    state = get_state(ctx)
    with state.client(state.credential()) as client:
        result = api.search(client, query, limit=limit, offset=offset)
    if _is_structured():
        render(result)
    else:
        render(flatten_items(result), ITEM_COLUMNS)


def search_summary_command(
    ctx: typer.Context,
    query: str = typer.Argument(help="Docspell query."),
) -> None:
    """Show counts, tag and field statistics for a query."""
    state = get_state(ctx)
    with state.client(state.credential()) as client:
        result = api.search_summary(client, query)
    if _is_structured():
        render(result)
        return
    rows = [{"name": "count", "value": result.get("count", 0)}]
    for tag in result.get("tagCloud", {}).get("items", []):
        rows.append({"name": f"tag:{tag.get('tag', {}).get('name', '')}", "value": tag.get("count", 0)})
    render(rows, ["name", "value"])


@item_app.command("get")
def item_get(
    ctx: typer.Context,
    item_id: str = typer.Argument(help="Item id."),
) -> None:
    """Show all details of one item."""
    state = get_state(ctx)
    with state.client(state.credential()) as client:
        render(api.item(client, item_id))


@item_app.command("view")
def item_view(
    ctx: typer.Context,
    item_id: str = typer.Argument(help="Item id."),
    index: int = typer.Option(0, "--index", help="Which attachment to open, starting at 0."),
    original: bool = typer.Option(
        False, "--original", help="Open the original file instead of the converted PDF."
    ),
) -> None:
    """Download one attachment of an item and open it in the default viewer."""
    state = get_state(ctx)
    with state.client(state.credential()) as client:
        detail = api.item(client, item_id)
        attachments = detail.get("attachments", [])
        if not 0 <= index < len(attachments):
            raise NotFoundError(
                f"Item {item_id} has {len(attachments)} attachment(s), no index {index}"
            )
        attachment = attachments[index]
        target = Path(tempfile.gettempdir()) / "dsc-view" / _safe_name(
            attachment.get("name") or f"{attachment['id']}.pdf"
        )
        api.download_attachment(client, attachment["id"], target, original=original)
    info(f"Opening {target}")
    typer.launch(str(target))


def download_command(
    ctx: typer.Context,
    query: str = typer.Argument(help="Query selecting the items whose files to download."),
    target: Path = typer.Option(
        Path("."), "--target", "-t", help="Directory to write files into."
    ),
    limit: int = typer.Option(20, "--limit", help="Maximum number of items."),
    original: bool = typer.Option(
        False, "--original", help="Download the original files instead of the converted PDFs."
    ),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace files that already exist."
    ),
) -> None:
    """Download the attachments of all items matching a query.

    Files are placed in one sub-directory per item under ``--target``.
    """
    state = get_state(ctx)
    rows: list[dict[str, Any]] = []
    with state.client(state.credential()) as client:
        result = api.search(client, query, limit=limit)
        for group in result.get("groups", []):
            for item in group.get("items", []):
                item_dir = target / _safe_name(item.get("name") or item["id"])
                for attachment in item.get("attachments", []):
                    rows.append(
                        _download_one(client, attachment, item_dir, original, overwrite)
                    )
    if not rows:
        info("No files found.")
        return
    success(f"Processed {len(rows)} file(s).")
    render(rows, ["file", "status"])


def _download_one(
    client: Any,
    attachment: dict[str, Any],
    item_dir: Path,
    original: bool,
    overwrite: bool,
) -> dict[str, Any]:
    name = _safe_name(attachment.get("name") or f"{attachment['id']}.pdf")
    path = item_dir / name
    if path.exists() and not overwrite:
        warning(f"Skipping existing file {path}")
        return {"file": str(path), "status": "skipped"}
    api.download_attachment(client, attachment["id"], path, original=original)
    return {"file": str(path), "status": "downloaded"}


def _safe_name(name: Optional[str]) -> str:
    """Strip path separators so server-provided names stay inside the target."""
    cleaned = (name or "unnamed").replace("/", "_").replace("\\", "_").strip()
    if cleaned in ("", ".", ".."):
        return "unnamed"
    return cleaned
