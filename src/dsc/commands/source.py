"""Source commands -- list upload sources of the logged-in collective."""

from __future__ import annotations

from typing import Any

import typer

from dsc.client import api
from dsc.context import get_state
from dsc.models import Format
from dsc.output import get_output, render

source_app = typer.Typer(no_args_is_help=True)

SOURCE_COLUMNS = ["id", "abbrev", "enabled", "counter", "folder", "description"]


def flatten_sources(result: dict[str, Any]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for entry in result.get("items", []):
        src = entry.get("source", entry)
        rows.append(
            {
                "id": src.get("id", ""),
                "abbrev": src.get("abbrev", ""),
                "enabled": src.get("enabled", False),
                "counter": src.get("counter", 0),
                "folder": src.get("folder") or "",
                "description": src.get("description") or "",
            }
        )
    return rows


@source_app.command("list")
def source_list(ctx: typer.Context) -> None:
    """List sources; their ids can be used with ``--source``."""
    state = get_state(ctx)
    with state.client(state.credential()) as client:
        result = api.sources(client)
    if get_output().format in (Format.JSON, Format.LISP):
        render(result)
    else:
        render(flatten_sources(result), SOURCE_COLUMNS)
