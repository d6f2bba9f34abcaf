"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- command results only, rendered in the ``--format`` chosen
  (``json``, ``lisp``, ``csv`` or ``tabular``).
* **stderr** -- all diagnostics (progress, status, warnings, errors).
* **Colour control** -- respects ``NO_COLOR`` and ``TERM=dumb``.

The module exposes two layers:

1. :class:`OutputManager` -- holds the format, Rich consoles and the
   verbosity. Created once in :func:`~dsc.app.main_callback` and installed
   via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, ...) that delegate to the global instance.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import os
import sys
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dsc.models import Format


class OutputManager:
    """Central manager for all CLI output.

    Args:
        format: Rendering used by :meth:`render`.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Verbosity level (count of ``-v``); ``>= 1`` shows debug
            messages.
    """

    def __init__(
        self,
        format: Format = Format.TABULAR,
        no_color: bool = False,
        quiet: bool = False,
        verbose: int = 0,
    ) -> None:
        self._format = format
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._stdout = Console(file=sys.stdout, no_color=self._no_color)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> Format:
        """The selected output format."""
        return self._format

    @property
    def verbose(self) -> int:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def render(self, data: Any, columns: Optional[Sequence[str]] = None) -> None:
        """Render a result to stdout in the selected format.

        Args:
            data: A dict, a list of dicts, or a scalar.
            columns: Column order for ``csv``/``tabular``; defaults to the
                keys in order of first appearance. ``json``/``lisp`` always
                print everything.
        """
        if self._format == Format.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == Format.LISP:
            self.print_data(to_sexpr(data))
        elif self._format == Format.CSV:
            self.print_data(to_csv(data, columns).rstrip("\n"))
        else:
            self._print_tabular(data, columns)

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed when quiet."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(escape(message))

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed when quiet."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. Never suppressed."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr. Suppressed when quiet."""
        if not self._quiet:
            formatted = f"→ {message}"
            if self._no_color:
                print(formatted, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{escape(formatted)}[/dim]")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown with ``-v``."""
        if self._verbose > 0:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{escape('[debug] ' + message)}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_tabular(self, data: Any, columns: Optional[Sequence[str]]) -> None:
        rows = _as_rows(data)
        if rows is None:
            self.print_data(str(data))
            return
        headers = list(columns) if columns else _collect_keys(rows)
        table = Table(show_header=True, header_style="bold cyan")
        for h in headers:
            table.add_column(h)
        for row in rows:
            table.add_row(*(_cell(row.get(h)) for h in headers))
        self._stdout.print(table)


# ------------------------------------------------------------------ #
# Renderers
# ------------------------------------------------------------------ #


def _as_rows(data: Any) -> Optional[list[dict[str, Any]]]:
    """Coerce *data* into a list of dicts, or ``None`` for scalars."""
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    return None


def _collect_keys(rows: list[dict[str, Any]]) -> list[str]:
    keys: list[str] = []
    for row in rows:
        for key in row:
            if key not in keys:
                keys.append(key)
    return keys


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str, separators=(",", ":"))
    return str(value)


def to_csv(data: Any, columns: Optional[Sequence[str]] = None) -> str:
    """Render rows as CSV with a header line."""
    rows = _as_rows(data)
    if rows is None:
        return f"{data}\n"
    headers = list(columns) if columns else _collect_keys(rows)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(row.get(h)) for h in headers])
    return buf.getvalue()


def to_sexpr(data: Any) -> str:
    """Render *data* as an s-expression; dicts become property lists."""
    if data is None or data is False:
        return "nil"
    if data is True:
        return "t"
    if isinstance(data, (int, float)):
        return str(data)
    if isinstance(data, str):
        escaped = data.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(data, dict):
        parts = [f":{key} {to_sexpr(value)}" for key, value in data.items()]
        return "(" + " ".join(parts) + ")"
    if isinstance(data, (list, tuple)):
        return "(" + " ".join(to_sexpr(item) for item in data) + ")"
    return to_sexpr(str(data))


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #


def configure_logging(verbose: int) -> None:
    """Route stdlib logging to stderr; each ``-v`` lowers the threshold.

    0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG.
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    handler = RichHandler(
        console=Console(file=sys.stderr, stderr=True, no_color=_should_disable_color()),
        show_path=False,
        show_time=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    # httpx logs every request at INFO; only show it at the most verbose level.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose >= 3 else logging.WARNING)


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None`` (used by tests)."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def render(data: Any, columns: Optional[Sequence[str]] = None) -> None:
    """Render a result to stdout via the global OutputManager."""
    get_output().render(data, columns)


def info(message: str) -> None:
    """Print info message to stderr via the global OutputManager."""
    get_output().info(message)


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)


def success(message: str) -> None:
    """Print success message to stderr via the global OutputManager."""
    get_output().success(message)


def warning(message: str) -> None:
    """Print warning to stderr via the global OutputManager."""
    get_output().warning(message)


def suggest(message: str) -> None:
    """Print next-step suggestion to stderr via the global OutputManager."""
    get_output().suggest(message)


def debug(message: str) -> None:
    """Print debug message to stderr via the global OutputManager."""
    get_output().debug(message)
