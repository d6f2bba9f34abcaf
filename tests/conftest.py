"""Shared test fixtures for dsc.

Provides isolated config environments, output state management, an
in-memory session store, and a helper for running CLI commands against an
:class:`httpx.MockTransport`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from rich.logging import RichHandler

from dsc.auth.session_store import MemorySessionStore
from dsc.models import Format
from dsc.output import OutputManager, reset_output, set_output

SERVER_URL = "http://docspell.test:7880"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. CliRunner swaps those streams, so a manager or log
    handler created inside one test must not leak into the next.
    """
    yield
    reset_output()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    clears all DSC_* environment variables, and changes the working
    directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("dsc.config._is_xdg_platform", lambda: True)

    for var in [
        "DSC_CONFIG",
        "DSC_SESSION",
        "DSC_DOCSPELL_URL",
        "DSC_ADMIN_SECRET",
        "DSC_UNSAFE_DEBUG",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet JSON OutputManager for tests that don't inspect output."""
    output = OutputManager(format=Format.JSON, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Session store and HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    """Requests seen by :func:`mock_transport`, in order."""
    return []


@pytest.fixture
def mock_transport(
    recorded_requests: list[httpx.Request],
) -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.MockTransport]:
    """Build a MockTransport that records every request before answering."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
        def _record(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        return httpx.MockTransport(_record)

    return _make


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def run_cli(cli_runner, isolated_config: Path, memory_store: MemorySessionStore):
    """Invoke the dsc app with a memory store and an optional transport.

    Always points the app at :data:`SERVER_URL` in quiet mode, with JSON
    output unless *args* already start with a ``--format`` option.
    """
    from dsc.app import app

    def _run(args: list[str], transport: Any = None, input: str | None = None):
        base = ["--docspell-url", SERVER_URL, "--quiet"]
        if "--format" not in args:
            base += ["--format", "json"]
        return cli_runner.invoke(
            app,
            base + args,
            obj={"session_store": memory_store, "transport": transport},
            input=input,
        )

    return _run
