"""Per-invocation state shared by all subcommands.

:func:`~dsc.app.main_callback` resolves the configuration once and stores a
:class:`CliState` in ``ctx.obj``. Commands read it through :func:`get_state`
and use its helpers to resolve credentials and open clients, so every
subcommand applies the same precedence rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

import httpx
import typer

from dsc.auth.credentials import resolve_credential
from dsc.auth.session_store import FileSessionStore, SessionStore
from dsc.client.sync_client import DocspellClient
from dsc.config import sessions_dir
from dsc.models import Credential, DscConfig, NoCredential, SessionToken


@dataclass
class CliState:
    """Resolved configuration plus the collaborators commands need."""

    config: DscConfig
    cli_session: Optional[str] = None
    session_store: Optional[SessionStore] = None
    transport: Optional[httpx.BaseTransport] = field(default=None, repr=False)

    def store(self) -> SessionStore:
        """The session store, created on first use."""
        if self.session_store is None:
            self.session_store = FileSessionStore(sessions_dir(self.config))
        return self.session_store

    def credential(self, required: bool = True) -> Union[SessionToken, NoCredential]:
        """Resolve the session credential for the configured server.

        The store is only read when no ``--session``/``DSC_SESSION``
        override is present.
        """
        return resolve_credential(
            self.store(), self.config.docspell_url, self.cli_session, required=required
        )

    def client(self, credential: Optional[Credential] = None, dry_run: bool = False) -> DocspellClient:
        """A client for the configured server (use as a context manager)."""
        return DocspellClient(
            self.config.docspell_url,
            credential=credential,
            session_store=self.store(),
            timeout=self.config.timeout,
            dry_run=dry_run,
            transport=self.transport,
        )


def get_state(ctx: typer.Context) -> CliState:
    """Return the :class:`CliState` installed by the root callback."""
    root = ctx.find_root()
    state = root.obj
    assert isinstance(state, CliState), "main_callback did not run"
    return state
