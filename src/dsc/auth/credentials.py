"""Credential resolution for a single invocation.

Precedence for the session token:

1. ``--session`` flag
2. ``DSC_SESSION`` environment variable
3. the :class:`~dsc.auth.session_store.SessionStore` record for the server

The first two are used verbatim and never touch the file system, so CI jobs
can pass a token without a writable home directory.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Optional, Union

from dsc.auth.session_store import SessionStore
from dsc.config import ENV_SESSION
from dsc.exceptions import UnauthenticatedError
from dsc.models import NoCredential, SessionToken


def session_override(
    cli_session: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Return the session given on the command line or in ``DSC_SESSION``."""
    if cli_session:
        return cli_session
    env = os.environ if environ is None else environ
    return env.get(ENV_SESSION) or None


def resolve_credential(
    store: SessionStore,
    server_url: str,
    cli_session: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    required: bool = True,
) -> Union[SessionToken, NoCredential]:
    """Produce the credential for the current command.

    Args:
        store: Where previously saved sessions live. Only read when no
            override is given.
        server_url: The configured Docspell base URL.
        cli_session: Value of ``--session``.
        environ: Environment mapping; defaults to ``os.environ``.
        required: Whether the command cannot run anonymously.

    Returns:
        A :class:`SessionToken`, or :class:`NoCredential` when nothing is
        found and *required* is false.

    Raises:
        UnauthenticatedError: If no session exists and *required* is true.
    """
    override = session_override(cli_session, environ)
    if override:
        return SessionToken(token=override, stored=False)

    token = store.load(server_url)
    if token:
        return SessionToken(token=token, stored=True)

    if required:
        raise UnauthenticatedError()
    return NoCredential()
