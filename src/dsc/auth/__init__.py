"""Authentication and request construction for dsc.

The package splits the work into four small pieces:

- :mod:`~dsc.auth.session_store` -- persists one session token per server URL.
- :mod:`~dsc.auth.credentials` -- decides which credential an invocation uses.
- :mod:`~dsc.auth.endpoint` -- validates ``--basic/--header/--integration/
  --collective/--source`` and classifies them into an endpoint selection.
- :mod:`~dsc.auth.request_builder` -- applies a credential to an
  :class:`httpx.Request` and maps selections to endpoint paths.

Typical usage::

    from dsc.auth import FileSessionStore, resolve_credential, select_endpoint

    store = FileSessionStore(sessions_dir(config))
    session = resolve_credential(store, config.docspell_url, required=False)
    selection = select_endpoint(source=opts.source, session_available=...)
"""

from dsc.auth.credentials import resolve_credential, session_override
from dsc.auth.endpoint import parse_name_val, select_endpoint
from dsc.auth.request_builder import (
    ADMIN_SECRET_HEADER,
    SESSION_HEADER,
    auth_headers,
    authenticate,
    checkfile_path,
    credential_for,
    upload_path,
)
from dsc.auth.session_store import (
    FileSessionStore,
    MemorySessionStore,
    SessionStore,
    normalize_url,
)

__all__ = [
    "ADMIN_SECRET_HEADER",
    "SESSION_HEADER",
    "FileSessionStore",
    "MemorySessionStore",
    "SessionStore",
    "auth_headers",
    "authenticate",
    "checkfile_path",
    "credential_for",
    "normalize_url",
    "parse_name_val",
    "resolve_credential",
    "select_endpoint",
    "session_override",
    "upload_path",
]
