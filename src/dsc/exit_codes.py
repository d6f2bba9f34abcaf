"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~dsc.exceptions.DscError` subclass. Shell scripts
driving ``dsc`` (cron jobs, CI uploads) can inspect the exit code to tell a
rejected login apart from an unreachable server without parsing stderr.

Example::

    $ dsc search 'tag:invoice'
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- not logged in or session rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid or conflicting options; detected before any network call."""

EXIT_AUTH_FAILURE = 3
"""Not logged in, login failed, or the server rejected the credentials."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The Docspell server answered with a non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_STORAGE_ERROR = 7
"""The session could not be written to disk."""
