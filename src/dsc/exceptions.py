"""Exception hierarchy for dsc.

All exceptions inherit from :class:`DscError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`dsc.exit_codes`.
The top-level error handler in :func:`dsc.app.main` catches ``DscError``
and exits with the appropriate code, while unexpected exceptions produce a
crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    DscError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- AuthError               (exit 3)
    |   +-- UnauthenticatedError (exit 3)
    +-- NotFoundError           (exit 4)
    +-- ServerError             (exit 5)
    +-- ConnectionError_        (exit 6)
    +-- StorageError            (exit 7)
    +-- ConfigError             (exit 1)
"""

from dsc.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_STORAGE_ERROR,
)


class DscError(Exception):
    """Base exception for all dsc errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`dsc.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DscError):
    """Raised for conflicting or malformed CLI options."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(DscError):
    """Raised when the server rejects credentials (401/403) or a login fails."""

    exit_code = EXIT_AUTH_FAILURE


class UnauthenticatedError(AuthError):
    """Raised when a command needs a session and none can be resolved."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Not logged in. Run 'dsc login' first or pass --session."
        )


class NotFoundError(DscError):
    """Raised when the server returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(DscError):
    """Raised for any other non-2xx response."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(DscError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class StorageError(DscError):
    """Raised when the session store cannot persist a session."""

    exit_code = EXIT_STORAGE_ERROR


class ConfigError(DscError):
    """Raised for configuration problems (unreadable TOML, invalid values)."""

    exit_code = EXIT_GENERIC_FAILURE
