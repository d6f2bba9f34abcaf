"""Endpoint mode selection for upload-like commands.

``upload``, ``file-exists``, and ``watch`` can reach the server three ways:

* the **integration** endpoint (``--integration --collective C``), optionally
  authenticated with ``--basic user:pass`` or ``--header Name:Value``;
* a **source** endpoint (``--source ID`` or ``default_source_id`` from the
  config), which needs no login;
* the normal **session** endpoint of the logged-in user.

:func:`select_endpoint` validates the option combination and returns one
:data:`~dsc.models.EndpointSelection` variant. It performs no I/O; whether a
session is available is passed in by the caller.
"""

from __future__ import annotations

from typing import Optional, Union

from dsc.exceptions import InvalidUsageError
from dsc.models import (
    BasicAuth,
    EndpointSelection,
    HeaderAuth,
    IntegrationEndpoint,
    NameVal,
    SessionEndpoint,
    SourceEndpoint,
)


def parse_name_val(text: str, option: str) -> NameVal:
    """Parse a ``--basic``/``--header`` value, reporting failures as usage errors."""
    try:
        return NameVal.parse(text)
    except ValueError as exc:
        raise InvalidUsageError(f"Invalid value for {option}: {exc}") from exc


def select_endpoint(
    basic: Optional[str] = None,
    header: Optional[str] = None,
    integration: bool = False,
    collective: Optional[str] = None,
    source: Optional[str] = None,
    default_source_id: Optional[str] = None,
    session_available: bool = False,
) -> EndpointSelection:
    """Validate endpoint options and classify them.

    Rules are checked in order and the first violation is reported:

    1. ``basic`` and ``header`` are mutually exclusive.
    2. With ``integration``: ``collective`` is required and ``source`` is
       not allowed.
    3. Without ``integration``: ``basic``/``header`` are not allowed.
    4. The source id is ``source``, else ``default_source_id``; without one
       a session must be available.

    Raises:
        InvalidUsageError: On any violated rule or a malformed name:value pair.
    """
    if basic is not None and header is not None:
        raise InvalidUsageError(
            "Ambiguous credential: --basic and --header cannot be used together."
        )

    if integration:
        if not collective:
            raise InvalidUsageError(
                "A collective is required for the integration endpoint (--collective)."
            )
        if source is not None:
            raise InvalidUsageError(
                "--source cannot be used with --integration; they are separate endpoints."
            )
        credential: Optional[Union[BasicAuth, HeaderAuth]] = None
        if basic is not None:
            pair = parse_name_val(basic, "--basic")
            credential = BasicAuth(username=pair.name, password=pair.value)
        elif header is not None:
            pair = parse_name_val(header, "--header")
            credential = HeaderAuth(name=pair.name, value=pair.value)
        return IntegrationEndpoint(collective=collective, credential=credential)

    if basic is not None or header is not None:
        raise InvalidUsageError(
            "--basic and --header only apply to the integration endpoint (--integration)."
        )

    source_id = source or default_source_id
    if source_id:
        return SourceEndpoint(source_id=source_id)
    if not session_available:
        raise InvalidUsageError(
            "No source id given and not logged in. Use --source, set "
            "default_source_id, or run 'dsc login'."
        )
    return SessionEndpoint()
