"""Attach credentials to outgoing requests and pick endpoint paths.

:func:`authenticate` applies exactly one authentication mechanism to an
:class:`httpx.Request`:

========================  ==============================================
Credential                Effect
========================  ==============================================
``SessionToken``          ``X-Docspell-Auth: <token>``
``BasicAuth``             ``Authorization: Basic <base64(user:pass)>``
``HeaderAuth``            ``<name>: <value>``
``NoCredential``          request unchanged
========================  ==============================================

Debug logging names the mode and its non-secret part (user name, header
name). Secret values are masked unless ``DSC_UNSAFE_DEBUG`` is set.
"""

from __future__ import annotations

import base64
import logging
import os
from typing import Optional, Union

import httpx

from dsc.config import ENV_UNSAFE_DEBUG
from dsc.models import (
    BasicAuth,
    Credential,
    EndpointSelection,
    HeaderAuth,
    IntegrationEndpoint,
    NoCredential,
    SessionEndpoint,
    SessionToken,
    SourceEndpoint,
)

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Docspell-Auth"
ADMIN_SECRET_HEADER = "Docspell-Admin-Secret"

_AUTH_HEADERS = (SESSION_HEADER, "Authorization")
_CUSTOM_HEADER_KEY = "dsc_auth_header"


def _reveal_secrets() -> bool:
    return os.environ.get(ENV_UNSAFE_DEBUG, "").lower() in ("1", "true", "yes")


def _mask(value: str, reveal: bool) -> str:
    return value if reveal else "***"


def auth_headers(credential: Credential) -> dict[str, str]:
    """Return the headers that carry *credential*."""
    if isinstance(credential, SessionToken):
        return {SESSION_HEADER: credential.token}
    if isinstance(credential, BasicAuth):
        raw = f"{credential.username}:{credential.password}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}
    if isinstance(credential, HeaderAuth):
        return {credential.name: credential.value}
    return {}


def authenticate(
    request: httpx.Request,
    credential: Credential,
    reveal_secrets: Optional[bool] = None,
) -> httpx.Request:
    """Apply *credential* to *request* in place and return it.

    Any session, ``Authorization`` or custom header put there by an earlier
    call is removed first, so the request never carries two mechanisms.
    """
    reveal = _reveal_secrets() if reveal_secrets is None else reveal_secrets

    previous = request.extensions.pop(_CUSTOM_HEADER_KEY, None)
    for name in (*_AUTH_HEADERS, previous):
        if name and name in request.headers:
            del request.headers[name]

    if isinstance(credential, SessionToken):
        logger.debug(
            "Using session auth (%s: %s)",
            SESSION_HEADER,
            _mask(credential.token, reveal),
        )
    elif isinstance(credential, BasicAuth):
        logger.debug(
            "Using basic auth: %s:%s",
            credential.username,
            _mask(credential.password, reveal),
        )
    elif isinstance(credential, HeaderAuth):
        logger.debug(
            "Using header auth: %s:%s",
            credential.name,
            _mask(credential.value, reveal),
        )
    else:
        logger.debug("Sending request without credentials")

    request.headers.update(auth_headers(credential))
    if isinstance(credential, HeaderAuth):
        request.extensions[_CUSTOM_HEADER_KEY] = credential.name
    return request


def credential_for(
    selection: EndpointSelection,
    session: Optional[Union[SessionToken, NoCredential]] = None,
) -> Credential:
    """The credential that goes with an endpoint selection.

    The session endpoint needs *session*; the source endpoint is anonymous;
    the integration endpoint uses its own basic/header credential if any.
    """
    if isinstance(selection, IntegrationEndpoint):
        return selection.credential or NoCredential()
    if isinstance(selection, SourceEndpoint):
        return NoCredential()
    return session or NoCredential()


def upload_path(selection: EndpointSelection) -> str:
    """Item upload path for *selection*."""
    if isinstance(selection, IntegrationEndpoint):
        return f"/api/v1/open/integration/item/{selection.collective}"
    if isinstance(selection, SourceEndpoint):
        return f"/api/v1/open/upload/item/{selection.source_id}"
    assert isinstance(selection, SessionEndpoint)
    return "/api/v1/sec/upload/item"


def checkfile_path(selection: EndpointSelection, checksum: str) -> str:
    """Checksum lookup path for *selection*."""
    if isinstance(selection, IntegrationEndpoint):
        return f"/api/v1/open/integration/checksum/{selection.collective}/{checksum}"
    if isinstance(selection, SourceEndpoint):
        return f"/api/v1/open/checkfile/{selection.source_id}/{checksum}"
    assert isinstance(selection, SessionEndpoint)
    return f"/api/v1/sec/checkfile/{checksum}"
