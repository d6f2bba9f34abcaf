"""Synchronous HTTP client for the Docspell server.

:class:`DocspellClient` wraps :class:`httpx.Client` and layers on:

- **Auth injection** -- every request passes through
  :func:`~dsc.auth.request_builder.authenticate` with exactly one credential.
- **Dry-run mode** -- prints the request to stderr and returns a synthetic
  200 response without sending traffic.
- **Error mapping** -- transport failures and non-2xx answers become
  :mod:`dsc.exceptions` errors. A 401/403 answer to a stored session
  removes that session from the store so the next run asks for a login.

Single-shot commands do not retry; the watch loop has its own backoff.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from dsc.auth.request_builder import authenticate
from dsc.auth.session_store import SessionStore
from dsc.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    ServerError,
    UnauthenticatedError,
)
from dsc.models import Credential, NoCredential, SessionToken
from dsc.output import get_output

logger = logging.getLogger(__name__)


class DocspellClient:
    """HTTP client bound to one server and one default credential.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        base_url: Docspell base URL, e.g. ``http://localhost:7880``.
        credential: Credential applied when a request does not pass its own.
        session_store: Store to invalidate when a stored session is rejected.
        timeout: Request timeout in seconds.
        dry_run: Print requests instead of sending them.
        transport: Optional httpx transport (tests use
            :class:`httpx.MockTransport`).

    Example::

        with DocspellClient(config.docspell_url, credential=session) as client:
            response = client.get("/api/v1/sec/item/search", params={"q": "tag:todo"})
    """

    def __init__(
        self,
        base_url: str,
        credential: Optional[Credential] = None,
        session_store: Optional[SessionStore] = None,
        timeout: float = 30.0,
        dry_run: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credential: Credential = credential or NoCredential()
        self._session_store = session_store
        self._timeout = timeout
        self._dry_run = dry_run
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def credential(self) -> Credential:
        return self._credential

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> DocspellClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        files: Optional[list[tuple[str, Any]]] = None,
        credential: Optional[Credential] = None,
    ) -> httpx.Response:
        """Send one authenticated request and map errors.

        Args:
            method: HTTP method.
            path: URL path appended to the base URL.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            files: Multipart parts as accepted by httpx.
            credential: Overrides the client's default credential.

        Raises:
            AuthError: On 401 / 403 (:class:`UnauthenticatedError` when a
                stored session was rejected and cleared).
            NotFoundError: On 404.
            ServerError: On any other non-2xx answer.
            ConnectionError_: On network / timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        cred = credential if credential is not None else self._credential
        merged_headers: dict[str, str] = {"Accept": "application/json"}
        merged_headers.update(headers or {})

        kwargs: dict[str, Any] = {"headers": merged_headers}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if files is not None:
            kwargs["files"] = files
        elif json_body is not None:
            kwargs["json"] = json_body

        request = self._client.build_request(method, path, **kwargs)
        authenticate(request, cred)

        if self._dry_run:
            return self._print_dry_run(request)

        logger.debug("%s %s", method.upper(), request.url)
        try:
            response = self._client.send(request)
        except httpx.TransportError as exc:
            raise ConnectionError_(
                f"Cannot reach Docspell at {self._base_url}: {exc}"
            ) from exc

        self._map_response_error(response, cred)
        return response

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request."""
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request."""
        return self.request("POST", path, **kwargs)

    def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET *path* and decode the JSON body."""
        return _json_body(self.get(path, **kwargs))

    def post_json(self, path: str, **kwargs: Any) -> Any:
        """POST to *path* and decode the JSON body."""
        return _json_body(self.post(path, **kwargs))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _map_response_error(self, response: httpx.Response, credential: Credential) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            if (
                isinstance(credential, SessionToken)
                and credential.stored
                and self._session_store is not None
            ):
                self._session_store.clear(self._base_url)
                logger.info("Session rejected by server; removed stored session")
                raise UnauthenticatedError(
                    f"{full_msg}. The stored session was rejected and removed; "
                    "run 'dsc login' again."
                )
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)

    def _print_dry_run(self, request: httpx.Request) -> httpx.Response:
        """Print request details to stderr and return a synthetic 200 response."""
        output = get_output()
        output.info(f"[dry-run] {request.method} {request.url}")
        for key in request.headers.keys():
            output.debug(f"  Header: {key}")
        return httpx.Response(
            status_code=200,
            headers={"content-type": "application/json"},
            json={"success": True, "message": "dry run, request was not sent"},
            request=request,
        )


def _json_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise ServerError(
            f"Expected JSON from {response.request.url}, got: {response.text[:200]}"
        ) from exc
