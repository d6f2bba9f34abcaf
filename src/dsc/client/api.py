"""Thin wrappers around the Docspell REST endpoints used by dsc.

Each function takes an open :class:`~dsc.client.sync_client.DocspellClient`
and returns either a typed model from :mod:`dsc.models` or the decoded JSON
for listing endpoints whose shape is only rendered, never inspected.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import mimetypes
from pathlib import Path
from typing import Any, Iterator, Optional

from dsc.auth.request_builder import checkfile_path, credential_for, upload_path
from dsc.client.sync_client import DocspellClient
from dsc.models import (
    AuthResponse,
    BasicResult,
    CheckFileResult,
    Credential,
    EndpointSelection,
    NoCredential,
    SessionToken,
    UploadMeta,
    VersionInfo,
)

_ANON = NoCredential()


# --- Open endpoints ---


def version(client: DocspellClient) -> VersionInfo:
    return VersionInfo.model_validate(
        client.get_json("/api/info/version", credential=_ANON)
    )


def login(client: DocspellClient, account: str, password: str) -> AuthResponse:
    """Exchange account and password for a session token."""
    body = {"account": account, "password": password, "rememberMe": False}
    data = client.post_json("/api/v1/open/auth/login", json_body=body, credential=_ANON)
    return AuthResponse.model_validate(data)


def second_factor(client: DocspellClient, token: str, otp: str) -> AuthResponse:
    """Complete a login that requires a one-time password."""
    body = {"token": token, "otp": otp, "rememberMe": False}
    data = client.post_json(
        "/api/v1/open/auth/two-factor", json_body=body, credential=_ANON
    )
    return AuthResponse.model_validate(data)


def register(
    client: DocspellClient,
    collective: str,
    login_name: str,
    password: str,
    invite: Optional[str] = None,
) -> BasicResult:
    body: dict[str, Any] = {
        "collectiveName": collective,
        "login": login_name,
        "password": password,
    }
    if invite:
        body["invite"] = invite
    data = client.post_json(
        "/api/v1/open/signup/register", json_body=body, credential=_ANON
    )
    return BasicResult.model_validate(data)


def new_invite(client: DocspellClient, password: str) -> dict[str, Any]:
    """Generate an invitation key; *password* is the server's invite password."""
    return client.post_json(
        "/api/v1/open/signup/newinvite",
        json_body={"password": password},
        credential=_ANON,
    )


# --- Session endpoints ---


def search(
    client: DocspellClient,
    query: str,
    limit: int = 20,
    offset: int = 0,
    with_details: bool = True,
) -> dict[str, Any]:
    params = {
        "q": query,
        "limit": limit,
        "offset": offset,
        "withDetails": str(with_details).lower(),
    }
    return client.get_json("/api/v1/sec/item/search", params=params)


def search_summary(client: DocspellClient, query: str) -> dict[str, Any]:
    return client.get_json("/api/v1/sec/item/searchStats", params={"q": query})


def item(client: DocspellClient, item_id: str) -> dict[str, Any]:
    return client.get_json(f"/api/v1/sec/item/{item_id}")


def sources(client: DocspellClient) -> dict[str, Any]:
    return client.get_json("/api/v1/sec/source")


def download_attachment(
    client: DocspellClient,
    attachment_id: str,
    target: Path,
    original: bool = False,
) -> Path:
    """Write an attachment (or its original file) to *target*."""
    suffix = "/original" if original else ""
    response = client.get(f"/api/v1/sec/attachment/{attachment_id}{suffix}")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(response.content)
    return target


# --- Endpoint-selection aware ---


def file_checksum(path: Path) -> str:
    """SHA-256 hex digest of *path*, as used by the checkfile endpoints."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def check_file(
    client: DocspellClient,
    selection: EndpointSelection,
    path: Path,
    session: Optional[SessionToken] = None,
) -> CheckFileResult:
    """Ask the server whether a file with the same checksum exists."""
    data = client.get_json(
        checkfile_path(selection, file_checksum(path)),
        credential=credential_for(selection, session),
    )
    return CheckFileResult.model_validate(data)


@contextlib.contextmanager
def _multipart(files: list[Path], meta: UploadMeta) -> Iterator[list[tuple[str, Any]]]:
    """Open *files* and yield httpx multipart parts; handles close on exit."""
    with contextlib.ExitStack() as stack:
        parts: list[tuple[str, Any]] = [
            ("meta", (None, json.dumps(meta.to_request_json()), "application/json")),
        ]
        for path in files:
            mimetype = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            handle = stack.enter_context(open(path, "rb"))
            parts.append(("file", (path.name, handle, mimetype)))
        yield parts


def upload(
    client: DocspellClient,
    selection: EndpointSelection,
    files: list[Path],
    meta: UploadMeta,
    session: Optional[SessionToken] = None,
) -> BasicResult:
    """Send one item-creation request with *files*."""
    credential: Credential = credential_for(selection, session)
    with _multipart(files, meta) as parts:
        data = client.post_json(upload_path(selection), files=parts, credential=credential)
    return BasicResult.model_validate(data)


# --- Admin ---


def admin_reset_password(
    client: DocspellClient, credential: Credential, account: str
) -> dict[str, Any]:
    return client.post_json(
        "/api/v1/admin/user/resetPassword",
        json_body={"account": account},
        credential=credential,
    )


def admin_recreate_index(client: DocspellClient, credential: Credential) -> BasicResult:
    data = client.post_json("/api/v1/admin/fts/reIndexAll", credential=credential)
    return BasicResult.model_validate(data)


def admin_generate_previews(client: DocspellClient, credential: Credential) -> BasicResult:
    data = client.post_json(
        "/api/v1/admin/attachments/generatePreviews", credential=credential
    )
    return BasicResult.model_validate(data)


def admin_convert_all_pdfs(client: DocspellClient, credential: Credential) -> BasicResult:
    data = client.post_json(
        "/api/v1/admin/attachments/convertallpdfs", credential=credential
    )
    return BasicResult.model_validate(data)
