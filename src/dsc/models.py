"""Canonical Pydantic models shared across all dsc modules.

The models fall into four groups:

**Configuration** -- loaded from ``config.toml``:
    :class:`Format`, :class:`WatchConfig`, :class:`DscConfig`.

**Credentials** -- the tagged variant produced by the credential resolver and
consumed by the request builder:
    :class:`NoCredential`, :class:`SessionToken`, :class:`BasicAuth`,
    :class:`HeaderAuth`, joined into :data:`Credential`.

**Endpoint selection** -- the classified result of the endpoint options:
    :class:`IntegrationEndpoint`, :class:`SourceEndpoint`,
    :class:`SessionEndpoint`, joined into :data:`EndpointSelection`.

**Upload and server results**:
    :class:`NameVal`, :class:`Direction`, :class:`UploadMeta`,
    :class:`AuthResponse`, :class:`BasicResult`, :class:`VersionInfo`,
    :class:`CheckFileResult`.
"""

from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class Format(str, enum.Enum):
    """Output formats selectable with ``--format``.

    ``json`` and ``lisp`` always render every field; ``csv`` and
    ``tabular`` may flatten nested values for readability.
    """

    JSON = "json"
    LISP = "lisp"
    CSV = "csv"
    TABULAR = "tabular"


class WatchConfig(BaseModel):
    """Timing knobs for ``dsc watch``."""

    debounce_ms: int = Field(
        default=500, ge=0, description="Quiet period before a changed file is uploaded"
    )
    max_retries: int = Field(
        default=3, ge=0, description="Retries after a failed upload"
    )
    backoff_seconds: float = Field(
        default=1.0, ge=0, description="Initial retry delay, doubled per attempt"
    )
    max_backoff_seconds: float = Field(
        default=30.0, ge=0, description="Upper bound for a single retry delay"
    )


class DscConfig(BaseModel):
    """Client configuration read from ``config.toml``.

    Fields here have the lowest precedence and can be overridden by
    environment variables and CLI flags. See
    :func:`~dsc.config.resolve_config` for the full precedence chain.
    """

    model_config = ConfigDict(extra="ignore")

    docspell_url: str = "http://localhost:7880"
    default_source_id: Optional[str] = None
    default_format: Format = Format.TABULAR
    session_path: Optional[Path] = Field(
        default=None, description="Directory holding stored session records"
    )
    admin_secret: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    watch: WatchConfig = Field(default_factory=WatchConfig)


# --- Credentials ---


class NoCredential(BaseModel):
    """Anonymous access; the request goes out without auth headers."""

    kind: Literal["none"] = "none"


class SessionToken(BaseModel):
    """Opaque session token issued by ``dsc login``.

    ``stored`` is true when the token was read from the session store, so
    that a 401/403 answer can invalidate it. Tokens given via ``--session``
    or ``DSC_SESSION`` are never written or cleared.
    """

    kind: Literal["session"] = "session"
    token: str
    stored: bool = False


class BasicAuth(BaseModel):
    """HTTP Basic credentials for the integration endpoint."""

    kind: Literal["basic"] = "basic"
    username: str
    password: str


class HeaderAuth(BaseModel):
    """A literal header sent as credential (integration endpoint, admin secret)."""

    kind: Literal["header"] = "header"
    name: str
    value: str


Credential = Annotated[
    Union[NoCredential, SessionToken, BasicAuth, HeaderAuth],
    Field(discriminator="kind"),
]


# --- Endpoint selection ---


class IntegrationEndpoint(BaseModel):
    """Machine-to-machine access scoped to a collective."""

    kind: Literal["integration"] = "integration"
    collective: str
    credential: Optional[Union[BasicAuth, HeaderAuth]] = None


class SourceEndpoint(BaseModel):
    """Anonymous access through a configured upload source."""

    kind: Literal["source"] = "source"
    source_id: str


class SessionEndpoint(BaseModel):
    """Authenticated access with the logged-in user's session."""

    kind: Literal["session"] = "session"


EndpointSelection = Annotated[
    Union[IntegrationEndpoint, SourceEndpoint, SessionEndpoint],
    Field(discriminator="kind"),
]


# --- Upload ---


class NameVal(BaseModel):
    """A ``name:value`` pair, e.g. ``user:secret`` or ``X-Token:abc``."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str

    @classmethod
    def parse(cls, text: str) -> NameVal:
        """Split *text* on its first colon.

        Raises:
            ValueError: If *text* contains no colon.
        """
        name, sep, value = text.partition(":")
        if not sep:
            raise ValueError(f"Not a name:value pair, no ':' found in '{text}'")
        return cls(name=name, value=value)


class Direction(str, enum.Enum):
    """Item direction accepted by ``--direction``."""

    IN = "in"
    OUT = "out"

    def to_value(self) -> str:
        """Return the value the server expects in the upload meta."""
        return "incoming" if self is Direction.IN else "outgoing"


class UploadMeta(BaseModel):
    """Item metadata sent alongside uploaded files."""

    multiple: bool = True
    direction: Optional[Direction] = None
    folder: Optional[str] = None
    skip_duplicates: bool = True
    tags: list[str] = Field(default_factory=list)
    file_filter: Optional[str] = None
    language: Optional[str] = None

    def to_request_json(self) -> dict[str, Any]:
        """Serialise to the server's item upload meta object."""
        data: dict[str, Any] = {
            "multiple": self.multiple,
            "skipDuplicates": self.skip_duplicates,
        }
        if self.direction is not None:
            data["direction"] = self.direction.to_value()
        if self.folder is not None:
            data["folder"] = self.folder
        if self.tags:
            data["tags"] = {"items": list(self.tags)}
        if self.file_filter is not None:
            data["fileFilter"] = self.file_filter
        if self.language is not None:
            data["language"] = self.language
        return data


# --- Server results ---


class BasicResult(BaseModel):
    """Generic ``{success, message}`` answer used by many endpoints."""

    success: bool
    message: str = ""


class AuthResponse(BaseModel):
    """Answer of the login and two-factor endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    collective: str = ""
    user: str = ""
    success: bool
    message: str = ""
    token: Optional[str] = None
    valid_ms: int = Field(default=0, alias="validMs")
    require_second_factor: bool = Field(default=False, alias="requireSecondFactor")


class VersionInfo(BaseModel):
    """Server build information from ``/api/info/version``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str
    built_at_string: Optional[str] = Field(default=None, alias="builtAtString")
    git_commit: Optional[str] = Field(default=None, alias="gitCommit")
    git_version: Optional[str] = Field(default=None, alias="gitVersion")


class CheckFileResult(BaseModel):
    """Answer of the checksum lookup endpoints."""

    exists: bool
    items: list[dict[str, Any]] = Field(default_factory=list)


class StoredSession(BaseModel):
    """On-disk session record; one per server URL."""

    server_url: str
    token: str
    created_at: datetime
    expires_at: Optional[datetime] = None
