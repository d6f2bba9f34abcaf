"""Persistent session store keyed by server URL.

A session token is created by ``dsc login`` and reused by every later
command talking to the same server. Records live under
``~/.local/share/dsc/sessions/`` (XDG) or the configured ``session_path``,
one JSON file per server URL. Files are written atomically with ``0o600``
permissions so that tokens are never world-readable, even momentarily.

Two implementations share the :class:`SessionStore` interface:

- :class:`FileSessionStore` -- the on-disk store used by the CLI.
- :class:`MemorySessionStore` -- a dict-backed store for tests.

See Also:
    :func:`~dsc.auth.credentials.resolve_credential` -- the only reader.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dsc.config import atomic_write
from dsc.exceptions import StorageError
from dsc.models import StoredSession

logger = logging.getLogger(__name__)


def normalize_url(server_url: str) -> str:
    """Canonical form of a server URL used as the session key."""
    return server_url.strip().rstrip("/")


def _is_expired(session: StoredSession) -> bool:
    if session.expires_at is None:
        return False
    expires = session.expires_at
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) >= expires


class SessionStore(ABC):
    """Load, save, and clear one session token per server URL."""

    @abstractmethod
    def save(
        self,
        server_url: str,
        token: str,
        expires_at: Optional[datetime] = None,
    ) -> None:
        """Persist *token* for *server_url*, replacing any previous session.

        Raises:
            StorageError: If the session cannot be written.
        """
        ...

    @abstractmethod
    def load_session(self, server_url: str) -> Optional[StoredSession]:
        """Return the raw record for *server_url*, or ``None``."""
        ...

    @abstractmethod
    def clear(self, server_url: str) -> None:
        """Remove the session for *server_url*; a no-op when absent."""
        ...

    def load(self, server_url: str) -> Optional[str]:
        """Return the live token for *server_url*.

        Returns ``None`` when nothing is stored, the record is unreadable, or
        the session has expired.
        """
        session = self.load_session(server_url)
        if session is None:
            return None
        if _is_expired(session):
            logger.debug("Stored session for %s has expired", session.server_url)
            return None
        return session.token


class FileSessionStore(SessionStore):
    """Session records stored as JSON files in *directory*.

    The file name is derived from a hash of the normalised URL; the URL
    itself is stored in the record and checked on load.

    Example::

        store = FileSessionStore(sessions_dir(config))
        store.save("http://localhost:7880", "tok123")
        assert store.load("http://localhost:7880/") == "tok123"
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, server_url: str) -> Path:
        """The file holding the session for *server_url*."""
        digest = hashlib.sha256(normalize_url(server_url).encode("utf-8")).hexdigest()
        return self._directory / f"{digest[:32]}.json"

    def save(
        self,
        server_url: str,
        token: str,
        expires_at: Optional[datetime] = None,
    ) -> None:
        session = StoredSession(
            server_url=normalize_url(server_url),
            token=token,
            created_at=datetime.now(timezone.utc),
            expires_at=expires_at,
        )
        text = json.dumps(session.model_dump(mode="json"), indent=2) + "\n"
        path = self.path_for(server_url)
        try:
            atomic_write(path, text, mode=0o600)
        except OSError as exc:
            raise StorageError(f"Cannot store session at {path}: {exc}") from exc
        logger.debug("Stored session for %s in %s", session.server_url, path)

    def load_session(self, server_url: str) -> Optional[StoredSession]:
        path = self.path_for(server_url)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            session = StoredSession.model_validate(data)
        except (ValueError, OSError) as exc:
            # JSONDecodeError, UnicodeDecodeError and ValidationError are ValueErrors.
            logger.debug("Ignoring unreadable session file %s: %s", path, exc)
            return None
        if session.server_url != normalize_url(server_url):
            return None
        return session

    def clear(self, server_url: str) -> None:
        path = self.path_for(server_url)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        logger.debug("Removed session file %s", path)


class MemorySessionStore(SessionStore):
    """In-memory store, mainly for tests."""

    def __init__(self) -> None:
        self._sessions: dict[str, StoredSession] = {}

    def save(
        self,
        server_url: str,
        token: str,
        expires_at: Optional[datetime] = None,
    ) -> None:
        key = normalize_url(server_url)
        self._sessions[key] = StoredSession(
            server_url=key,
            token=token,
            created_at=datetime.now(timezone.utc),
            expires_at=expires_at,
        )

    def load_session(self, server_url: str) -> Optional[StoredSession]:
        return self._sessions.get(normalize_url(server_url))

    def clear(self, server_url: str) -> None:
        self._sessions.pop(normalize_url(server_url), None)
