"""Tests for credential resolution."""

from __future__ import annotations

import pytest

from dsc.auth.credentials import resolve_credential, session_override
from dsc.auth.session_store import MemorySessionStore
from dsc.exceptions import UnauthenticatedError
from dsc.exit_codes import EXIT_AUTH_FAILURE
from dsc.models import NoCredential, SessionToken

URL = "http://localhost:7880"


class _ExplodingStore(MemorySessionStore):
    """Fails the test if the store is consulted."""

    def load_session(self, server_url):
        raise AssertionError("store must not be read")


class TestSessionOverride:
    def test_flag_wins_over_env(self) -> None:
        assert session_override("flag", {"DSC_SESSION": "env"}) == "flag"

    def test_env_used_without_flag(self) -> None:
        assert session_override(None, {"DSC_SESSION": "env"}) == "env"

    def test_empty_env_ignored(self) -> None:
        assert session_override(None, {"DSC_SESSION": ""}) is None


class TestResolveCredential:
    def test_flag_skips_store(self) -> None:
        cred = resolve_credential(_ExplodingStore(), URL, cli_session="flag", environ={})
        assert cred == SessionToken(token="flag", stored=False)

    def test_env_skips_store(self) -> None:
        cred = resolve_credential(_ExplodingStore(), URL, environ={"DSC_SESSION": "env"})
        assert cred == SessionToken(token="env", stored=False)

    def test_stored_session(self) -> None:
        store = MemorySessionStore()
        store.save(URL, "stored-token")
        cred = resolve_credential(store, URL, environ={})
        assert cred == SessionToken(token="stored-token", stored=True)

    def test_missing_session_required(self) -> None:
        with pytest.raises(UnauthenticatedError) as exc_info:
            resolve_credential(MemorySessionStore(), URL, environ={})
        assert exc_info.value.exit_code == EXIT_AUTH_FAILURE
        assert "dsc login" in str(exc_info.value)

    def test_missing_session_optional(self) -> None:
        cred = resolve_credential(MemorySessionStore(), URL, environ={}, required=False)
        assert isinstance(cred, NoCredential)

    def test_session_of_other_server_not_used(self) -> None:
        store = MemorySessionStore()
        store.save("http://other:7880", "tok")
        cred = resolve_credential(store, URL, environ={}, required=False)
        assert isinstance(cred, NoCredential)
