"""Tests for request authentication and endpoint paths."""

from __future__ import annotations

import base64
import logging

import httpx
import pytest

from dsc.auth.request_builder import (
    SESSION_HEADER,
    authenticate,
    checkfile_path,
    credential_for,
    upload_path,
)
from dsc.models import (
    BasicAuth,
    HeaderAuth,
    IntegrationEndpoint,
    NoCredential,
    SessionEndpoint,
    SessionToken,
    SourceEndpoint,
)


def _request(headers: dict[str, str] | None = None) -> httpx.Request:
    return httpx.Request("GET", "http://localhost:7880/api/v1/sec/item/search", headers=headers)


def _auth_header_names(request: httpx.Request) -> set[str]:
    names = {"x-docspell-auth", "authorization", "x-token"}
    return {name for name in names if name in request.headers}


class TestAuthenticate:
    def test_session_token(self) -> None:
        request = authenticate(_request(), SessionToken(token="tok"))
        assert request.headers[SESSION_HEADER] == "tok"
        assert "Authorization" not in request.headers

    def test_basic_auth(self) -> None:
        request = authenticate(_request(), BasicAuth(username="joe", password="secret"))
        expected = base64.b64encode(b"joe:secret").decode("ascii")
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert SESSION_HEADER not in request.headers

    def test_header_auth(self) -> None:
        request = authenticate(_request(), HeaderAuth(name="X-Token", value="abc"))
        assert request.headers["X-Token"] == "abc"
        assert _auth_header_names(request) == {"x-token"}

    def test_no_credential(self) -> None:
        request = authenticate(_request(), NoCredential())
        assert _auth_header_names(request) == set()

    def test_existing_auth_headers_replaced(self) -> None:
        request = _request({SESSION_HEADER: "stale", "Authorization": "Bearer old"})
        authenticate(request, BasicAuth(username="joe", password="secret"))
        assert SESSION_HEADER not in request.headers
        assert request.headers["Authorization"].startswith("Basic ")

    def test_custom_header_replaced_by_session(self) -> None:
        request = _request()
        authenticate(request, HeaderAuth(name="Docspell-Integration", value="s"))
        authenticate(request, SessionToken(token="abc"))
        assert "Docspell-Integration" not in request.headers
        assert request.headers[SESSION_HEADER] == "abc"

    @pytest.mark.parametrize(
        "credential",
        [
            SessionToken(token="tok"),
            BasicAuth(username="joe", password="secret"),
            HeaderAuth(name="X-Token", value="abc"),
            NoCredential(),
        ],
    )
    def test_at_most_one_mechanism(self, credential) -> None:
        request = _request({SESSION_HEADER: "stale"})
        authenticate(request, credential)
        assert len(_auth_header_names(request)) <= 1


class TestSecretRedaction:
    def test_secrets_masked_by_default(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="dsc.auth.request_builder"):
            authenticate(_request(), BasicAuth(username="joe", password="hunter2"), False)
        assert "joe" in caplog.text
        assert "hunter2" not in caplog.text

    def test_session_token_masked(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="dsc.auth.request_builder"):
            authenticate(_request(), SessionToken(token="sekrit-token"), False)
        assert "sekrit-token" not in caplog.text

    def test_unsafe_debug_reveals(
        self, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DSC_UNSAFE_DEBUG", "1")
        with caplog.at_level(logging.DEBUG, logger="dsc.auth.request_builder"):
            authenticate(_request(), HeaderAuth(name="X-Token", value="abc123"))
        assert "abc123" in caplog.text


class TestEndpointPaths:
    def test_upload_paths(self) -> None:
        assert upload_path(SessionEndpoint()) == "/api/v1/sec/upload/item"
        assert upload_path(SourceEndpoint(source_id="s1")) == "/api/v1/open/upload/item/s1"
        assert (
            upload_path(IntegrationEndpoint(collective="family"))
            == "/api/v1/open/integration/item/family"
        )

    def test_checkfile_paths(self) -> None:
        assert checkfile_path(SessionEndpoint(), "abc") == "/api/v1/sec/checkfile/abc"
        assert (
            checkfile_path(SourceEndpoint(source_id="s1"), "abc")
            == "/api/v1/open/checkfile/s1/abc"
        )
        assert (
            checkfile_path(IntegrationEndpoint(collective="family"), "abc")
            == "/api/v1/open/integration/checksum/family/abc"
        )


class TestCredentialFor:
    def test_source_is_anonymous_even_with_session(self) -> None:
        cred = credential_for(SourceEndpoint(source_id="s1"), SessionToken(token="tok"))
        assert isinstance(cred, NoCredential)

    def test_integration_uses_own_credential(self) -> None:
        basic = BasicAuth(username="joe", password="secret")
        cred = credential_for(IntegrationEndpoint(collective="c", credential=basic))
        assert cred == basic

    def test_session_endpoint_uses_session(self) -> None:
        token = SessionToken(token="tok", stored=True)
        assert credential_for(SessionEndpoint(), token) == token
