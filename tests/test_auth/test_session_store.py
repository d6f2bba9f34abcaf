"""Tests for the session stores."""

from __future__ import annotations

import json
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from dsc.auth.session_store import FileSessionStore, MemorySessionStore, normalize_url
from dsc.exceptions import StorageError

URL = "http://localhost:7880"


@pytest.fixture()
def store(tmp_path: Path) -> FileSessionStore:
    return FileSessionStore(tmp_path / "sessions")


class TestNormalizeUrl:
    def test_trailing_slash_removed(self) -> None:
        assert normalize_url("http://localhost:7880/") == URL

    def test_whitespace_removed(self) -> None:
        assert normalize_url("  http://localhost:7880 ") == URL


class TestFileSessionStore:
    def test_load_never_saved(self, store: FileSessionStore) -> None:
        assert store.load(URL) is None
        assert not store.directory.exists()

    def test_save_and_load(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        assert store.load(URL) == "tok123"

    def test_load_ignores_trailing_slash(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        assert store.load(URL + "/") == "tok123"

    def test_save_replaces_previous(self, store: FileSessionStore) -> None:
        store.save(URL, "old")
        store.save(URL, "new")
        assert store.load(URL) == "new"

    def test_servers_are_separate(self, store: FileSessionStore) -> None:
        store.save(URL, "local")
        store.save("https://docs.example.com", "remote")
        assert store.load(URL) == "local"
        assert store.load("https://docs.example.com") == "remote"

    def test_clear(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        store.clear(URL)
        assert store.load(URL) is None
        assert not store.path_for(URL).exists()

    def test_clear_without_session(self, store: FileSessionStore) -> None:
        store.clear(URL)
        store.clear(URL)
        assert store.load(URL) is None

    def test_file_permissions(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        mode = stat.S_IMODE(store.path_for(URL).stat().st_mode)
        assert mode == 0o600

    def test_file_content(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        data = json.loads(store.path_for(URL).read_text())
        assert data["server_url"] == URL
        assert data["token"] == "tok123"

    def test_corrupt_file_is_ignored(self, store: FileSessionStore) -> None:
        path = store.path_for(URL)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        assert store.load(URL) is None

    def test_undecodable_file_is_ignored(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        store.path_for(URL).write_bytes(b"\xff\xfe\x00garbage")
        assert store.load(URL) is None
        store.clear(URL)
        assert not store.path_for(URL).exists()

    def test_url_mismatch_is_ignored(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123")
        path = store.path_for(URL)
        data = json.loads(path.read_text())
        data["server_url"] = "http://elsewhere"
        path.write_text(json.dumps(data))
        assert store.load(URL) is None

    def test_expired_session(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123", expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
        assert store.load(URL) is None
        assert store.load_session(URL) is not None

    def test_unexpired_session(self, store: FileSessionStore) -> None:
        store.save(URL, "tok123", expires_at=datetime.now(timezone.utc) + timedelta(hours=1))
        assert store.load(URL) == "tok123"

    def test_write_failure_raises_storage_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = FileSessionStore(blocker / "sessions")
        with pytest.raises(StorageError, match="Cannot store session"):
            store.save(URL, "tok123")


class TestMemorySessionStore:
    def test_round_trip_and_clear(self) -> None:
        store = MemorySessionStore()
        assert store.load(URL) is None
        store.save(URL + "/", "tok123")
        assert store.load(URL) == "tok123"
        store.clear(URL)
        assert store.load(URL) is None
