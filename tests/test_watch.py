"""Tests for the watch loop: debouncing, retries, and event handling."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

import pytest
from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent, DirCreatedEvent

from dsc.exceptions import ConnectionError_, ServerError, UnauthenticatedError
from dsc.models import WatchConfig
from dsc.watch import (
    Debouncer,
    DirectoryWatcher,
    UploadEventHandler,
    backoff_delay,
    retry_with_backoff,
)


class FakeTimer:
    """Manually fired stand-in for threading.Timer."""

    created: list["FakeTimer"]

    def __init__(self, interval: float, function: Callable[..., Any], args: tuple = ()) -> None:
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args)


@pytest.fixture(autouse=True)
def _reset_timers() -> None:
    FakeTimer.created = []


def _live_timers() -> list[FakeTimer]:
    return [t for t in FakeTimer.created if not t.cancelled]


class TestDebouncer:
    def test_two_events_one_dispatch(self) -> None:
        dispatched: list[Path] = []
        debouncer = Debouncer(dispatched.append, 0.5, timer_factory=FakeTimer)
        path = Path("/inbox/a.pdf")

        debouncer.touch(path)
        debouncer.touch(path)

        assert len(FakeTimer.created) == 2
        assert FakeTimer.created[0].cancelled
        # A cancelled timer firing anyway must not dispatch.
        FakeTimer.created[0].fire()
        assert dispatched == []

        FakeTimer.created[1].fire()
        assert dispatched == [path]

    def test_timer_uses_quiet_period(self) -> None:
        debouncer = Debouncer(lambda p: None, 0.25, timer_factory=FakeTimer)
        debouncer.touch(Path("a"))
        assert FakeTimer.created[0].interval == 0.25
        assert FakeTimer.created[0].daemon
        assert FakeTimer.created[0].started

    def test_files_are_independent(self) -> None:
        dispatched: list[Path] = []
        debouncer = Debouncer(dispatched.append, 0.5, timer_factory=FakeTimer)
        debouncer.touch(Path("a"))
        debouncer.touch(Path("b"))
        for timer in _live_timers():
            timer.fire()
        assert sorted(dispatched) == [Path("a"), Path("b")]

    def test_pending_cleared_after_fire(self) -> None:
        debouncer = Debouncer(lambda p: None, 0.5, timer_factory=FakeTimer)
        debouncer.touch(Path("a"))
        assert debouncer.pending() == [Path("a")]
        FakeTimer.created[0].fire()
        assert debouncer.pending() == []

    def test_no_concurrent_dispatch_for_same_file(self) -> None:
        path = Path("a")
        calls: list[Path] = []
        debouncer: Debouncer

        def dispatch(p: Path) -> None:
            calls.append(p)
            assert debouncer.is_in_progress(p)
            if len(calls) == 1:
                # File changes again while its upload is running.
                debouncer.touch(p)
                FakeTimer.created[-1].fire()
                assert len(calls) == 1

        debouncer = Debouncer(dispatch, 0.5, timer_factory=FakeTimer)
        debouncer.touch(path)
        FakeTimer.created[0].fire()

        assert calls == [path]
        assert not debouncer.is_in_progress(path)
        # The deferred timer was re-armed and dispatches afterwards.
        live = [t for t in _live_timers() if t is not FakeTimer.created[0]]
        live[-1].fire()
        assert calls == [path, path]

    def test_cancel_all(self) -> None:
        dispatched: list[Path] = []
        debouncer = Debouncer(dispatched.append, 0.5, timer_factory=FakeTimer)
        debouncer.touch(Path("a"))
        debouncer.cancel_all()
        assert FakeTimer.created[0].cancelled
        FakeTimer.created[0].fire()
        debouncer.touch(Path("b"))
        assert dispatched == []
        assert len(FakeTimer.created) == 1

    def test_finished_paths_are_forgotten(self) -> None:
        debouncer = Debouncer(lambda p: None, 0.5, timer_factory=FakeTimer)
        for name in ("a", "b", "c"):
            debouncer.touch(Path(name))
        for timer in _live_timers():
            timer.fire()
        assert debouncer._generation == {}

    def test_dispatch_error_releases_file(self) -> None:
        def dispatch(p: Path) -> None:
            raise RuntimeError("boom")

        debouncer = Debouncer(dispatch, 0.5, timer_factory=FakeTimer)
        debouncer.touch(Path("a"))
        with pytest.raises(RuntimeError):
            FakeTimer.created[0].fire()
        assert not debouncer.is_in_progress(Path("a"))


class TestBackoff:
    def test_doubles(self) -> None:
        assert [backoff_delay(i, 1.0, 30.0) for i in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self) -> None:
        assert backoff_delay(10, 1.0, 30.0) == 30.0


class TestRetryWithBackoff:
    def _settings(self, retries: int = 3) -> WatchConfig:
        return WatchConfig(max_retries=retries, backoff_seconds=1.0, max_backoff_seconds=3.0)

    def test_success_first_try(self) -> None:
        waits: list[float] = []
        assert retry_with_backoff(lambda: None, self._settings(), "a", wait=lambda d: waits.append(d) or False)
        assert waits == []

    def test_retries_then_succeeds(self) -> None:
        attempts = []
        waits: list[float] = []

        def action() -> None:
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError_("down")

        ok = retry_with_backoff(
            action, self._settings(), "a", wait=lambda d: waits.append(d) or False
        )
        assert ok
        assert len(attempts) == 3
        assert waits == [1.0, 2.0]

    def test_gives_up(self) -> None:
        attempts = []
        waits: list[float] = []

        def action() -> None:
            attempts.append(1)
            raise ServerError("HTTP 500")

        ok = retry_with_backoff(
            action, self._settings(3), "a", wait=lambda d: waits.append(d) or False
        )
        assert not ok
        assert len(attempts) == 4
        assert waits == [1.0, 2.0, 3.0]

    def test_stop_during_wait(self) -> None:
        attempts = []

        def action() -> None:
            attempts.append(1)
            raise OSError("gone")

        assert not retry_with_backoff(action, self._settings(), "a", wait=lambda d: True)
        assert len(attempts) == 1

    def test_unauthenticated_not_retried(self) -> None:
        attempts = []
        waits: list[float] = []

        def action() -> None:
            attempts.append(1)
            raise UnauthenticatedError("session rejected")

        with pytest.raises(UnauthenticatedError):
            retry_with_backoff(
                action, self._settings(), "a", wait=lambda d: waits.append(d) or False
            )
        assert len(attempts) == 1
        assert waits == []

    def test_unexpected_errors_propagate(self) -> None:
        def action() -> None:
            raise ValueError("bug")

        with pytest.raises(ValueError):
            retry_with_backoff(action, self._settings(), "a", wait=lambda d: False)


class _RecordingDebouncer:
    def __init__(self) -> None:
        self.touched: list[Path] = []

    def touch(self, path: Path) -> None:
        self.touched.append(path)


class TestUploadEventHandler:
    def test_created_modified_moved(self) -> None:
        debouncer = _RecordingDebouncer()
        handler = UploadEventHandler(debouncer)  # type: ignore[arg-type]
        handler.on_created(FileCreatedEvent("/in/a.pdf"))
        handler.on_modified(FileModifiedEvent("/in/a.pdf"))
        handler.on_moved(FileMovedEvent("/tmp/x.part", "/in/b.pdf"))
        assert debouncer.touched == [Path("/in/a.pdf"), Path("/in/a.pdf"), Path("/in/b.pdf")]

    def test_directories_and_hidden_files_ignored(self) -> None:
        debouncer = _RecordingDebouncer()
        handler = UploadEventHandler(debouncer)  # type: ignore[arg-type]
        handler.on_created(DirCreatedEvent("/in/sub"))
        handler.on_created(FileCreatedEvent("/in/.a.pdf.swp"))
        assert debouncer.touched == []

    def test_pattern(self) -> None:
        debouncer = _RecordingDebouncer()
        handler = UploadEventHandler(debouncer, "*.pdf")  # type: ignore[arg-type]
        handler.on_created(FileCreatedEvent("/in/a.txt"))
        handler.on_created(FileCreatedEvent("/in/a.pdf"))
        assert debouncer.touched == [Path("/in/a.pdf")]


class FakeObserver:
    def __init__(self) -> None:
        self.scheduled: list[tuple[str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler: Any, path: str, recursive: bool = False) -> None:
        self.scheduled.append((path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self) -> None:
        pass


class TestDirectoryWatcher:
    def test_run_until_stopped(self, tmp_path: Path) -> None:
        observer = FakeObserver()
        watcher = DirectoryWatcher(
            [tmp_path],
            lambda p: None,
            WatchConfig(),
            recursive=True,
            observer_factory=lambda: observer,
        )
        watcher.stop()
        watcher.run()
        assert observer.scheduled == [(str(tmp_path), True)]
        assert observer.started and observer.stopped

    def test_stable_file_uploaded_with_retry(self, tmp_path: Path) -> None:
        doc = tmp_path / "a.pdf"
        doc.write_bytes(b"x")
        calls: list[Path] = []

        def upload(path: Path) -> None:
            calls.append(path)
            if len(calls) == 1:
                raise ConnectionError_("down")

        settings = WatchConfig(backoff_seconds=0.0, max_backoff_seconds=0.0)
        watcher = DirectoryWatcher([tmp_path], upload, settings, observer_factory=FakeObserver)
        watcher._handle_stable_file(doc)
        assert calls == [doc, doc]

    def test_vanished_file_skipped(self, tmp_path: Path) -> None:
        calls: list[Path] = []
        watcher = DirectoryWatcher([tmp_path], calls.append, WatchConfig(), observer_factory=FakeObserver)
        watcher._handle_stable_file(tmp_path / "gone.pdf")
        assert calls == []

    def test_rejected_session_stops_watch(self, tmp_path: Path) -> None:
        first, second = tmp_path / "a.pdf", tmp_path / "b.pdf"
        for doc in (first, second):
            doc.write_bytes(b"x")
        calls: list[Path] = []

        def upload(path: Path) -> None:
            calls.append(path)
            raise UnauthenticatedError("HTTP 401")

        watcher = DirectoryWatcher([tmp_path], upload, WatchConfig(), observer_factory=FakeObserver)
        watcher._handle_stable_file(first)
        assert watcher.stop_event.is_set()
        with pytest.raises(UnauthenticatedError):
            watcher.run()
        assert calls == [first]

    def test_run_waits_for_running_upload(self, tmp_path: Path) -> None:
        doc = tmp_path / "a.pdf"
        doc.write_bytes(b"x")
        started = threading.Event()
        release = threading.Event()
        finished: list[Path] = []

        def upload(path: Path) -> None:
            started.set()
            release.wait(5)
            finished.append(path)

        watcher = DirectoryWatcher(
            [tmp_path],
            upload,
            WatchConfig(debounce_ms=10),
            observer_factory=FakeObserver,
        )
        runner = threading.Thread(target=watcher.run)
        runner.start()
        watcher.debouncer.touch(doc)
        assert started.wait(5)
        watcher.stop()
        runner.join(0.5)
        assert runner.is_alive()
        release.set()
        runner.join(5)
        assert not runner.is_alive()
        assert finished == [doc]

    def test_end_to_end_debounce(self, tmp_path: Path) -> None:
        doc = tmp_path / "a.pdf"
        doc.write_bytes(b"x")
        uploaded = threading.Event()
        calls: list[Path] = []

        def upload(path: Path) -> None:
            calls.append(path)
            uploaded.set()

        watcher = DirectoryWatcher(
            [tmp_path], upload, WatchConfig(debounce_ms=10), observer_factory=FakeObserver
        )
        watcher.debouncer.touch(doc)
        watcher.debouncer.touch(doc)
        assert uploaded.wait(5.0)
        watcher.debouncer.cancel_all()
        assert calls == [doc]
