"""Directory watching that uploads files once they stop changing.

The loop has three parts:

- :class:`Debouncer` -- per-file timers; a file is dispatched only after it
  has been quiet for the configured period, and never twice at once.
- :func:`retry_with_backoff` -- retries a failed upload with exponentially
  growing delays; giving up is logged, and only a rejected stored session
  is raised.
- :class:`DirectoryWatcher` -- wires a watchdog observer to the debouncer
  and blocks until SIGINT/SIGTERM or an external stop event.
"""

from __future__ import annotations

import itertools
import logging
import os
import signal
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from dsc.exceptions import DscError, UnauthenticatedError
from dsc.models import WatchConfig
from dsc.upload import matches_pattern

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., Any]


class Debouncer:
    """Delay per-file dispatch until a file has been quiet for *quiet_period*.

    Every :meth:`touch` restarts the file's timer. When a timer fires while
    an upload of the same file is still running, the timer is re-armed so
    the latest content is picked up afterwards.

    Args:
        dispatch: Called with the path once the file is stable. Runs on the
            timer's thread.
        quiet_period: Seconds without events before dispatching.
        timer_factory: ``threading.Timer`` compatible factory, replaceable in
            tests.
    """

    def __init__(
        self,
        dispatch: Callable[[Path], None],
        quiet_period: float,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._dispatch = dispatch
        self._quiet_period = quiet_period
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._timers: dict[Path, Any] = {}
        self._generation: dict[Path, int] = {}
        self._counter = itertools.count(1)
        self._in_progress: set[Path] = set()
        self._closed = False

    @property
    def quiet_period(self) -> float:
        return self._quiet_period

    def touch(self, path: Path) -> None:
        """Record a change to *path* and (re)start its timer."""
        with self._lock:
            if self._closed:
                return
            self._schedule(path)

    def pending(self) -> list[Path]:
        """Paths with a running timer."""
        with self._lock:
            return list(self._timers)

    def is_in_progress(self, path: Path) -> bool:
        with self._lock:
            return path in self._in_progress

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no dispatch is running; false if *timeout* ran out."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._in_progress, timeout)

    def cancel_all(self) -> None:
        """Cancel every pending timer and refuse further events."""
        with self._lock:
            self._closed = True
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

    def _schedule(self, path: Path) -> None:
        # Caller holds the lock.
        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()
        generation = next(self._counter)
        self._generation[path] = generation
        timer = self._timer_factory(self._quiet_period, self._fire, args=(path, generation))
        timer.daemon = True
        self._timers[path] = timer
        timer.start()

    def _fire(self, path: Path, generation: int) -> None:
        with self._lock:
            if self._closed or self._generation.get(path) != generation:
                return
            self._timers.pop(path, None)
            if path in self._in_progress:
                logger.debug("Upload of %s still running, deferring", path)
                self._schedule(path)
                return
            self._in_progress.add(path)
        try:
            self._dispatch(path)
        finally:
            with self._lock:
                self._in_progress.discard(path)
                self._idle.notify_all()
                if path not in self._timers:
                    self._generation.pop(path, None)


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before retry number *attempt* (0-based): ``base * 2**attempt`` capped."""
    return min(base * (2 ** attempt), cap)


def retry_with_backoff(
    action: Callable[[], Any],
    settings: WatchConfig,
    description: str,
    wait: Optional[Callable[[float], bool]] = None,
) -> bool:
    """Run *action*, retrying failures with exponential backoff.

    Args:
        action: The upload to perform.
        settings: Retry count and delays.
        description: Used in log messages.
        wait: Sleeps for the given seconds and returns true when the loop
            should stop instead of retrying. Defaults to a plain sleep.

    Returns:
        True if *action* eventually succeeded.

    Raises:
        UnauthenticatedError: Immediately, since retrying would resend the
            rejected session.
    """
    if wait is None:
        wait = threading.Event().wait
    for attempt in range(settings.max_retries + 1):
        try:
            action()
            return True
        except UnauthenticatedError:
            raise
        except (DscError, OSError) as exc:
            if attempt >= settings.max_retries:
                logger.error(
                    "Giving up on %s after %d attempts: %s", description, attempt + 1, exc
                )
                return False
            delay = backoff_delay(attempt, settings.backoff_seconds, settings.max_backoff_seconds)
            logger.warning(
                "Uploading %s failed (%s), retrying in %.1fs (attempt %d/%d)",
                description,
                exc,
                delay,
                attempt + 1,
                settings.max_retries,
            )
            if wait(delay):
                logger.info("Stopped while waiting to retry %s", description)
                return False
    return False


class UploadEventHandler(FileSystemEventHandler):
    """Feeds created, modified, and moved-in files to a :class:`Debouncer`."""

    def __init__(self, debouncer: Debouncer, pattern: Optional[str] = None) -> None:
        super().__init__()
        self._debouncer = debouncer
        self._pattern = pattern

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event.dest_path, event.is_directory)

    def _handle(self, raw_path: Any, is_directory: bool) -> None:
        if is_directory:
            return
        path = Path(os.fsdecode(raw_path))
        if path.name.startswith(".") or not matches_pattern(path, self._pattern):
            return
        logger.debug("Change detected: %s", path)
        self._debouncer.touch(path)


class DirectoryWatcher:
    """Watch directories and upload every stable file.

    Args:
        directories: Directories to observe.
        upload_file: Uploads one file; raising marks the attempt as failed.
        settings: Debounce and retry configuration.
        recursive: Observe subdirectories too.
        pattern: Optional glob on file names.
        observer_factory: watchdog observer class, replaceable in tests.
    """

    def __init__(
        self,
        directories: Iterable[Path],
        upload_file: Callable[[Path], None],
        settings: WatchConfig,
        recursive: bool = False,
        pattern: Optional[str] = None,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self._directories = list(directories)
        self._upload_file = upload_file
        self._settings = settings
        self._recursive = recursive
        self._observer_factory = observer_factory
        self._stop = threading.Event()
        self._failure: Optional[UnauthenticatedError] = None
        self.debouncer = Debouncer(self._handle_stable_file, settings.debounce_ms / 1000.0)
        self._handler = UploadEventHandler(self.debouncer, pattern)

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    def stop(self) -> None:
        self._stop.set()

    def _handle_stable_file(self, path: Path) -> None:
        if not path.is_file():
            logger.debug("%s disappeared before upload", path)
            return
        try:
            retry_with_backoff(
                lambda: self._upload_file(path),
                self._settings,
                str(path),
                wait=self._stop.wait,
            )
        except UnauthenticatedError as exc:
            logger.error("Stopping watch, uploading %s was rejected: %s", path, exc)
            self._failure = exc
            self._stop.set()

    def run(self) -> None:
        """Block until stopped, uploading files as they settle.

        Running uploads are waited for before returning.

        Raises:
            UnauthenticatedError: If the server rejected the stored session.
        """
        observer = self._observer_factory()
        for directory in self._directories:
            observer.schedule(self._handler, str(directory), recursive=self._recursive)
            logger.info("Watching %s%s", directory, " (recursive)" if self._recursive else "")

        previous = self._install_signal_handlers()
        observer.start()
        try:
            while not self._stop.wait(1.0):
                pass
        finally:
            logger.info("Stopping watch")
            observer.stop()
            observer.join()
            self.debouncer.cancel_all()
            self.debouncer.wait_idle()
            self._restore_signal_handlers(previous)
        if self._failure is not None:
            raise self._failure

    def _install_signal_handlers(self) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}

        def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
            self._stop.set()

        previous: dict[int, Any] = {}
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, _handler)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: dict[int, Any]) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
