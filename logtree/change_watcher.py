from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver, PollingObserverVFS
from watchdog.events import (
    FileSystemEventHandler,
    FileSystemEvent,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
)
from .models import ChangeEvent, ChangeKind, WatcherState
from .error_handling import WatcherSetupError, WatcherRuntimeError, handle_error
from typing import Iterator, List, Optional
import logging
import os
import threading

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1

_KINDS = {
    EVENT_TYPE_CREATED: ChangeKind.CREATED,
    EVENT_TYPE_MODIFIED: ChangeKind.WRITTEN,
    EVENT_TYPE_DELETED: ChangeKind.REMOVED,
}


def list_visible(path: str) -> List[os.DirEntry]:
    """os.scandir without dot-entries, so hidden subtrees are never polled"""
    with os.scandir(path) as entries:
        return [entry for entry in entries if not entry.name.startswith('.')]


class EventChannel:
    """
    Single-slot, thread-safe hand-off between the observer and a consumer.

    Putting into a full slot replaces the unconsumed event, so a slow
    consumer only ever sees the most recent one.
    """

    def __init__(self):
        self._slot: Optional[ChangeEvent] = None
        self._closed = False
        self._cond = threading.Condition()
        self.dropped = 0

    def put(self, event: ChangeEvent) -> bool:
        """Store event; returns True if an older event was dropped"""
        with self._cond:
            if self._closed:
                return False
            replaced = self._slot is not None
            if replaced:
                self.dropped += 1
            self._slot = event
            self._cond.notify()
            return replaced

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Take the buffered event, waiting up to timeout; None on timeout or close"""
        with self._cond:
            self._cond.wait_for(lambda: self._slot is not None or self._closed, timeout)
            event, self._slot = self._slot, None
            return event

    def close(self):
        with self._cond:
            self._closed = True
            self._slot = None
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: "ChangeWatcher"):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent):
        self.watcher._dispatch(event)


class ChangeWatcher:
    """Polls a directory subtree and reports create, write and remove events."""

    def __init__(self, root: str, interval: float = DEFAULT_POLL_INTERVAL, ignore_hidden: bool = True):
        self.root = os.path.abspath(root)
        self.interval = interval
        self.ignore_hidden = ignore_hidden
        self.watched_directories: List[str] = []
        self._state = WatcherState.IDLE
        self._lock = threading.Lock()
        self._observer: Optional[BaseObserver] = None
        self._starting = False
        self._channel = EventChannel()

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def dropped_events(self) -> int:
        return self._channel.dropped

    def start(self):
        """
        Register the tree and begin polling.

        Raises:
            WatcherSetupError: If the root is missing, not a directory,
                unreadable, or the observer fails to start. The watcher
                is closed afterwards.
        """
        with self._lock:
            if self._state is not WatcherState.IDLE or self._starting:
                state = "starting" if self._starting else self._state.value
                raise WatcherSetupError(
                    f"Watcher is {state}, cannot start",
                    details={"root": self.root}
                )
            self._starting = True

        try:
            self.watched_directories = self._register(self.root)
            observer = self._make_observer()
            observer.schedule(_ChangeHandler(self), self.root, recursive=True)
            observer.start()
        except OSError as e:
            self._shutdown()
            raise WatcherSetupError(
                f"Error adding directory to watcher: {e}",
                details={"root": self.root, "errno": e.errno}
            ) from e
        finally:
            with self._lock:
                self._starting = False

        with self._lock:
            self._observer = observer
            closed_meanwhile = self._state is WatcherState.CLOSED
            if not closed_meanwhile:
                self._state = WatcherState.WATCHING
        if closed_meanwhile:
            observer.stop()
            observer.join()
            return

        logger.info(
            f"Watching {len(self.watched_directories)} directories under {self.root} "
            f"every {self.interval}s"
        )

    def _make_observer(self) -> BaseObserver:
        if self.ignore_hidden:
            return PollingObserverVFS(os.stat, list_visible, polling_interval=self.interval)
        return PollingObserver(timeout=self.interval)

    def _register(self, root: str) -> List[str]:
        """Collect root and all subdirectories; any listing error aborts"""
        if not os.path.exists(root):
            raise FileNotFoundError(2, "No such file or directory", root)
        if not os.path.isdir(root):
            raise NotADirectoryError(20, "Not a directory", root)

        def fail(error: OSError):
            raise error

        directories = []
        for dirpath, dirnames, _ in os.walk(root, onerror=fail):
            if self.ignore_hidden:
                dirnames[:] = [d for d in dirnames if not d.startswith('.')]
            directories.append(dirpath)
        return directories

    def is_hidden(self, path: str) -> bool:
        rel_path = os.path.relpath(path, self.root)
        if rel_path == os.curdir:
            return False
        return any(part.startswith('.') for part in rel_path.split(os.sep))

    def _translate(self, event: FileSystemEvent) -> Optional[ChangeEvent]:
        kind = _KINDS.get(event.event_type)
        if kind is None:
            return None
        # a directory "write" only repeats a child's create or remove
        if event.is_directory and kind is ChangeKind.WRITTEN:
            return None
        path = os.fsdecode(event.src_path)
        if self.ignore_hidden and self.is_hidden(path):
            return None
        return ChangeEvent(kind, path, event.is_directory)

    def _dispatch(self, event: FileSystemEvent):
        """Runs on the observer thread for every raw watchdog event"""
        try:
            if (event.event_type == EVENT_TYPE_DELETED and event.is_directory
                    and os.path.normpath(os.fsdecode(event.src_path)) == self.root):
                handle_error(
                    logger,
                    WatcherRuntimeError("Watched directory was removed", details={"root": self.root}),
                    "watch"
                )
                self._shutdown()
                return

            change = self._translate(event)
            if change is None:
                return
            if self._channel.put(change):
                logger.debug(f"Dropped unconsumed event, now holding {change}")
        except Exception as e:
            handle_error(
                logger,
                WatcherRuntimeError(
                    f"Failed to process {event.event_type} event: {e}",
                    details={"path": repr(event.src_path)}
                ),
                "watch"
            )

    def next_event(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Next event, or None on timeout or unless the watcher is watching"""
        if self._state is not WatcherState.WATCHING:
            return None
        return self._channel.get(timeout)

    def events(self) -> Iterator[ChangeEvent]:
        """Yield events one at a time while watching; ends at once if never started"""
        while self._state is WatcherState.WATCHING:
            event = self._channel.get(self.interval)
            if event is not None:
                yield event

    def _shutdown(self) -> bool:
        with self._lock:
            if self._state is WatcherState.CLOSED:
                return False
            self._state = WatcherState.CLOSED
            observer = self._observer
        if observer is not None:
            observer.stop()
        self._channel.close()
        return True

    def close(self):
        """Stop observing. Safe to call more than once."""
        if self._shutdown():
            logger.info(f"Stopped watching {self.root}")
        observer = self._observer
        if observer is not None and observer.is_alive() and observer is not threading.current_thread():
            observer.join()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.close()
