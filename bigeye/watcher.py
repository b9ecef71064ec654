"""
Watcher Layer - Filesystem monitoring for the supervisor.

Monitors the configured watch paths using watchdog and translates raw
watchdog events into ChangeEvents. Directory events, ignored paths and
event types that do not describe a content change (opened, closed) are
dropped here; debouncing happens later, on the supervisor's event loop.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Set

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .core.errors import WatchError
from .core.events import ChangeEvent, ChangeKind
from .core.ignore import IgnoreRules

KIND_BY_EVENT_TYPE: Dict[str, ChangeKind] = {
    EVENT_TYPE_CREATED: ChangeKind.CREATED,
    EVENT_TYPE_MODIFIED: ChangeKind.MODIFIED,
    EVENT_TYPE_DELETED: ChangeKind.DELETED,
    EVENT_TYPE_MOVED: ChangeKind.RENAMED,
}


class ChangeEventHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events as ChangeEvents.

    Runs on the watchdog observer thread, so ``callback`` must be safe to
    call from a foreign thread.
    """

    def __init__(
        self,
        callback: Callable[[ChangeEvent], None],
        ignore: Optional[IgnoreRules] = None,
        only: Optional[Set[str]] = None,
    ):
        super().__init__()
        self.callback = callback
        self.ignore = ignore
        self.only = only

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle any filesystem event."""
        if event.is_directory:
            return

        kind = KIND_BY_EVENT_TYPE.get(event.event_type)
        if kind is None:
            return

        path = self._pick_path(event)
        if path is None:
            return

        self.callback(ChangeEvent(kind, path))

    def _pick_path(self, event: FileSystemEvent) -> Optional[str]:
        """Choose the path to report, or None if the event should be dropped.

        Renames report the destination unless it is ignored or outside the
        watched set, in which case the source is reported instead.
        """
        candidates = []
        dest = getattr(event, "dest_path", "")
        if event.event_type == EVENT_TYPE_MOVED and dest:
            candidates.append(os.fsdecode(dest))
        candidates.append(os.fsdecode(event.src_path))

        for path in candidates:
            if self.only is not None and path not in self.only:
                continue
            if self.ignore is not None and self.ignore.matches(path):
                continue
            return path
        return None


class FileWatcher:
    """Owns a watchdog Observer covering every watch path."""

    def __init__(
        self,
        paths: Iterable[str],
        ignore: Optional[IgnoreRules] = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.paths = tuple(paths)
        self.ignore = ignore
        self.observer_factory = observer_factory
        self._observer: Optional[Observer] = None

    @property
    def active(self) -> bool:
        return self._observer is not None

    def start(self, callback: Callable[[ChangeEvent], None]) -> None:
        """Start filesystem monitoring.

        Args:
            callback: Receives each ChangeEvent, on the observer thread

        Raises:
            WatchError: If a path does not exist or cannot be watched
        """
        if self._observer is not None:
            raise RuntimeError("watcher already started")

        base = self.ignore.cwd if self.ignore is not None else os.getcwd()
        observer = self.observer_factory()
        try:
            for raw in self.paths:
                watch_path = Path(base, raw).resolve()

                if not watch_path.exists():
                    raise WatchError(f"Path does not exist: {watch_path}")

                if watch_path.is_dir():
                    handler = ChangeEventHandler(callback, self.ignore)
                    observer.schedule(handler, str(watch_path), recursive=True)
                else:
                    # Single files are watched through their parent directory
                    handler = ChangeEventHandler(callback, self.ignore, only={str(watch_path)})
                    observer.schedule(handler, str(watch_path.parent), recursive=False)

            observer.start()
        except WatchError:
            raise
        except (OSError, RuntimeError) as e:
            raise WatchError(f"Failed to start filesystem watching: {e}") from e

        self._observer = observer

    def stop(self) -> None:
        """Stop the observer thread and wait for it to exit."""
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join()
