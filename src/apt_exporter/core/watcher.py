"""Timer-based filesystem watcher.

Change detection compares modification times and sizes between polls, the
same signal the package manager leaves behind when it rewrites its logs and
stamps. Watched directories are observed one level deep and report events for
their children.
"""

from __future__ import annotations

import asyncio
import os
import stat
from pathlib import Path
from typing import AsyncIterator

from apt_exporter.core.errors import WatchError
from apt_exporter.core.logging import get_logger
from apt_exporter.core.models import ChangeKind, FileEvent

log = get_logger(__name__)

Signature = tuple[int, int]
Notification = FileEvent | WatchError

_CLOSED = object()


def _signature(st: os.stat_result) -> Signature:
    return st.st_mtime_ns, st.st_size


def scan(path: Path, is_dir: bool) -> dict[Path, Signature]:
    """Collect signatures for a watched path.

    Args:
        path: The watched file or directory.
        is_dir: Whether the path was a directory when it was registered.

    Returns:
        A mapping of file path to (mtime_ns, size). Missing paths yield an
        empty mapping.

    Raises:
        OSError: For errors other than the path not existing.
    """
    if not is_dir:
        try:
            return {path: _signature(path.stat())}
        except FileNotFoundError:
            return {}

    entries: dict[Path, Signature] = {}
    try:
        with os.scandir(path) as it:
            for entry in it:
                try:
                    entries[Path(entry.path)] = _signature(entry.stat())
                except FileNotFoundError:
                    continue
    except FileNotFoundError:
        return {}

    return entries


def diff(old: dict[Path, Signature], new: dict[Path, Signature]) -> list[FileEvent]:
    """Compute events between two scans of the same watched path."""
    events = [
        FileEvent(p, ChangeKind.CREATED if p not in old else ChangeKind.MODIFIED)
        for p, sig in new.items()
        if old.get(p) != sig
    ]
    events.extend(FileEvent(p, ChangeKind.REMOVED) for p in old if p not in new)

    return events


class PollingWatcher:
    """Watches files and directories by polling their modification times.

    Events and errors are delivered through `notifications()` until `close()`
    is called.
    """

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval
        self._watches: dict[Path, bool] = {}
        self._state: dict[Path, dict[Path, Signature]] = {}
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def watched(self) -> list[Path]:
        return list(self._watches)

    def add(self, path: Path) -> None:
        """Start watching a path.

        Args:
            path: A file or directory. Directories are watched one level deep.

        Raises:
            WatchError: If the path cannot be stat'ed or listed.
        """
        if self._closed:
            raise WatchError("Watcher is closed", path=str(path))

        try:
            is_dir = stat.S_ISDIR(path.stat().st_mode)
            state = scan(path, is_dir)
        except OSError as e:
            raise WatchError(path=str(path), error=e.strerror or str(e)) from e

        self._watches[path] = is_dir
        self._state[path] = state
        log.info("watch_added", path=str(path), directory=is_dir, entries=len(state))

    def poll(self) -> list[Notification]:
        """Scan every watched path once and return what changed."""
        notifications: list[Notification] = []

        for path, is_dir in self._watches.items():
            try:
                current = scan(path, is_dir)
            except OSError as e:
                notifications.append(WatchError(path=str(path), error=e.strerror or str(e)))
                continue

            notifications.extend(diff(self._state[path], current))
            self._state[path] = current

        return notifications

    async def _run(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.interval)
            for notification in self.poll():
                self._queue.put_nowait(notification)

    def start(self) -> None:
        """Start the polling task on the running event loop."""
        if self._task is None and not self._closed:
            self._task = asyncio.get_running_loop().create_task(self._run(), name="watcher-poll")

    async def notifications(self) -> AsyncIterator[Notification]:
        """Yield events and errors until the watcher is closed."""
        self.start()
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    def close(self) -> None:
        """Stop polling and end `notifications()`."""
        if self._closed:
            return

        self._closed = True
        if self._task is not None:
            self._task.cancel()
        self._queue.put_nowait(_CLOSED)
        log.debug("watcher_closed", watched=len(self._watches))
