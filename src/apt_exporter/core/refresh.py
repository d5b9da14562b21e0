"""Keeps the snapshot cache in step with APT activity."""

from __future__ import annotations

import time
from pathlib import Path

from apt_exporter.backends.base import PackageBackend
from apt_exporter.core.cache import SnapshotCache
from apt_exporter.core.config import AptPaths
from apt_exporter.core.errors import TransientError, WatchError
from apt_exporter.core.logging import get_logger
from apt_exporter.core.models import FileEvent, ListingKind, Snapshot
from apt_exporter.core.watcher import PollingWatcher

log = get_logger(__name__)


class Refresher:
    """Refreshes cached listings when APT leaves a trace on disk.

    A write to the history log means packages were installed or removed, which
    can change both listings. A periodic update stamp means the package lists
    were refreshed, which only changes what is upgradeable.
    """

    def __init__(
        self,
        backend: PackageBackend,
        cache: SnapshotCache,
        watcher: PollingWatcher,
        paths: AptPaths | None = None,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.watcher = watcher
        self.paths = paths or AptPaths()

        self._triggers: dict[Path, tuple[ListingKind, ...]] = {
            self.paths.history_log: (ListingKind.INSTALLED, ListingKind.UPGRADEABLE),
        }
        for stamp in self.paths.stamps:
            self._triggers[stamp] = (ListingKind.UPGRADEABLE,)

    async def _load(self, kind: ListingKind) -> Snapshot:
        start = time.perf_counter()

        if kind is ListingKind.INSTALLED:
            records = await self.backend.list_installed()
        else:
            records = await self.backend.list_upgradeable()

        snapshot = Snapshot(kind=kind, records=tuple(records))
        self.cache.set(kind, snapshot)

        duration_ms = int((time.perf_counter() - start) * 1000)
        log.info("refresh_complete", kind=kind.value, count=len(snapshot), duration_ms=duration_ms)

        return snapshot

    async def refresh(self, kind: ListingKind) -> bool:
        """Re-run the listing for a kind and replace its snapshot.

        On failure the error is logged and the previous snapshot stays in place.

        Args:
            kind: The listing kind to refresh.

        Returns:
            True if the cache was updated.
        """
        try:
            await self._load(kind)
        except TransientError as e:
            log.error("refresh_failed", kind=kind.value, error=e.message, context=e.context)
            return False

        return True

    async def refresh_installed(self) -> bool:
        return await self.refresh(ListingKind.INSTALLED)

    async def refresh_upgradeable(self) -> bool:
        return await self.refresh(ListingKind.UPGRADEABLE)

    async def start(self) -> None:
        """Populate the cache and register the watches.

        Raises:
            TransientError: If an initial listing fails.
            WatchError: If a path cannot be watched.
        """
        for kind, path in (
            (ListingKind.INSTALLED, self.paths.history_log),
            (ListingKind.UPGRADEABLE, self.paths.periodic_dir),
        ):
            try:
                await self._load(kind)
            except TransientError as e:
                raise e.with_context(phase="startup", kind=kind.value)

            self.watcher.add(path)

        log.info("refresher_started", watched=[str(p) for p in self.watcher.watched])

    async def handle_event(self, event: FileEvent) -> tuple[ListingKind, ...]:
        """Refresh whatever listings an event affects.

        Args:
            event: The filesystem event.

        Returns:
            The kinds that were refreshed, in order.
        """
        kinds = self._triggers.get(event.path, ())
        if not kinds:
            log.debug("event_ignored", path=str(event.path), change=event.change.value)
            return ()

        log.info(
            "event_received",
            path=str(event.path),
            change=event.change.value,
            refresh=[k.value for k in kinds],
        )
        for kind in kinds:
            await self.refresh(kind)

        return kinds

    async def run(self) -> None:
        """Consume watcher notifications until the watcher is closed."""
        async for item in self.watcher.notifications():
            if isinstance(item, WatchError):
                log.error("watch_error", error=item.message, context=item.context)
                continue

            await self.handle_event(item)

        log.info("refresher_stopped")
