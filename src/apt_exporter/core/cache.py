"""In-memory snapshot cache shared by the refresher and the collector."""

from __future__ import annotations

import threading

from apt_exporter.core.errors import SnapshotNotFoundError
from apt_exporter.core.logging import get_logger
from apt_exporter.core.models import ListingKind, Snapshot

log = get_logger(__name__)


class SnapshotCache:
    """Last known good snapshot per listing kind.

    Entries never expire. A snapshot is only replaced by the next successful
    refresh of the same kind. Snapshots are immutable, so readers can hold on
    to the returned object without copying it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[ListingKind, Snapshot] = {}

    def set(self, kind: ListingKind, snapshot: Snapshot) -> None:
        """Replace the snapshot for a kind.

        Args:
            kind: The listing kind.
            snapshot: The new snapshot.
        """
        with self._lock:
            self._entries[kind] = snapshot

        log.debug("cache_set", kind=kind.value, count=len(snapshot))

    def get_or_none(self, kind: ListingKind) -> Snapshot | None:
        with self._lock:
            return self._entries.get(kind)

    def get(self, kind: ListingKind) -> Snapshot:
        """Get the most recent snapshot for a kind.

        Args:
            kind: The listing kind.

        Returns:
            The snapshot from the most recent `set`.

        Raises:
            SnapshotNotFoundError: If no refresh of that kind has succeeded.
        """
        snapshot = self.get_or_none(kind)
        if snapshot is None:
            raise SnapshotNotFoundError(kind=kind.value)
        return snapshot
