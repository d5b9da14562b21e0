"""Data models for APT package listings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class ListingKind(Enum):
    """Enumeration of package listings."""

    INSTALLED = "installed"
    UPGRADEABLE = "upgradeable"


class ChangeKind(Enum):
    """Enumeration of filesystem changes reported by the watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class PackageRecord:
    """Represents one line of `apt list` output."""

    name: str
    suites: tuple[str, ...]
    architecture: str


@dataclass(frozen=True)
class Snapshot:
    """The result of one successful refresh of a listing."""

    kind: ListingKind
    records: tuple[PackageRecord, ...] = ()
    taken_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class FileEvent:
    """A change observed on a watched path."""

    path: Path
    change: ChangeKind
