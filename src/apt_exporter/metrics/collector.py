"""Prometheus collector exposing cached APT listings."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from apt_exporter.analysis.listing import count_by_labels
from apt_exporter.core.cache import SnapshotCache
from apt_exporter.core.logging import get_logger
from apt_exporter.core.models import ListingKind, Snapshot

log = get_logger(__name__)

NAMESPACE = "apt"
PACKAGE_LABELS = ["architecture", "suite"]


def up_family(value: int) -> GaugeMetricFamily:
    return GaugeMetricFamily(
        f"{NAMESPACE}_up", "Whether collecting APT's metrics was successful.", value=value
    )


def reboot_required_family(value: int) -> GaugeMetricFamily:
    return GaugeMetricFamily(
        f"{NAMESPACE}_reboot_required", "Whether a system restart is required.", value=value
    )


def packages_family(snapshot: Snapshot, name: str, documentation: str) -> CounterMetricFamily:
    """Count a snapshot's (package, suite) pairs by architecture and suite."""
    family = CounterMetricFamily(f"{NAMESPACE}_{name}", documentation, labels=PACKAGE_LABELS)
    for (architecture, suite), count in sorted(count_by_labels(snapshot.records).items()):
        family.add_metric([architecture, suite], count)

    return family


class AptCollector:
    """Custom collector reading whatever the snapshot cache currently holds.

    Collection never runs APT; it only reads the cache and checks for the
    reboot marker.
    """

    def __init__(self, cache: SnapshotCache, reboot_marker: Path = Path("/run/reboot-required")) -> None:
        self.cache = cache
        self.reboot_marker = reboot_marker

    def describe(self) -> Iterator[Metric]:
        # Package families depend on the data and are left out.
        yield up_family(0)
        yield reboot_required_family(0)

    def collect(self) -> Iterator[Metric]:
        installed = self.cache.get_or_none(ListingKind.INSTALLED)
        if installed is None:
            log.warning("collect_cache_miss", kind=ListingKind.INSTALLED.value)
            yield up_family(0)
            return

        yield packages_family(
            installed,
            "packages_installed",
            "How many APT packages are installed by architecture and suite.",
        )

        upgradeable = self.cache.get_or_none(ListingKind.UPGRADEABLE)
        if upgradeable is None:
            log.warning("collect_cache_miss", kind=ListingKind.UPGRADEABLE.value)
            yield up_family(0)
            return

        yield packages_family(
            upgradeable,
            "packages_upgradeable",
            "How many APT packages are upgradeable by architecture and suite.",
        )

        yield reboot_required_family(1 if self.reboot_marker.exists() else 0)
        yield up_family(1)
