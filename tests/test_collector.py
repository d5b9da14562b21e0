"""Tests for the Prometheus collector"""
import pytest
from prometheus_client import CollectorRegistry, generate_latest

from apt_exporter.analysis.listing import parse_apt_output
from apt_exporter.core.models import ListingKind, PackageRecord, Snapshot
from apt_exporter.metrics.collector import AptCollector


@pytest.fixture
def registry(cache, apt_paths):
    reg = CollectorRegistry()
    reg.register(AptCollector(cache, apt_paths.reboot_marker))
    return reg


def fill(cache, installed=None, upgradeable=None):
    if installed is not None:
        cache.set(ListingKind.INSTALLED, Snapshot(ListingKind.INSTALLED, tuple(installed)))
    if upgradeable is not None:
        cache.set(ListingKind.UPGRADEABLE, Snapshot(ListingKind.UPGRADEABLE, tuple(upgradeable)))


def test_describe_lists_fixed_families(cache):
    names = [m.name for m in AptCollector(cache).describe()]

    assert names == ["apt_up", "apt_reboot_required"]


def test_empty_cache_only_reports_down(cache, registry):
    families = list(AptCollector(cache).collect())

    assert [f.name for f in families] == ["apt_up"]
    assert registry.get_sample_value("apt_up") == 0
    assert registry.get_sample_value("apt_reboot_required") is None


def test_installed_only_keeps_installed_counts(cache, registry):
    fill(cache, installed=[PackageRecord("nginx", ("stable",), "amd64")])

    assert registry.get_sample_value("apt_up") == 0
    assert registry.get_sample_value(
        "apt_packages_installed_total", {"architecture": "amd64", "suite": "stable"}
    ) == 1
    assert registry.get_sample_value("apt_reboot_required") is None


def test_full_collection(cache, registry):
    installed = parse_apt_output(b"nginx/stable,stable-updates 1.18.0 amd64 [installed]\n")
    upgradeable = [
        PackageRecord("libc6", ("focal-updates", "focal-security"), "amd64"),
        PackageRecord("libc-bin", ("focal-updates",), "amd64"),
    ]
    fill(cache, installed=installed, upgradeable=upgradeable)

    assert registry.get_sample_value("apt_up") == 1
    assert registry.get_sample_value(
        "apt_packages_installed_total", {"architecture": "amd64", "suite": "stable"}
    ) == 1
    assert registry.get_sample_value(
        "apt_packages_installed_total", {"architecture": "amd64", "suite": "stable-updates"}
    ) == 1
    assert registry.get_sample_value(
        "apt_packages_upgradeable_total", {"architecture": "amd64", "suite": "focal-updates"}
    ) == 2
    assert registry.get_sample_value(
        "apt_packages_upgradeable_total", {"architecture": "amd64", "suite": "focal-security"}
    ) == 1
    assert registry.get_sample_value("apt_reboot_required") == 0


def test_empty_upgradeable_snapshot_is_up(cache, registry):
    fill(cache, installed=[], upgradeable=[])

    assert registry.get_sample_value("apt_up") == 1
    assert b"apt_packages_upgradeable_total{" not in generate_latest(registry)


def test_reboot_marker_presence(cache, registry, apt_paths):
    fill(cache, installed=[], upgradeable=[])
    apt_paths.reboot_marker.parent.mkdir(parents=True)

    assert registry.get_sample_value("apt_reboot_required") == 0

    apt_paths.reboot_marker.write_text("*** System restart required ***\n")
    assert registry.get_sample_value("apt_reboot_required") == 1

    apt_paths.reboot_marker.write_text("")
    assert registry.get_sample_value("apt_reboot_required") == 1


def test_collect_reflects_latest_snapshot(cache, registry):
    record = PackageRecord("nginx", ("stable",), "amd64")
    fill(cache, installed=[record], upgradeable=[record])
    assert registry.get_sample_value(
        "apt_packages_upgradeable_total", {"architecture": "amd64", "suite": "stable"}
    ) == 1

    fill(cache, upgradeable=[])

    assert registry.get_sample_value(
        "apt_packages_upgradeable_total", {"architecture": "amd64", "suite": "stable"}
    ) is None
    assert registry.get_sample_value(
        "apt_packages_installed_total", {"architecture": "amd64", "suite": "stable"}
    ) == 1
