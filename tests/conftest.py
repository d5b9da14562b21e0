"""Pytest configuration and shared fixtures"""
import pytest

from apt_exporter.core.cache import SnapshotCache
from apt_exporter.core.config import AptPaths
from apt_exporter.core.errors import AptCommandError
from apt_exporter.core.models import PackageRecord
from apt_exporter.core.watcher import PollingWatcher


INSTALLED_OUTPUT = b"""Listing... Done
adduser/focal,now 3.118ubuntu2 all [installed,automatic]
nginx/stable,stable-updates 1.18.0 amd64 [installed]
libc6/focal-updates,focal-security,now 2.31-0ubuntu9.9 amd64 [installed]
"""

UPGRADEABLE_OUTPUT = b"""Listing... Done
libc6/focal-updates,focal-security 2.31-0ubuntu9.16 amd64 [upgradable from: 2.31-0ubuntu9.9]
"""


class FakeBackend:
    """Backend returning canned records and counting calls"""

    def __init__(self, installed=None, upgradeable=None):
        self.installed = installed if installed is not None else [
            PackageRecord("nginx", ("stable", "stable-updates"), "amd64"),
        ]
        self.upgradeable = upgradeable if upgradeable is not None else [
            PackageRecord("libc6", ("focal-updates",), "amd64"),
        ]
        self.calls = {"installed": 0, "upgradeable": 0}
        self.fail = set()

    async def list_installed(self):
        self.calls["installed"] += 1
        if "installed" in self.fail:
            raise AptCommandError(command="apt list --installed", returncode=100)
        return list(self.installed)

    async def list_upgradeable(self):
        self.calls["upgradeable"] += 1
        if "upgradeable" in self.fail:
            raise AptCommandError(command="apt list --upgradable", returncode=100)
        return list(self.upgradeable)


@pytest.fixture
def apt_paths(tmp_path):
    """APT signal paths laid out under a temporary root"""
    log_dir = tmp_path / "log" / "apt"
    log_dir.mkdir(parents=True)
    history = log_dir / "history.log"
    history.write_text("")

    periodic = tmp_path / "lib" / "apt" / "periodic"
    periodic.mkdir(parents=True)

    return AptPaths(
        apt_binary=tmp_path / "apt",
        history_log=history,
        periodic_dir=periodic,
        reboot_marker=tmp_path / "run" / "reboot-required",
    )


@pytest.fixture
def cache():
    return SnapshotCache()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def watcher():
    return PollingWatcher(interval=0.01)
