"""Module for listing APT packages."""

from __future__ import annotations

from pathlib import Path

from apt_exporter.analysis.listing import parse_apt_output
from apt_exporter.core.config import DEFAULT_COMMAND_TIMEOUT
from apt_exporter.core.models import PackageRecord
from apt_exporter.core.shell import run_output


class AptBackend:
    """Package listings from `apt list`."""

    def __init__(
        self, apt_binary: Path = Path("/usr/bin/apt"), timeout: float = DEFAULT_COMMAND_TIMEOUT
    ) -> None:
        self.apt_binary = apt_binary
        self.timeout = timeout

    async def _list(self, flag: str) -> list[PackageRecord]:
        out = await run_output(str(self.apt_binary), "list", flag, timeout=self.timeout)
        return parse_apt_output(out)

    async def list_installed(self) -> list[PackageRecord]:
        """List all installed packages.

        Returns:
            list[PackageRecord]: One record per installed package.
        """
        return await self._list("--installed")

    async def list_upgradeable(self) -> list[PackageRecord]:
        """List all upgradeable packages.

        Returns:
            list[PackageRecord]: One record per upgradeable package.
        """
        return await self._list("--upgradable")
