"""Backend protocol for package listings."""

from __future__ import annotations

from typing import Protocol

from apt_exporter.core.models import PackageRecord


class PackageBackend(Protocol):
    """Protocol for package backend implementations."""

    async def list_installed(self) -> list[PackageRecord]:
        """List all installed packages.

        Raises:
            TransientError: If the listing command fails.
        """
        ...

    async def list_upgradeable(self) -> list[PackageRecord]:
        """List all packages with a newer candidate version.

        Raises:
            TransientError: If the listing command fails.
        """
        ...
