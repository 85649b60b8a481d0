from __future__ import annotations

import asyncio
from typing import Any, Iterable, Mapping, Union

from .container import Container
from ..config.settings import ScannerSettings
from ..core.domain.models import Advisory, Package

PackageLike = Union[Package, Mapping[str, Any], str]


def to_package(item: PackageLike) -> Package:
    """Coerce a Package, a ``{"name", "version"}`` mapping or a ``name@version`` string."""
    if isinstance(item, Package):
        return item
    if isinstance(item, str):
        return Package.from_spec(item)
    if isinstance(item, Mapping):
        name, version = item.get("name"), item.get("version")
        if not name or not version:
            raise ValueError(f"Package mapping needs non-empty 'name' and 'version': {dict(item)!r}")
        return Package(name=str(name), version=str(version))
    raise TypeError(f"Unsupported package type: {type(item).__name__}")


class AdvisoryScanner:
    """Security scanner that checks packages against a vulnerability source.

    Each scan builds a fresh source client from the container and closes its
    HTTP connections when the scan finishes, so one scanner can be reused
    across many scans.

    Example:
        # Using default configuration (from environment variables)
        scanner = AdvisoryScanner()
        advisories = scanner.scan_sync([{"name": "lodash", "version": "4.17.20"}])
        scanner.close()

        # Using context manager (recommended)
        with AdvisoryScanner() as scanner:
            for adv in scanner.scan_sync(["express@4.17.1"]):
                print(adv.level.value, adv.package, adv.url)

        # Snyk instead of OSV
        with AdvisoryScanner(source="snyk", snyk_org_id="...", snyk_api_token="...") as scanner:
            advisories = scanner.scan_sync(["minimist@1.2.0"])

        # From async code
        async with AdvisoryScanner() as scanner:
            advisories = await scanner.scan(packages)
    """

    version = "1"

    def __init__(self, **overrides: Any):
        """Initialize the scanner.

        Args:
            **overrides: Any ScannerSettings field (e.g. ``source``, ``timeout_seconds``,
                         ``snyk_api_token``). Fields not given fall back to the
                         ADVISORY_SCANNER_* environment variables, then to defaults.

        Raises:
            pydantic.ValidationError: If an override has the wrong type or is not a known setting.
        """
        self._container = Container()
        self._container.config.from_pydantic(ScannerSettings(**overrides))
        self._container.init_resources()

    async def scan(self, packages: Iterable[PackageLike]) -> list[Advisory]:
        """Return advisories for the installed packages.

        Args:
            packages: Packages as Package objects, mappings with ``name``/``version``
                      or ``name@version`` strings.

        Returns:
            One advisory per (vulnerability, package) pair. Empty when nothing is
            affected or when the source could not be reached.

        Raises:
            SourceAuthorizationError: If the source rejects the configured credentials.
            ValueError: If the source is misconfigured or a package is malformed.
        """
        pkgs = [to_package(p) for p in packages]
        if not pkgs:
            return []
        uc = self._container.scan_uc()
        return await uc.execute(pkgs)

    def scan_sync(self, packages: Iterable[PackageLike]) -> list[Advisory]:
        """Blocking wrapper around :meth:`scan` for callers without an event loop."""
        return asyncio.run(self.scan(packages))

    def close(self) -> None:
        """Release container resources."""
        self._container.shutdown_resources()

    def __enter__(self) -> AdvisoryScanner:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> AdvisoryScanner:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = [
    "AdvisoryScanner",
    "ScannerSettings",
]
