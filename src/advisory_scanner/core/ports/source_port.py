from __future__ import annotations

from typing import Protocol, Sequence

from ..domain.models import Package, VulnerabilityRecord


class VulnerabilitySourcePort(Protocol):
    async def query_vulnerabilities(self, packages: Sequence[Package]) -> list[VulnerabilityRecord]:
        """Return vulnerability records that may affect the given packages.

        Records are not yet matched against versions; that is the processor's job.
        Must raise SourceAuthorizationError when the source rejects credentials.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the source."""
