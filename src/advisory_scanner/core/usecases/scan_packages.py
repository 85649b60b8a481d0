from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..domain.errors import SourceAuthorizationError
from ..domain.models import Advisory, Package
from ..ports.source_port import VulnerabilitySourcePort
from ..services.processor import AdvisoryProcessor


class ScanPackagesUseCase:
    """Query the source for the packages and turn the results into advisories.

    Fails open: any error yields an empty advisory list so installation is not
    blocked by network trouble. Authorization failures fail closed and
    propagate, because then the scan could not run at all.
    """

    def __init__(
        self,
        source: VulnerabilitySourcePort,
        processor: AdvisoryProcessor,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._source = source
        self._processor = processor
        self._logger = logger or logging.getLogger(__name__)

    async def execute(self, packages: Sequence[Package]) -> list[Advisory]:
        if not packages:
            return []
        try:
            vulns = await self._source.query_vulnerabilities(packages)
            return self._processor.process(vulns, packages)
        except SourceAuthorizationError:
            self._logger.error("Vulnerability source rejected the credentials; aborting scan")
            raise
        except Exception as e:
            self._logger.error("Scan failed, allowing installation: %s", e, exc_info=True)
            return []
        finally:
            await self._close_source()

    async def _close_source(self) -> None:
        try:
            await self._source.aclose()
        except Exception as e:
            self._logger.warning("Failed to close vulnerability source: %s", e)
