from __future__ import annotations

import asyncio
from typing import Sequence

import pytest

from advisory_scanner.core.domain.enums import AdvisoryLevel, RangeKind, SourceErrorKind
from advisory_scanner.core.domain.errors import SourceAuthorizationError, SourceError
from advisory_scanner.core.domain.models import (
    AffectedEntry,
    Package,
    RangeEvent,
    RangeSpec,
    VulnerabilityRecord,
)
from advisory_scanner.core.ports.source_port import VulnerabilitySourcePort
from advisory_scanner.core.services.processor import AdvisoryProcessor
from advisory_scanner.core.services.severity import SeverityClassifier
from advisory_scanner.core.services.version_matcher import VersionRangeMatcher
from advisory_scanner.core.usecases.scan_packages import ScanPackagesUseCase


class FakeSource(VulnerabilitySourcePort):
    def __init__(self, records: Sequence[VulnerabilityRecord] = (), error: Exception | None = None) -> None:
        self._records = list(records)
        self._error = error
        self.queried: list[Package] | None = None
        self.closed = False

    async def query_vulnerabilities(self, packages):
        self.queried = list(packages)
        if self._error is not None:
            raise self._error
        return self._records

    async def aclose(self) -> None:
        self.closed = True


def processor() -> AdvisoryProcessor:
    return AdvisoryProcessor(VersionRangeMatcher(), SeverityClassifier())


MINIMIST = VulnerabilityRecord(
    id="GHSA-xvch-5gv4-984h",
    summary="Prototype Pollution in minimist",
    affected=(
        AffectedEntry(
            package_name="minimist",
            ranges=(RangeSpec(kind=RangeKind.SEMVER, events=(RangeEvent(introduced="0"), RangeEvent(fixed="1.2.6"))),),
        ),
    ),
    vendor_severity="CRITICAL",
)


def test_scan_returns_advisories_and_closes_source():
    src = FakeSource([MINIMIST])
    uc = ScanPackagesUseCase(src, processor())
    out = asyncio.run(uc.execute([Package("minimist", "1.2.0"), Package("express", "4.17.1")]))
    assert [(a.package, a.level) for a in out] == [("minimist", AdvisoryLevel.FATAL)]
    assert src.closed


def test_scan_empty_packages_skips_source():
    src = FakeSource([MINIMIST])
    assert asyncio.run(ScanPackagesUseCase(src, processor()).execute([])) == []
    assert src.queried is None


@pytest.mark.parametrize(
    "error",
    [SourceError(SourceErrorKind.NETWORK, "down"), RuntimeError("unexpected")],
)
def test_scan_fails_open(error, caplog):
    src = FakeSource(error=error)
    with caplog.at_level("ERROR"):
        out = asyncio.run(ScanPackagesUseCase(src, processor()).execute([Package("minimist", "1.2.0")]))
    assert out == []
    assert src.closed
    assert "Scan failed" in caplog.text


def test_scan_fails_closed_on_authorization_error():
    src = FakeSource(error=SourceAuthorizationError("bad token", status_code=401))
    with pytest.raises(SourceAuthorizationError):
        asyncio.run(ScanPackagesUseCase(src, processor()).execute([Package("minimist", "1.2.0")]))
    assert src.closed
