from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..domain.enums import ReferenceType
from ..domain.models import Advisory, Package, Reference, VulnerabilityRecord
from .severity import SeverityClassifier
from .version_matcher import VersionRangeMatcher
from ...shared.text import truncate_description
from ...shared.utils import is_advisory_url, is_cve_url

DEFAULT_MAX_DESCRIPTION_LENGTH = 200


def select_reference_url(references: Sequence[Reference]) -> Optional[str]:
    """Pick the most useful reference URL.

    Advisory-typed or advisory-platform links first, then CVE trackers, then
    whatever comes first. A reference whose URL cannot be parsed still counts
    as the first reference.
    """
    if not references:
        return None
    for ref in references:
        if (ref.type or "").upper() == ReferenceType.ADVISORY.value or is_advisory_url(ref.url):
            return ref.url
    for ref in references:
        if is_cve_url(ref.url):
            return ref.url
    return references[0].url


class AdvisoryProcessor:
    def __init__(
        self,
        matcher: VersionRangeMatcher,
        classifier: SeverityClassifier,
        *,
        max_description_length: int = DEFAULT_MAX_DESCRIPTION_LENGTH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._matcher = matcher
        self._classifier = classifier
        self._max_description_length = max_description_length
        self._logger = logger or logging.getLogger(__name__)

    def process(self, vulns: Sequence[VulnerabilityRecord], packages: Sequence[Package]) -> list[Advisory]:
        if not vulns or not packages:
            return []

        self._logger.info("Processing %d vulnerabilities against %d packages", len(vulns), len(packages))

        advisories: list[Advisory] = []
        seen: set[tuple[str, str]] = set()

        for vuln in vulns:
            for entry in vuln.affected:
                for pkg in packages:
                    pair = (vuln.id, pkg.key)
                    if pair in seen:
                        continue
                    if not self._matcher.is_affected(pkg, entry):
                        continue
                    seen.add(pair)
                    advisory = self._create_advisory(vuln, pkg)
                    advisories.append(advisory)
                    self._logger.debug("Created advisory for %s: %s (%s)", pkg.key, vuln.id, advisory.level.value)

        self._logger.info("Generated %d security advisories", len(advisories))
        return advisories

    def _create_advisory(self, vuln: VulnerabilityRecord, pkg: Package) -> Advisory:
        return Advisory(
            level=self._classifier.classify(vuln),
            package=pkg.name,
            url=select_reference_url(vuln.references),
            description=self._describe(vuln),
            id=vuln.id,
        )

    def _describe(self, vuln: VulnerabilityRecord) -> Optional[str]:
        summary = (vuln.summary or "").strip()
        if summary:
            return summary
        details = (vuln.details or "").strip()
        if details:
            return truncate_description(details, self._max_description_length)
        return None
