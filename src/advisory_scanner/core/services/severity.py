from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Sequence

from cvss import CVSS2, CVSS3, CVSS4
from cvss.exceptions import CVSSError

from ..domain.enums import AdvisoryLevel
from ..domain.models import SeverityScore, VulnerabilityRecord

CVSS_TYPE_PREFIX = "CVSS"
DEFAULT_FATAL_SEVERITIES: tuple[str, ...] = ("CRITICAL", "HIGH")
DEFAULT_CVSS_FATAL_THRESHOLD = 7.0

_TRAILING_SCORE_RE = re.compile(r"/(\d+(?:\.\d+)?)$")
_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")


def _in_range(score: float) -> bool:
    return 0.0 <= score <= 10.0


def score_from_vector(vector: str) -> Optional[float]:
    """Compute a base score from a bare CVSS vector with the cvss library."""
    v = vector.strip()
    u = v.upper()
    try:
        if u.startswith("CVSS:4"):
            return float(CVSS4(v).base_score)
        if u.startswith("CVSS:3"):
            return float(CVSS3(v).base_score)
        if u.startswith("AV:"):
            return float(CVSS2(v).base_score)
    except (CVSSError, ValueError, KeyError):
        return None
    return None


def parse_cvss_score(score: str) -> Optional[float]:
    """Parse one CVSS severity entry into a numeric score in [0, 10].

    Tries, in order: a vector ending in a numeric score (``.../9.8``), a plain
    number, then the base score computed from the vector itself. Out-of-range
    values count as unparseable.
    """
    s = score.strip()
    if not s:
        return None

    value: Optional[float] = None
    m = _TRAILING_SCORE_RE.search(s)
    if m and ":" in s:
        value = float(m.group(1))
    elif _NUMBER_RE.match(s):
        value = float(s)
    else:
        value = score_from_vector(s)

    if value is None or not _in_range(value):
        return None
    return value


def is_cvss_entry(entry: SeverityScore) -> bool:
    if entry.type.upper().startswith(CVSS_TYPE_PREFIX):
        return True
    return bool(_NUMBER_RE.match(entry.score.strip()))


def highest_cvss_score(entries: Iterable[SeverityScore]) -> Optional[float]:
    best: Optional[float] = None
    for entry in entries:
        if not is_cvss_entry(entry):
            continue
        value = parse_cvss_score(entry.score)
        if value is not None and (best is None or value > best):
            best = value
    return best


class SeverityClassifier:
    """Reduce a record's severity signals to a fatal/warn advisory level.

    Rules, first applicable wins:

    1. vendor severity is one of the fatal labels (case-insensitive) -> fatal
    2. a valid CVSS score exists: fatal at or above the threshold, else warn
    3. any other vendor severity -> warn
    4. no severity information -> warn
    """

    def __init__(
        self,
        *,
        fatal_severities: Sequence[str] = DEFAULT_FATAL_SEVERITIES,
        cvss_fatal_threshold: float = DEFAULT_CVSS_FATAL_THRESHOLD,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._fatal_labels = frozenset(s.strip().upper() for s in fatal_severities)
        self._threshold = cvss_fatal_threshold
        self._logger = logger or logging.getLogger(__name__)

    def classify(self, vuln: VulnerabilityRecord) -> AdvisoryLevel:
        vendor = (vuln.vendor_severity or "").strip()
        if vendor and vendor.upper() in self._fatal_labels:
            self._logger.debug("%s marked fatal due to vendor severity: %s", vuln.id, vendor)
            return AdvisoryLevel.FATAL

        score = highest_cvss_score(vuln.severity_scores)
        if score is not None:
            if score >= self._threshold:
                self._logger.debug("%s marked fatal due to CVSS score: %s", vuln.id, score)
                return AdvisoryLevel.FATAL
            self._logger.debug("%s marked warn due to CVSS score: %s", vuln.id, score)
            return AdvisoryLevel.WARN

        if vendor:
            self._logger.debug("%s marked warn due to vendor severity: %s", vuln.id, vendor)
            return AdvisoryLevel.WARN

        self._logger.debug("%s marked warn (no severity information)", vuln.id)
        return AdvisoryLevel.WARN
