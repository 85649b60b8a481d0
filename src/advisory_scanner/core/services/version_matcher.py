from __future__ import annotations

import logging
import operator
from typing import Iterable, Optional, Sequence

import semver

from ..domain.enums import RangeKind
from ..domain.models import AffectedEntry, Package, RangeEvent, RangeSpec

ANY_VERSION = "*"

# Longest operators first so "<=" is not read as "<"
_COMPARATORS = (
    (">=", operator.ge),
    ("<=", operator.le),
    ("<", operator.lt),
)


def parse_version(text: str) -> semver.Version:
    """Parse a semantic version the way npm does, tolerating a leading ``v`` or ``=``."""
    cleaned = text.strip().lstrip("=v").strip()
    return semver.Version.parse(cleaned, optional_minor_and_patch=True)


def translate_events(events: Iterable[RangeEvent]) -> list[str]:
    """Translate each range event independently into a version constraint.

    ``introduced: "0"`` means "from the beginning of time" and becomes ``*``.
    """
    constraints: list[str] = []
    for event in events:
        if event.introduced:
            constraints.append(ANY_VERSION if event.introduced == "0" else f">={event.introduced}")
        if event.fixed:
            constraints.append(f"<{event.fixed}")
        if event.last_affected:
            constraints.append(f"<={event.last_affected}")
    return constraints


def split_windows(events: Sequence[RangeEvent]) -> list[list[RangeEvent]]:
    """Partition an ordered event list into vulnerability windows.

    A new window starts at every ``introduced`` event once the current window
    already holds an event, so ``introduced 2.0, fixed 2.3, introduced 2.4,
    fixed 2.6`` yields ``[2.0, 2.3)`` and ``[2.4, 2.6)``.
    """
    windows: list[list[RangeEvent]] = []
    current: list[RangeEvent] = []
    for event in events:
        if event.introduced and current:
            windows.append(current)
            current = []
        current.append(event)
    if current:
        windows.append(current)
    return windows


def satisfies(version: semver.Version, constraint: str) -> bool:
    """Check one ``*``, ``>=V``, ``<V`` or ``<=V`` constraint. Pre-releases are ordered, never excluded."""
    if constraint == ANY_VERSION:
        return True
    for symbol, compare in _COMPARATORS:
        if constraint.startswith(symbol):
            return compare(version, parse_version(constraint[len(symbol):]))
    raise ValueError(f"Unsupported constraint: {constraint!r}")


class VersionRangeMatcher:
    """Decide whether a package version falls inside an affected entry.

    With ``conjoin_events=True`` every event of a range is ANDed into a single
    constraint, which under-matches ranges that describe several disjoint
    windows. The default evaluates each window on its own and ORs them.

    When ``ecosystem`` is set, entries that name a different ecosystem are
    skipped; entries without one are still checked.
    """

    def __init__(
        self,
        *,
        conjoin_events: bool = False,
        ecosystem: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._conjoin_events = conjoin_events
        self._ecosystem = ecosystem.lower() if ecosystem else None
        self._logger = logger or logging.getLogger(__name__)

    def is_affected(self, pkg: Package, entry: AffectedEntry) -> bool:
        if entry.package_name != pkg.name:
            return False

        if self._ecosystem and entry.ecosystem and entry.ecosystem.lower() != self._ecosystem:
            self._logger.debug("Skipping %s entry for %s", entry.ecosystem, pkg.key)
            return False

        if pkg.version in entry.explicit_versions:
            self._logger.debug("Package %s found in explicit versions list", pkg.key)
            return True

        for spec in entry.ranges:
            if spec.kind is not RangeKind.SEMVER:
                self._logger.debug("Unsupported range type %s for %s", spec.kind.value, pkg.name)
                continue
            if self.is_version_in_semver_range(pkg.version, spec):
                return True
        return False

    def is_version_in_semver_range(self, version: str, spec: RangeSpec) -> bool:
        if not spec.events:
            return False

        if self._conjoin_events:
            groups = [list(spec.events)]
        else:
            groups = split_windows(spec.events)

        for group in groups:
            constraints = translate_events(group)
            if not constraints:
                continue
            if self._satisfies_all(version, constraints):
                return True
        return False

    def _satisfies_all(self, version: str, constraints: Sequence[str]) -> bool:
        self._logger.debug("Checking %s against range: %s", version, " ".join(constraints))
        try:
            candidate = parse_version(version)
            return all(satisfies(candidate, c) for c in constraints)
        except (ValueError, TypeError) as e:
            self._logger.warning("Failed to evaluate version %s against %s: %s", version, list(constraints), e)
            return False
