from __future__ import annotations

import pytest

from advisory_scanner.core.domain.enums import RangeKind
from advisory_scanner.core.domain.models import AffectedEntry, Package, RangeEvent, RangeSpec
from advisory_scanner.core.services.version_matcher import (
    VersionRangeMatcher,
    split_windows,
    translate_events,
)


def semver(*events: RangeEvent) -> RangeSpec:
    return RangeSpec(kind=RangeKind.SEMVER, events=tuple(events))


def test_translate_events():
    events = [RangeEvent(introduced="0"), RangeEvent(introduced="1.2.0"), RangeEvent(fixed="2.0.0"), RangeEvent(last_affected="1.9.9")]
    assert translate_events(events) == ["*", ">=1.2.0", "<2.0.0", "<=1.9.9"]


def test_split_windows():
    events = (
        RangeEvent(introduced="2.0.0"),
        RangeEvent(fixed="2.3.0"),
        RangeEvent(introduced="2.4.0"),
        RangeEvent(fixed="2.6.0"),
    )
    windows = split_windows(events)
    assert windows == [list(events[:2]), list(events[2:])]


@pytest.mark.parametrize(
    "version,expected",
    [("4.17.20", True), ("0.0.1", True), ("4.17.21", False), ("5.0.0", False)],
)
def test_introduced_zero_fixed(version, expected):
    m = VersionRangeMatcher()
    spec = semver(RangeEvent(introduced="0"), RangeEvent(fixed="4.17.21"))
    assert m.is_version_in_semver_range(version, spec) is expected


def test_introduced_zero_alone_matches_everything():
    m = VersionRangeMatcher()
    assert m.is_version_in_semver_range("99.0.0", semver(RangeEvent(introduced="0")))


def test_last_affected_is_inclusive():
    m = VersionRangeMatcher()
    spec = semver(RangeEvent(introduced="1.0.0"), RangeEvent(last_affected="1.5.0"))
    assert m.is_version_in_semver_range("1.5.0", spec)
    assert not m.is_version_in_semver_range("1.5.1", spec)
    assert not m.is_version_in_semver_range("0.9.0", spec)


def test_empty_events_never_match():
    assert not VersionRangeMatcher().is_version_in_semver_range("1.0.0", semver())


def test_invalid_version_is_not_affected(caplog):
    m = VersionRangeMatcher()
    spec = semver(RangeEvent(introduced="0"), RangeEvent(fixed="2.0.0"))
    with caplog.at_level("WARNING"):
        assert not m.is_version_in_semver_range("not-a-version", spec)
    assert "Failed to evaluate" in caplog.text


@pytest.mark.parametrize(
    "version",
    ["1.0.0-next.3", "1.0.0-canary.5", "1.0.0-0", "1.0.0-alpha.beta", "0.9.0-rc.1"],
)
def test_prerelease_versions_below_fix_are_affected(version):
    m = VersionRangeMatcher()
    spec = semver(RangeEvent(introduced="0"), RangeEvent(fixed="1.0.0"))
    assert m.is_version_in_semver_range(version, spec)


def test_prerelease_ordering_against_bounds():
    m = VersionRangeMatcher()
    spec = semver(RangeEvent(introduced="1.0.0"), RangeEvent(fixed="1.2.0"))
    # 1.0.0-0 sorts before 1.0.0, 1.2.0-beta.1 before 1.2.0
    assert not m.is_version_in_semver_range("1.0.0-0", spec)
    assert m.is_version_in_semver_range("1.2.0-beta.1", spec)
    assert not m.is_version_in_semver_range("1.2.0", spec)


def test_prerelease_bounds_are_compared_by_identifier():
    m = VersionRangeMatcher()
    spec = semver(RangeEvent(introduced="0"), RangeEvent(fixed="2.0.0-next.10"))
    assert m.is_version_in_semver_range("2.0.0-next.9", spec)
    assert not m.is_version_in_semver_range("2.0.0-next.10", spec)
    assert not m.is_version_in_semver_range("2.0.0", spec)


def test_leading_v_is_tolerated():
    spec = semver(RangeEvent(introduced="0"), RangeEvent(fixed="1.0.0"))
    assert VersionRangeMatcher().is_version_in_semver_range("v0.5.0", spec)


def test_invalid_bound_is_not_affected(caplog):
    spec = semver(RangeEvent(introduced="0"), RangeEvent(fixed="not-a-version"))
    with caplog.at_level("WARNING"):
        assert not VersionRangeMatcher().is_version_in_semver_range("1.0.0", spec)
    assert "Failed to evaluate" in caplog.text


MULTI_WINDOW = semver(
    RangeEvent(introduced="2.0.0"),
    RangeEvent(fixed="2.3.0"),
    RangeEvent(introduced="2.4.0"),
    RangeEvent(fixed="2.6.0"),
)


@pytest.mark.parametrize(
    "version,expected",
    [("2.1.0", True), ("2.5.0", True), ("2.3.5", False), ("1.9.0", False), ("2.6.0", False)],
)
def test_multi_window_matches_each_window(version, expected):
    assert VersionRangeMatcher().is_version_in_semver_range(version, MULTI_WINDOW) is expected


def test_conjoined_events_under_match_multi_window():
    m = VersionRangeMatcher(conjoin_events=True)
    assert not m.is_version_in_semver_range("2.1.0", MULTI_WINDOW)
    assert not m.is_version_in_semver_range("2.5.0", MULTI_WINDOW)


def test_conjoined_single_window_is_unchanged():
    spec = semver(RangeEvent(introduced="1.0.0"), RangeEvent(fixed="1.2.0"))
    for conjoin in (False, True):
        m = VersionRangeMatcher(conjoin_events=conjoin)
        assert m.is_version_in_semver_range("1.1.0", spec)
        assert not m.is_version_in_semver_range("1.2.0", spec)


def test_is_affected_name_mismatch():
    entry = AffectedEntry(package_name="lodash", explicit_versions=("1.0.0",))
    assert not VersionRangeMatcher().is_affected(Package("underscore", "1.0.0"), entry)


def test_is_affected_explicit_version():
    entry = AffectedEntry(package_name="lodash", explicit_versions=("1.0.0", "1.0.1"))
    m = VersionRangeMatcher()
    assert m.is_affected(Package("lodash", "1.0.1"), entry)
    assert not m.is_affected(Package("lodash", "1.0.2"), entry)


def test_is_affected_skips_non_semver_ranges():
    entry = AffectedEntry(
        package_name="lodash",
        ranges=(
            RangeSpec(kind=RangeKind.GIT, events=(RangeEvent(introduced="0"),)),
            RangeSpec(kind=RangeKind.ECOSYSTEM, events=(RangeEvent(introduced="0"),)),
        ),
    )
    assert not VersionRangeMatcher().is_affected(Package("lodash", "1.0.0"), entry)


def test_is_affected_any_semver_range():
    entry = AffectedEntry(
        package_name="lodash",
        ranges=(
            semver(RangeEvent(introduced="1.0.0"), RangeEvent(fixed="1.1.0")),
            semver(RangeEvent(introduced="3.0.0"), RangeEvent(fixed="3.1.0")),
        ),
    )
    assert VersionRangeMatcher().is_affected(Package("lodash", "3.0.5"), entry)


def test_is_affected_skips_other_ecosystems():
    entry = AffectedEntry(package_name="requests", ecosystem="PyPI", explicit_versions=("2.0.0",))
    m = VersionRangeMatcher(ecosystem="npm")
    assert not m.is_affected(Package("requests", "2.0.0"), entry)


def test_is_affected_ecosystem_is_case_insensitive_and_optional():
    m = VersionRangeMatcher(ecosystem="npm")
    assert m.is_affected(Package("lodash", "1.0.0"), AffectedEntry(package_name="lodash", ecosystem="NPM", explicit_versions=("1.0.0",)))
    assert m.is_affected(Package("lodash", "1.0.0"), AffectedEntry(package_name="lodash", explicit_versions=("1.0.0",)))
