from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .enums import AdvisoryLevel, RangeKind


@dataclass(frozen=True)
class Package:
    name: str
    version: str

    @property
    def key(self) -> str:
        return f"{self.name}@{self.version}"

    @staticmethod
    def from_spec(spec: str) -> "Package":
        """Parse ``name@version``; scoped names (``@scope/name@1.0.0``) are supported."""
        at = spec.rfind("@")
        if at <= 0:
            raise ValueError(f"Invalid package spec (expected name@version): {spec!r}")
        name, version = spec[:at], spec[at + 1:]
        if not name or not version:
            raise ValueError(f"Invalid package spec (expected name@version): {spec!r}")
        return Package(name=name, version=version)


@dataclass(frozen=True)
class RangeEvent:
    introduced: Optional[str] = None
    fixed: Optional[str] = None
    last_affected: Optional[str] = None


@dataclass(frozen=True)
class RangeSpec:
    kind: RangeKind
    events: tuple[RangeEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AffectedEntry:
    package_name: str
    explicit_versions: tuple[str, ...] = field(default_factory=tuple)
    ranges: tuple[RangeSpec, ...] = field(default_factory=tuple)
    ecosystem: Optional[str] = None


@dataclass(frozen=True)
class Reference:
    url: str
    type: Optional[str] = None


@dataclass(frozen=True)
class SeverityScore:
    type: str
    score: str


@dataclass(frozen=True)
class VulnerabilityRecord:
    id: str

    summary: Optional[str] = None
    details: Optional[str] = None

    affected: tuple[AffectedEntry, ...] = field(default_factory=tuple)
    references: tuple[Reference, ...] = field(default_factory=tuple)
    severity_scores: tuple[SeverityScore, ...] = field(default_factory=tuple)
    vendor_severity: Optional[str] = None
    aliases: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Advisory:
    level: AdvisoryLevel
    package: str
    url: Optional[str] = None
    description: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "level": self.level.value,
            "package": self.package,
            "url": self.url,
            "description": self.description,
        }
