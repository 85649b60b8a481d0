from __future__ import annotations

from enum import Enum


class AdvisoryLevel(Enum):
    FATAL = "fatal"
    WARN = "warn"


class RangeKind(Enum):
    SEMVER = "SEMVER"
    ECOSYSTEM = "ECOSYSTEM"
    GIT = "GIT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_str(cls, value: str | None) -> "RangeKind":
        """Parse an OSV range type; anything unrecognised becomes UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


class ReferenceType(Enum):
    ADVISORY = "ADVISORY"
    ARTICLE = "ARTICLE"
    DETECTION = "DETECTION"
    DISCUSSION = "DISCUSSION"
    REPORT = "REPORT"
    FIX = "FIX"
    INTRODUCED = "INTRODUCED"
    GIT = "GIT"
    PACKAGE = "PACKAGE"
    EVIDENCE = "EVIDENCE"
    WEB = "WEB"
    OTHER = "OTHER"


class SourceErrorKind(Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    SERVER = "server"
    RATE_LIMIT = "rate_limit"
    CLIENT = "client"
    AUTH = "auth"
    PARSE = "parse"

    @property
    def retryable(self) -> bool:
        return self in (
            SourceErrorKind.TIMEOUT,
            SourceErrorKind.NETWORK,
            SourceErrorKind.SERVER,
            SourceErrorKind.RATE_LIMIT,
        )

    @classmethod
    def from_status(cls, status_code: int) -> "SourceErrorKind":
        """Classify an unsuccessful HTTP status code."""
        if status_code == 408:
            return cls.TIMEOUT
        if status_code == 429:
            return cls.RATE_LIMIT
        if status_code in (401, 403):
            return cls.AUTH
        if status_code >= 500:
            return cls.SERVER
        return cls.CLIENT
