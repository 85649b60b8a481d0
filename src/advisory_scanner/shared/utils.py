from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urlsplit

# host, path prefix of an advisory page
ADVISORY_PLATFORMS: Tuple[Tuple[str, str], ...] = (
    ("github.com", "/advisories/"),
    ("security.snyk.io", "/vuln/"),
    ("snyk.io", "/vuln/"),
    ("osv.dev", "/vulnerability/"),
    ("www.npmjs.com", "/advisories/"),
    ("npmjs.com", "/advisories/"),
)

CVE_HOSTS = frozenset({"cve.mitre.org", "www.cve.org", "cve.org", "nvd.nist.gov"})


def _split(url: str) -> Optional[Tuple[str, str]]:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    if not host:
        return None
    return host, parts.path or "/"


def is_advisory_url(url: str) -> bool:
    split = _split(url)
    if split is None:
        return False
    host, path = split
    return any(host == h and path.lower().startswith(prefix) for h, prefix in ADVISORY_PLATFORMS)


def is_cve_url(url: str) -> bool:
    split = _split(url)
    if split is None:
        return False
    return split[0] in CVE_HOSTS
