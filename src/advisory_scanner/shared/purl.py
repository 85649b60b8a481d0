from __future__ import annotations

import re
from typing import Optional

from ..core.domain.models import Package

PURL_RE = re.compile(r"^pkg:(?P<type>[a-z]+)/(?P<name>[^@]+)@(?P<version>.+)$")


def to_purl(name: str, version: str, ecosystem: str = "npm") -> str:
    """Build a package URL; a scope's ``@`` and ``/`` are percent-encoded.

    Examples:
        >>> to_purl("express", "4.17.1")
        'pkg:npm/express@4.17.1'
        >>> to_purl("@types/node", "18.0.0")
        'pkg:npm/%40types%2Fnode@18.0.0'
    """
    encoded = name
    if name.startswith("@"):
        encoded = "%40" + name[1:].replace("/", "%2F", 1)
    return f"pkg:{ecosystem.lower()}/{encoded}@{version}"


def from_purl(purl: str) -> Optional[Package]:
    m = PURL_RE.match(purl)
    if not m:
        return None
    name = m.group("name")
    if name.startswith("%40"):
        name = "@" + name[3:].replace("%2F", "/", 1)
    return Package(name=name, version=m.group("version"))
