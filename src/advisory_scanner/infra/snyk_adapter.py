from __future__ import annotations

import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from ..config.urls import (
    SNYK_API_BASE_URL,
    get_snyk_batch_issues_url,
    get_snyk_package_issues_url,
    resolve_snyk_link,
)
from ..core.domain.enums import SourceErrorKind
from ..core.domain.errors import SourceAuthorizationError, SourceError
from ..core.domain.models import (
    AffectedEntry,
    Package,
    Reference,
    SeverityScore,
    VulnerabilityRecord,
)
from ..core.services.retry import RetryExecutor
from ..core.services.source_client import BatchPage, QueryPage, VulnerabilitySourceClient
from ..shared.purl import from_purl, to_purl
from .http_client import HttpClient
from .osv_adapter import validate_payload
from .schemas import SnykErrorResponse, SnykIssue, SnykIssuesResponse

logger = logging.getLogger(__name__)

SNYK_API_VERSION = "2024-10-15"
DEFAULT_PERMISSION_MESSAGE = "Organization is not allowed to perform this action."


def _issue_packages(issue: SnykIssue) -> list[Package]:
    found: dict[str, Package] = {}
    for coord in issue.attributes.coordinates or ():
        for rep in coord.representations:
            ref = rep.package
            if ref is None:
                continue
            pkg: Optional[Package] = None
            if ref.name and ref.version:
                pkg = Package(name=ref.name, version=ref.version)
            elif ref.url:
                pkg = from_purl(ref.url)
            if pkg is not None:
                found.setdefault(pkg.key, pkg)
    return list(found.values())


def _to_domain(issue: SnykIssue, packages: Sequence[Package]) -> VulnerabilityRecord:
    attrs = issue.attributes
    scores: tuple[SeverityScore, ...] = ()
    if attrs.cvss_score is not None:
        scores = (SeverityScore(type="CVSS", score=str(attrs.cvss_score)),)
    return VulnerabilityRecord(
        id=issue.id,
        summary=attrs.title,
        details=attrs.description,
        affected=tuple(AffectedEntry(package_name=p.name, explicit_versions=(p.version,)) for p in packages),
        references=tuple(Reference(url=r.url) for r in (attrs.references or ())),
        severity_scores=scores,
        vendor_severity=attrs.effective_severity_level or attrs.severity,
    )


class SnykAdapter(VulnerabilitySourceClient):
    """Snyk REST source: authenticated, batch queries return full issues.

    Issues apply to an exact package version, so each record carries that
    version as an explicit affected version.
    """

    source_name = "Snyk"

    def __init__(
        self,
        http_client: HttpClient,
        retry: RetryExecutor,
        *,
        org_id: Optional[str],
        api_token: Optional[str],
        base_url: str = SNYK_API_BASE_URL,
        api_version: str = SNYK_API_VERSION,
        ecosystem: str = "npm",
        **kwargs,
    ) -> None:
        if not org_id or not api_token:
            raise ValueError("Snyk source requires both an organization id and an API token")
        super().__init__(retry, **kwargs)
        self._http = http_client
        self._org_id = org_id
        self._auth_headers = {"Authorization": f"token {api_token}"}
        self._base_url = base_url
        self._api_version = api_version
        self._ecosystem = ecosystem

    async def _call(self, method: str, url: str, payload: Optional[dict] = None) -> SnykIssuesResponse:
        try:
            if method == "POST":
                raw = await self._http.post_json(url, payload or {}, headers=self._auth_headers)
            else:
                raw = await self._http.get_json(url, headers=self._auth_headers)
        except SourceError as e:
            if e.kind is SourceErrorKind.AUTH:
                raise SourceAuthorizationError(self._auth_message(e), status_code=e.status_code) from e
            detail = self._error_detail(e)
            if detail:
                raise SourceError(e.kind, f"{e} ({detail})", status_code=e.status_code, payload=e.payload) from e
            raise
        return validate_payload(SnykIssuesResponse, raw, "Snyk issues")

    @staticmethod
    def _error_detail(e: SourceError) -> Optional[str]:
        if not isinstance(e.payload, dict):
            return None
        try:
            parsed = SnykErrorResponse.model_validate(e.payload)
        except ValidationError:
            return None
        return ", ".join(err.detail for err in parsed.errors) or None

    def _auth_message(self, e: SourceError) -> str:
        detail = self._error_detail(e)
        if e.status_code == 401:
            return f"Snyk rejected the API token (401): {detail or 'check the configured token'}"
        return f"Snyk denied access (403): {detail or DEFAULT_PERMISSION_MESSAGE}"

    async def _query_batch_page(self, queries: Sequence[tuple[Package, Optional[str]]]) -> BatchPage:
        packages = [pkg for pkg, _ in queries]
        body = {
            "data": {
                "attributes": {"purls": [to_purl(p.name, p.version, self._ecosystem) for p in packages]},
                "type": "resource",
            }
        }
        resp = await self._call("POST", get_snyk_batch_issues_url(self._base_url, self._org_id, self._api_version), body)
        logger.debug("Snyk batch query returned %d issues for %d packages", len(resp.data), len(packages))

        queried = {p.key for p in packages}
        records: list[VulnerabilityRecord] = []
        for issue in resp.data:
            targets = [p for p in _issue_packages(issue) if p.key in queried]
            if not targets and len(packages) == 1:
                targets = packages
            if not targets:
                logger.debug("Snyk issue %s has no package coordinates; skipped", issue.id)
                continue
            records.append(_to_domain(issue, targets))
        return BatchPage(records=tuple(records))

    async def _query_page(self, pkg: Package, page_token: Optional[str]) -> QueryPage:
        if page_token:
            url = resolve_snyk_link(self._base_url, page_token)
        else:
            purl = to_purl(pkg.name, pkg.version, self._ecosystem)
            url = get_snyk_package_issues_url(self._base_url, self._org_id, purl, self._api_version)
        resp = await self._call("GET", url)
        return QueryPage(
            records=tuple(_to_domain(issue, [pkg]) for issue in resp.data),
            next_page_token=resp.links.next if resp.links and resp.links.next else None,
        )

    async def _fetch_detail(self, vuln_id: str) -> VulnerabilityRecord:
        raise SourceError(SourceErrorKind.CLIENT, f"Snyk returns full issues; no detail fetch for {vuln_id}")

    async def aclose(self) -> None:
        await self._http.aclose()
