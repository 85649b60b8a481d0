from __future__ import annotations

from typing import Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..config.urls import OSV_API_BASE_URL, get_osv_query_url, get_osv_querybatch_url, get_osv_vuln_url
from ..core.domain.enums import RangeKind, SourceErrorKind
from ..core.domain.errors import SourceError
from ..core.domain.models import (
    AffectedEntry,
    Package,
    RangeEvent,
    RangeSpec,
    Reference,
    SeverityScore,
    VulnerabilityRecord,
)
from ..core.services.retry import RetryExecutor
from ..core.services.source_client import BatchPage, QueryPage, VulnerabilitySourceClient
from .http_client import HttpClient
from .schemas import (
    OsvBatchResponse,
    OsvQuery,
    OsvQueryPackage,
    OsvQueryResponse,
    OsvVulnerability,
)

M = TypeVar("M", bound=BaseModel)


def validate_payload(model: Type[M], raw: dict, what: str) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise SourceError(SourceErrorKind.PARSE, f"Invalid {what} payload: {e.error_count()} validation errors") from e


def _to_domain(osv: OsvVulnerability) -> VulnerabilityRecord:
    affected = tuple(
        AffectedEntry(
            package_name=a.package.name,
            explicit_versions=tuple(a.versions or ()),
            ranges=tuple(
                RangeSpec(
                    kind=RangeKind.from_str(r.type),
                    events=tuple(
                        RangeEvent(introduced=e.introduced, fixed=e.fixed, last_affected=e.last_affected)
                        for e in r.events
                    ),
                )
                for r in (a.ranges or ())
            ),
            ecosystem=a.package.ecosystem,
        )
        for a in (osv.affected or ())
    )
    return VulnerabilityRecord(
        id=osv.id,
        summary=osv.summary,
        details=osv.details,
        affected=affected,
        references=tuple(Reference(url=r.url, type=r.type) for r in (osv.references or ())),
        severity_scores=tuple(SeverityScore(type=s.type, score=str(s.score)) for s in (osv.severity or ())),
        vendor_severity=osv.database_specific.severity if osv.database_specific else None,
        aliases=tuple(osv.aliases or ()),
    )


class OSVAdapter(VulnerabilitySourceClient):
    """OSV.dev source: anonymous, batch queries return ids only."""

    source_name = "OSV"

    def __init__(
        self,
        http_client: HttpClient,
        retry: RetryExecutor,
        *,
        base_url: str = OSV_API_BASE_URL,
        ecosystem: str = "npm",
        **kwargs,
    ) -> None:
        super().__init__(retry, **kwargs)
        self._http = http_client
        self._base_url = base_url
        self._ecosystem = ecosystem

    def _query(self, pkg: Package, page_token: Optional[str]) -> dict:
        q = OsvQuery(
            package=OsvQueryPackage(name=pkg.name, ecosystem=self._ecosystem),
            version=pkg.version,
            page_token=page_token,
        )
        return q.model_dump(exclude_none=True)

    async def _query_batch_page(self, queries: Sequence[tuple[Package, Optional[str]]]) -> BatchPage:
        payload = {"queries": [self._query(pkg, token) for pkg, token in queries]}
        raw = await self._http.post_json(get_osv_querybatch_url(self._base_url), payload)
        resp = validate_payload(OsvBatchResponse, raw, "OSV batch")
        if len(resp.results) != len(queries):
            raise SourceError(
                SourceErrorKind.PARSE,
                f"OSV batch returned {len(resp.results)} results for {len(queries)} queries",
            )
        ids: list[str] = []
        continuations: list[tuple[Package, str]] = []
        for (pkg, _), result in zip(queries, resp.results):
            ids.extend(v.id for v in result.vulns)
            if result.next_page_token:
                continuations.append((pkg, result.next_page_token))
        return BatchPage(ids=tuple(ids), continuations=tuple(continuations))

    async def _query_page(self, pkg: Package, page_token: Optional[str]) -> QueryPage:
        raw = await self._http.post_json(get_osv_query_url(self._base_url), self._query(pkg, page_token))
        resp = validate_payload(OsvQueryResponse, raw, "OSV query")
        return QueryPage(
            records=tuple(_to_domain(v) for v in resp.vulns),
            next_page_token=resp.next_page_token or None,
        )

    async def _fetch_detail(self, vuln_id: str) -> VulnerabilityRecord:
        raw = await self._http.get_json(get_osv_vuln_url(self._base_url, vuln_id))
        return _to_domain(validate_payload(OsvVulnerability, raw, "OSV vulnerability"))

    async def aclose(self) -> None:
        await self._http.aclose()
