from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Iterable, Optional, Sequence, TypeVar

from ..domain.errors import SourceAuthorizationError
from ..domain.models import Package, VulnerabilityRecord
from .retry import RetryExecutor

DEFAULT_MAX_BATCH_SIZE = 1000
DEFAULT_MAX_CONCURRENT_DETAILS = 10

T = TypeVar("T")


@dataclass(frozen=True)
class BatchPage:
    """One batch response.

    ``ids`` still need a detail fetch; ``records`` are already complete.
    ``continuations`` lists the packages with more pages and their tokens.
    """

    ids: tuple[str, ...] = ()
    records: tuple[VulnerabilityRecord, ...] = ()
    continuations: tuple[tuple[Package, str], ...] = ()


@dataclass(frozen=True)
class QueryPage:
    records: tuple[VulnerabilityRecord, ...] = ()
    next_page_token: Optional[str] = None


@dataclass
class _ChunkOutcome:
    ids: list[str] = field(default_factory=list)
    records: list[VulnerabilityRecord] = field(default_factory=list)
    failed: bool = False


def deduplicate_packages(packages: Iterable[Package]) -> list[Package]:
    """Drop repeated ``name@version`` entries, keeping the first occurrence."""
    unique: dict[str, Package] = {}
    for pkg in packages:
        unique.setdefault(pkg.key, pkg)
    return list(unique.values())


def deduplicate_records(records: Iterable[VulnerabilityRecord]) -> list[VulnerabilityRecord]:
    unique: dict[str, VulnerabilityRecord] = {}
    for r in records:
        unique.setdefault(r.id, r)
    return list(unique.values())


async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Like ``asyncio.gather``, but cancels the remaining tasks when one of them raises."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class VulnerabilitySourceClient(ABC):
    """Query strategy shared by all vulnerability sources.

    Subclasses implement the wire calls (_query_batch_page, _query_page,
    _fetch_detail); this class decides between batch and per-package queries,
    follows pagination, resolves identifiers with bounded concurrency and keeps
    one failing sub-operation from aborting its siblings. Authorization
    failures are the exception: they always propagate.
    """

    source_name = "source"
    supports_batch = True

    def __init__(
        self,
        retry: RetryExecutor,
        *,
        use_batch_queries: bool = True,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        max_concurrent_details: int = DEFAULT_MAX_CONCURRENT_DETAILS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        if max_concurrent_details < 1:
            raise ValueError("max_concurrent_details must be >= 1")
        self._retry = retry
        self._use_batch = use_batch_queries
        self._max_batch_size = max_batch_size
        self._max_concurrent_details = max_concurrent_details
        self._logger = logger or logging.getLogger(__name__)

    # --- wire calls -----------------------------------------------------

    @abstractmethod
    async def _query_batch_page(self, queries: Sequence[tuple[Package, Optional[str]]]) -> BatchPage:
        """Issue one batch request for (package, page token) queries."""

    @abstractmethod
    async def _query_page(self, pkg: Package, page_token: Optional[str]) -> QueryPage:
        """Issue one per-package query, optionally continuing from a page token."""

    @abstractmethod
    async def _fetch_detail(self, vuln_id: str) -> VulnerabilityRecord:
        """Fetch the full record for one identifier."""

    async def aclose(self) -> None:
        return None

    # --- strategy -------------------------------------------------------

    async def query_vulnerabilities(self, packages: Sequence[Package]) -> list[VulnerabilityRecord]:
        if not packages:
            return []

        unique = deduplicate_packages(packages)
        if len(unique) < len(packages):
            self._logger.debug("Deduplicated %d packages to %d unique packages", len(packages), len(unique))
        self._logger.info("Scanning %d unique packages (%d total) via %s", len(unique), len(packages), self.source_name)

        if len(unique) > 1 and self._use_batch and self.supports_batch:
            self._logger.info("Using batch queries for %d packages", len(unique))
            records = await self._query_in_batches(unique)
        else:
            self._logger.info("Using individual queries for %d packages", len(unique))
            records = await self._query_individually(unique)

        records = deduplicate_records(records)
        self._logger.info("Found %d vulnerabilities", len(records))
        return records

    async def _query_in_batches(self, packages: Sequence[Package]) -> list[VulnerabilityRecord]:
        chunks = [packages[i:i + self._max_batch_size] for i in range(0, len(packages), self._max_batch_size)]
        outcomes = await gather_or_cancel(self._run_chunk(chunk, n) for n, chunk in enumerate(chunks))

        failed = sum(1 for o in outcomes if o.failed)
        if failed:
            self._logger.warning("%d of %d batch chunks failed", failed, len(chunks))

        records: list[VulnerabilityRecord] = []
        ids: dict[str, None] = {}
        for o in outcomes:
            records.extend(o.records)
            for vuln_id in o.ids:
                ids.setdefault(vuln_id, None)

        known = {r.id for r in records}
        pending = [vuln_id for vuln_id in ids if vuln_id not in known]
        self._logger.debug("Batch queries returned %d unique vulnerability ids", len(ids))
        if pending:
            records.extend(await self.fetch_details(pending))
        return records

    async def _run_chunk(self, chunk: Sequence[Package], index: int) -> _ChunkOutcome:
        outcome = _ChunkOutcome()
        queries: list[tuple[Package, Optional[str]]] = [(pkg, None) for pkg in chunk]
        try:
            while queries:
                page = await self._retry.run(
                    lambda q=tuple(queries): self._query_batch_page(q),
                    f"{self.source_name} batch query ({len(queries)} packages)",
                )
                outcome.ids.extend(page.ids)
                outcome.records.extend(page.records)
                queries = list(page.continuations)
        except SourceAuthorizationError:
            raise
        except Exception as e:
            outcome.failed = True
            self._logger.error(
                "Batch query failed for %d packages (chunk %d): %s", len(chunk), index, e
            )
        return outcome

    async def _query_individually(self, packages: Sequence[Package]) -> list[VulnerabilityRecord]:
        results = await gather_or_cancel(self._query_package(pkg) for pkg in packages)
        failed = sum(1 for _, ok in results if not ok)
        if failed:
            self._logger.warning("%d of %d package queries failed", failed, len(packages))
        return [r for records, _ in results for r in records]

    async def _query_package(self, pkg: Package) -> tuple[list[VulnerabilityRecord], bool]:
        records: list[VulnerabilityRecord] = []
        token: Optional[str] = None
        try:
            while True:
                page = await self._retry.run(
                    lambda t=token: self._query_page(pkg, t),
                    f"{self.source_name} query for {pkg.key}",
                )
                records.extend(page.records)
                if not page.next_page_token:
                    break
                token = page.next_page_token
        except SourceAuthorizationError:
            raise
        except Exception as e:
            self._logger.error(
                "Query failed for %s after %d records: %s", pkg.key, len(records), e
            )
            return records, False
        return records, True

    async def fetch_details(self, vuln_ids: Sequence[str]) -> list[VulnerabilityRecord]:
        """Resolve identifiers to full records, at most N requests in flight."""
        semaphore = asyncio.Semaphore(self._max_concurrent_details)

        async def fetch_one(vuln_id: str) -> Optional[VulnerabilityRecord]:
            async with semaphore:
                try:
                    return await self._retry.run(
                        lambda: self._fetch_detail(vuln_id),
                        f"{self.source_name} detail fetch for {vuln_id}",
                    )
                except SourceAuthorizationError:
                    raise
                except Exception as e:
                    self._logger.error("Failed to fetch details for %s: %s", vuln_id, e)
                    return None

        unique = list(dict.fromkeys(vuln_ids))
        fetched = await gather_or_cancel(fetch_one(vuln_id) for vuln_id in unique)
        records = [r for r in fetched if r is not None]
        if len(records) < len(unique):
            self._logger.warning("%d of %d detail fetches failed", len(unique) - len(records), len(unique))
        return records
