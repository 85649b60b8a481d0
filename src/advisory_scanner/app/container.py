from __future__ import annotations

from dependency_injector import containers, providers

from ..config.settings import ScannerSettings
from ..core.ports.clock_port import SystemClock
from ..core.services.processor import AdvisoryProcessor
from ..core.services.retry import RetryExecutor, RetryPolicy
from ..core.services.severity import SeverityClassifier
from ..core.services.version_matcher import VersionRangeMatcher
from ..core.usecases.scan_packages import ScanPackagesUseCase
from ..infra.http_client import HttpClient
from ..infra.osv_adapter import OSVAdapter
from ..infra.snyk_adapter import SnykAdapter


def request_headers(user_agent):
	return {
		"Content-Type": "application/json",
		"User-Agent": user_agent,
	}


def retry_policy(max_retry_attempts, retry_delay_seconds):
	"""Settings count retries; the policy counts attempts (first try included)."""
	return RetryPolicy(
		max_attempts=int(max_retry_attempts) + 1,
		base_delay_seconds=float(retry_delay_seconds),
	)


class Container(containers.DeclarativeContainer):
	config = providers.Configuration(pydantic_settings=[ScannerSettings()])

	clock = providers.Singleton(SystemClock)

	retry = providers.Factory(
		RetryExecutor,
		policy=providers.Factory(
			retry_policy,
			max_retry_attempts=config.max_retry_attempts,
			retry_delay_seconds=config.retry_delay_seconds,
		),
		clock=clock,
	)

	# One HTTP client per source instance; the source closes it after a scan
	http_client = providers.Factory(
		HttpClient,
		base_headers=providers.Factory(request_headers, user_agent=config.user_agent),
		timeout_seconds=config.timeout_seconds,
		max_response_bytes=config.max_response_bytes,
	)

	osv_source = providers.Factory(
		OSVAdapter,
		http_client=http_client,
		retry=retry,
		base_url=config.osv_base_url,
		ecosystem=config.ecosystem,
		use_batch_queries=config.use_batch_queries,
		max_batch_size=config.max_batch_size,
		max_concurrent_details=config.max_concurrent_details,
	)

	snyk_source = providers.Factory(
		SnykAdapter,
		http_client=http_client,
		retry=retry,
		org_id=config.snyk_org_id,
		api_token=config.snyk_api_token,
		base_url=config.snyk_base_url,
		api_version=config.snyk_api_version,
		ecosystem=config.ecosystem,
		use_batch_queries=config.use_batch_queries,
		max_batch_size=config.max_batch_size,
		max_concurrent_details=config.max_concurrent_details,
	)

	source = providers.Selector(
		config.source,
		osv=osv_source,
		snyk=snyk_source,
	)

	matcher = providers.Factory(
		VersionRangeMatcher,
		conjoin_events=config.conjoin_range_events,
		ecosystem=config.ecosystem,
	)
	classifier = providers.Factory(
		SeverityClassifier,
		fatal_severities=config.fatal_severities,
		cvss_fatal_threshold=config.cvss_fatal_threshold,
	)
	processor = providers.Factory(
		AdvisoryProcessor,
		matcher=matcher,
		classifier=classifier,
		max_description_length=config.max_description_length,
	)

	scan_uc = providers.Factory(ScanPackagesUseCase, source=source, processor=processor)
