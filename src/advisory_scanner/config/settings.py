from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .urls import OSV_API_BASE_URL, SNYK_API_BASE_URL

__version__ = "0.1.0"


class ScannerSettings(BaseSettings):
    """Scanner configuration with automatic environment variable loading.

    All settings can be overridden via environment variables with the ADVISORY_SCANNER_ prefix.
    For example:
        - ADVISORY_SCANNER_SOURCE=snyk
        - ADVISORY_SCANNER_SNYK_ORG_ID=00000000-0000-0000-0000-000000000000
        - ADVISORY_SCANNER_SNYK_API_TOKEN=xxx
        - ADVISORY_SCANNER_TIMEOUT_SECONDS=10

    Alternatively, settings can be provided programmatically:
        scanner = AdvisoryScanner(source="snyk", snyk_org_id="...", snyk_api_token="...")
    """

    model_config = SettingsConfigDict(
        env_prefix="ADVISORY_SCANNER_",
        case_sensitive=False,
        extra="forbid",
    )

    source: Literal["osv", "snyk"] = Field(
        default="osv",
        description="Vulnerability source to query",
    )

    osv_base_url: str = Field(default=OSV_API_BASE_URL, description="OSV.dev API base URL")
    snyk_base_url: str = Field(default=SNYK_API_BASE_URL, description="Snyk REST API base URL")
    snyk_api_version: str = Field(default="2024-10-15", description="Snyk REST API version parameter")

    snyk_org_id: Optional[str] = Field(
        default=None,
        description="Snyk organization id (required when source is snyk)",
    )
    snyk_api_token: Optional[str] = Field(
        default=None,
        description="Snyk API token (required when source is snyk)",
    )

    ecosystem: str = Field(default="npm", description="Package ecosystem sent with each query")

    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")

    use_batch_queries: bool = Field(
        default=True,
        description="Use batch endpoints when more than one package is scanned",
    )
    max_batch_size: int = Field(default=1000, ge=1, description="Maximum packages per batch request")
    max_concurrent_details: int = Field(
        default=10,
        ge=1,
        description="Maximum vulnerability detail fetches in flight",
    )

    max_retry_attempts: int = Field(
        default=2,
        ge=0,
        description="Retries after the first attempt for transient failures",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Base delay before the first retry; grows by 1.5x per attempt",
    )

    cvss_fatal_threshold: float = Field(
        default=7.0,
        ge=0,
        le=10,
        description="CVSS base score at or above which an advisory is fatal",
    )
    fatal_severities: list[str] = Field(
        default_factory=lambda: ["CRITICAL", "HIGH"],
        description="Vendor severity labels treated as fatal (case-insensitive)",
    )

    max_description_length: int = Field(
        default=200,
        ge=4,
        description="Maximum length of a description derived from vulnerability details",
    )
    max_response_bytes: int = Field(
        default=32 * 1024 * 1024,
        ge=1,
        description="Responses larger than this are rejected as unparseable",
    )

    conjoin_range_events: bool = Field(
        default=False,
        description="AND every event of a range into one constraint instead of matching each window separately",
    )

    user_agent: str = Field(default=f"advisory-scanner/{__version__}", description="User-Agent header value")

    log_level: str = Field(default="INFO", description="Log level used by the CLI")
