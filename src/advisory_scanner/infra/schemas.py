from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# --- OSV -----------------------------------------------------------------


class OsvSeverity(BaseModel):
	"""Severity entry (e.g. CVSS vector)"""
	type: str
	score: str | float


class OsvPackage(BaseModel):
	"""Affected package"""
	ecosystem: Optional[str] = None
	name: str
	purl: Optional[str] = None


class OsvEvent(BaseModel):
	"""Start or end of a version range"""
	introduced: Optional[str] = None
	fixed: Optional[str] = None
	last_affected: Optional[str] = None
	limit: Optional[str] = None


class OsvRange(BaseModel):
	"""Affected version range"""
	type: str
	repo: Optional[str] = None
	events: list[OsvEvent] = Field(default_factory=list)


class OsvAffected(BaseModel):
	"""Affected package and versions"""
	package: OsvPackage
	ranges: Optional[list[OsvRange]] = None
	versions: Optional[list[str]] = None
	ecosystem_specific: Optional[dict[str, Any]] = None
	database_specific: Optional[dict[str, Any]] = None


class OsvReference(BaseModel):
	"""External reference link"""
	type: str | None = None
	url: str


class OsvDatabaseSpecific(BaseModel):
	"""Database-specific extras"""
	severity: Optional[str] = None
	cwe_ids: list[str] | None = None
	github_reviewed: Optional[bool] = None


class OsvVulnerability(BaseModel):
	"""Top-level OSV record"""
	schema_version: Optional[str] = None
	id: str
	modified: Optional[str] = None
	published: Optional[str] = None
	withdrawn: Optional[str] = None
	aliases: Optional[list[str]] = None
	summary: Optional[str] = None
	details: Optional[str] = None
	severity: Optional[list[OsvSeverity]] = None
	affected: list[OsvAffected] | None = None
	references: Optional[list[OsvReference]] = None
	database_specific: Optional[OsvDatabaseSpecific] = None


class OsvQueryPackage(BaseModel):
	name: str
	ecosystem: str


class OsvQuery(BaseModel):
	"""Request body for /query, one entry of /querybatch"""
	package: OsvQueryPackage
	version: str
	page_token: Optional[str] = None


class OsvQueryResponse(BaseModel):
	vulns: list[OsvVulnerability] = Field(default_factory=list)
	next_page_token: Optional[str] = None


class OsvVulnRef(BaseModel):
	"""Batch results carry only id and modified"""
	id: str
	modified: Optional[str] = None


class OsvBatchResult(BaseModel):
	vulns: list[OsvVulnRef] = Field(default_factory=list)
	next_page_token: Optional[str] = None


class OsvBatchResponse(BaseModel):
	results: list[OsvBatchResult]


# --- Snyk REST (JSON:API) ------------------------------------------------


class SnykReference(BaseModel):
	title: Optional[str] = None
	url: str


class SnykPackageRef(BaseModel):
	name: Optional[str] = None
	version: Optional[str] = None
	type: Optional[str] = None
	url: Optional[str] = None


class SnykRepresentation(BaseModel):
	model_config = ConfigDict(extra="allow")

	package: Optional[SnykPackageRef] = None
	resource_path: Optional[str] = None


class SnykCoordinate(BaseModel):
	model_config = ConfigDict(extra="allow")

	representations: list[SnykRepresentation] = Field(default_factory=list)


class SnykIssueAttributes(BaseModel):
	model_config = ConfigDict(extra="allow", populate_by_name=True)

	key: Optional[str] = None
	title: Optional[str] = None
	type: Optional[str] = None
	description: Optional[str] = None
	severity: Optional[str] = None
	effective_severity_level: Optional[str] = Field(
		default=None, validation_alias=AliasChoices("effective_severity_level", "effectiveSeverityLevel")
	)
	cvss_score: Optional[float] = Field(default=None, validation_alias=AliasChoices("cvss_score", "cvssScore"))
	references: Optional[list[SnykReference]] = None
	coordinates: Optional[list[SnykCoordinate]] = None


class SnykIssue(BaseModel):
	id: str
	type: str = "issue"
	attributes: SnykIssueAttributes


class SnykLinks(BaseModel):
	model_config = ConfigDict(extra="allow")

	next: Optional[str] = None


class SnykIssuesResponse(BaseModel):
	model_config = ConfigDict(extra="allow")

	data: list[SnykIssue] = Field(default_factory=list)
	links: Optional[SnykLinks] = None


class SnykErrorItem(BaseModel):
	status: Optional[str] = None
	detail: str
	title: Optional[str] = None
	code: Optional[str] = None


class SnykErrorResponse(BaseModel):
	errors: list[SnykErrorItem]
