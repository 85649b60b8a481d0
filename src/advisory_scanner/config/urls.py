from __future__ import annotations

from urllib.parse import quote, urlsplit, urlunsplit

OSV_API_BASE_URL = "https://api.osv.dev/v1"
SNYK_API_BASE_URL = "https://api.snyk.io/rest"


def get_osv_query_url(base_url: str) -> str:
	return f"{base_url.rstrip('/')}/query"


def get_osv_querybatch_url(base_url: str) -> str:
	return f"{base_url.rstrip('/')}/querybatch"


def get_osv_vuln_url(base_url: str, vuln_id: str) -> str:
	return f"{base_url.rstrip('/')}/vulns/{quote(vuln_id, safe='')}"


def get_snyk_batch_issues_url(base_url: str, org_id: str, api_version: str) -> str:
	return f"{base_url.rstrip('/')}/orgs/{org_id}/packages/issues?version={api_version}"


def get_snyk_package_issues_url(base_url: str, org_id: str, purl: str, api_version: str) -> str:
	return f"{base_url.rstrip('/')}/orgs/{org_id}/packages/{quote(purl, safe='')}/issues?version={api_version}"


def resolve_snyk_link(base_url: str, link: str) -> str:
	"""Turn a JSON:API ``links.next`` value into an absolute URL.

	Snyk returns either absolute URLs, host-relative paths that already carry
	the ``/rest`` prefix, or paths relative to the API base.
	"""
	if link.startswith(("http://", "https://")):
		return link
	base = urlsplit(base_url)
	base_path = base.path.rstrip("/")
	if base_path and link.startswith(base_path + "/"):
		return urlunsplit((base.scheme, base.netloc, "", "", "")) + link
	return base_url.rstrip("/") + "/" + link.lstrip("/")
