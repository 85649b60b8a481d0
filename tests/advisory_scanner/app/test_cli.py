from __future__ import annotations

import json

import pytest

from advisory_scanner.app.cli import app, pinned_version, read_package_json

OSV = "https://api.osv.test/v1"

LODASH_OSV = {
    "id": "GHSA-35jh-r3h4-6jhm",
    "summary": "Command Injection in lodash",
    "affected": [
        {
            "package": {"ecosystem": "npm", "name": "lodash"},
            "ranges": [{"type": "SEMVER", "events": [{"introduced": "0"}, {"fixed": "4.17.21"}]}],
        }
    ],
    "references": [{"type": "ADVISORY", "url": "https://github.com/advisories/GHSA-35jh-r3h4-6jhm"}],
    "database_specific": {"severity": "HIGH"},
}

LOW_OSV = {
    "id": "GHSA-low",
    "summary": "Minor issue in left-pad",
    "affected": [
        {
            "package": {"ecosystem": "npm", "name": "left-pad"},
            "ranges": [{"type": "SEMVER", "events": [{"introduced": "0"}, {"fixed": "2.0.0"}]}],
        }
    ],
    "severity": [{"type": "CVSS_V3", "score": "3.1"}],
}


@pytest.fixture(autouse=True)
def osv_env(monkeypatch):
    monkeypatch.setenv("ADVISORY_SCANNER_OSV_BASE_URL", OSV)
    monkeypatch.setenv("ADVISORY_SCANNER_RETRY_DELAY_SECONDS", "0")


def test_cli_help(runner):
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "test" in result.output
    assert "scan" in result.output


def test_cli_test_fatal_exits_1(runner, mock_httpx_client):
    mock_httpx_client(f"{OSV}/query", method="POST", json_payload={"vulns": [LODASH_OSV]})

    result = runner.invoke(app, ["test", "lodash@4.17.20"])

    assert result.exit_code == 1
    assert "fatal" in result.output
    assert "GHSA-35jh-r3h4-6jhm" in result.output
    assert "https://github.com/advisories/GHSA-35jh-r3h4-6jhm" in result.output


def test_cli_test_warn_exits_0(runner, mock_httpx_client):
    mock_httpx_client(f"{OSV}/query", method="POST", json_payload={"vulns": [LOW_OSV]})

    result = runner.invoke(app, ["test", "left-pad@1.3.0"])

    assert result.exit_code == 0
    assert "warn" in result.output


def test_cli_test_no_advisories(runner, mock_httpx_client):
    mock_httpx_client(f"{OSV}/query", method="POST", json_payload={"vulns": []})

    result = runner.invoke(app, ["test", "@types/node@18.0.0"])

    assert result.exit_code == 0
    assert "No advisories found" in result.output
    body = json.loads(mock_httpx_client.requests[0].content)
    assert body["package"]["name"] == "@types/node"


def test_cli_test_invalid_spec(runner):
    result = runner.invoke(app, ["test", "lodash"])
    assert result.exit_code == 2


def test_cli_snyk_auth_failure_exits_1(runner, mock_httpx_client, monkeypatch):
    monkeypatch.setenv("ADVISORY_SCANNER_SOURCE", "snyk")
    monkeypatch.setenv("ADVISORY_SCANNER_SNYK_BASE_URL", "https://api.snyk.test/rest")
    monkeypatch.setenv("ADVISORY_SCANNER_SNYK_ORG_ID", "org-1")
    monkeypatch.setenv("ADVISORY_SCANNER_SNYK_API_TOKEN", "bad")
    mock_httpx_client(
        "https://api.snyk.test/rest/orgs/org-1/packages/issues?version=2024-10-15",
        method="POST",
        status_code=401,
        json_payload={"errors": [{"detail": "Invalid auth token"}]},
    )

    result = runner.invoke(app, ["test", "a@1.0.0", "b@1.0.0"])

    assert result.exit_code == 1


def test_read_package_json(tmp_path):
    path = tmp_path / "package.json"
    path.write_text(json.dumps({
        "name": "demo",
        "dependencies": {"lodash": "^4.17.20", "express": "~4.17.1"},
        "devDependencies": {"left-pad": "1.3.0"},
    }))
    pkgs = read_package_json(path)
    assert [p.key for p in pkgs] == ["lodash@4.17.20", "express@4.17.1", "left-pad@1.3.0"]


@pytest.mark.parametrize(
    "spec,expected",
    [
        ("^4.17.20", "4.17.20"),
        ("~1.0.0-next.3", "1.0.0-next.3"),
        ("1.3.0", "1.3.0"),
        (">=1.2.0", None),
        ("1.x", None),
        ("1", None),
        ("latest", None),
        ("github:user/repo", None),
        ("*", None),
    ],
)
def test_pinned_version(spec, expected):
    assert pinned_version(spec) == expected


def test_read_package_json_skips_unpinned_specs(tmp_path, capsys):
    path = tmp_path / "package.json"
    path.write_text(json.dumps({
        "dependencies": {"lodash": ">=4.0.0", "express": "4.x", "left-pad": "1.3.0"},
        "devDependencies": {"typescript": "latest"},
    }))
    pkgs = read_package_json(path)
    assert [p.key for p in pkgs] == ["left-pad@1.3.0"]
    err = capsys.readouterr().err
    for name in ("lodash", "express", "typescript"):
        assert f"Skipping {name}" in err


def test_cli_scan_package_json(runner, mock_httpx_client, tmp_path):
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"lodash": "^4.17.20", "left-pad": "1.3.0"}}))
    mock_httpx_client(f"{OSV}/querybatch", method="POST", json_payload={
        "results": [{"vulns": [{"id": "GHSA-35jh-r3h4-6jhm"}]}, {"vulns": []}],
    })
    mock_httpx_client(f"{OSV}/vulns/GHSA-35jh-r3h4-6jhm", json_payload=LODASH_OSV)

    result = runner.invoke(app, ["scan", str(path)])

    assert result.exit_code == 1
    assert "lodash" in result.output


def test_cli_scan_empty_package_json(runner, tmp_path):
    path = tmp_path / "package.json"
    path.write_text("{}")
    result = runner.invoke(app, ["scan", str(path)])
    assert result.exit_code == 0
    assert "No dependencies" in result.output


def test_cli_scan_only_unpinned_dependencies(runner, tmp_path):
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"dependencies": {"lodash": "latest"}}))
    result = runner.invoke(app, ["scan", str(path)])
    assert result.exit_code == 0
    assert "Skipping lodash" in result.output
    assert "No dependencies" in result.output
