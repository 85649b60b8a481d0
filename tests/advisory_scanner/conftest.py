"""tests/conftest.py

Common fixtures for the entire test suite.
"""

import json
import os

import httpx
import pytest
from typer.testing import CliRunner


@pytest.fixture(scope="session")
def runner() -> CliRunner:
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep ADVISORY_SCANNER_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("ADVISORY_SCANNER_"):
            monkeypatch.delenv(key, raising=False)


class FakeClock:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_httpx_client(monkeypatch):
    """
    Replaces httpx.AsyncClient with one that uses a MockTransport.

    Returns a function that tests use to register mock responses. Registering
    the same (method, url) several times queues the responses in order; the
    last one repeats once the queue is drained.
    """
    responses: dict[tuple[str, str], list[tuple]] = {}
    calls_log: list[tuple[str, str]] = []
    requests_log: list[httpx.Request] = []
    original_client = httpx.AsyncClient

    def add_response(
        url: str,
        method: str = "GET",
        status_code: int = 200,
        json_payload: object | None = None,
        content: bytes | None = None,
        headers: dict | None = None,
        exc: Exception | None = None,
    ):
        """Register a mock response (or an exception to raise) for a URL and method."""
        if json_payload is not None:
            body = json.dumps(json_payload).encode("utf-8")
        else:
            body = content if content is not None else b""
        responses.setdefault((method.upper(), url), []).append((status_code, body, headers or {}, exc))

    def mock_transport(request: httpx.Request) -> httpx.Response:
        """The transport logic that returns registered responses or a 404."""
        key = (request.method, str(request.url))
        calls_log.append(key)
        requests_log.append(request)
        queue = responses.get(key)
        if queue:
            status, body, headers, exc = queue.pop(0) if len(queue) > 1 else queue[0]
            if exc is not None:
                raise exc
            return httpx.Response(status, content=body, headers={"Content-Length": str(len(body)), **headers})

        return httpx.Response(404, text=f"Mock URL not found: {request.method} {request.url}")

    def patched_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(mock_transport)
        return original_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", patched_client)
    add_response.calls = calls_log  # type: ignore[attr-defined]
    add_response.requests = requests_log  # type: ignore[attr-defined]
    return add_response
