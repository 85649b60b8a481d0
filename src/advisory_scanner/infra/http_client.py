from __future__ import annotations

import json
from typing import Any, Mapping, Optional

import httpx

from ..core.domain.enums import SourceErrorKind
from ..core.domain.errors import SourceError

DEFAULT_MAX_RESPONSE_BYTES = 32 * 1024 * 1024


class HttpClient:
    """Async JSON client; the one place HTTP outcomes become SourceError kinds."""

    def __init__(
        self,
        base_headers: Optional[Mapping[str, str]] = None,
        timeout_seconds: float = 30.0,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers=dict(base_headers or {}),
            follow_redirects=True,
            max_redirects=10,
        )
        self._max_response_bytes = max_response_bytes

    async def get_json(self, url: str, *, headers: Optional[Mapping[str, str]] = None) -> dict:
        return await self._request_json("GET", url, headers=headers)

    async def post_json(self, url: str, payload: dict, *, headers: Optional[Mapping[str, str]] = None) -> dict:
        return await self._request_json("POST", url, json_body=payload, headers=headers)

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        json_body: Optional[dict] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> dict:
        try:
            resp = await self._client.request(method, url, json=json_body, headers=dict(headers or {}))
        except httpx.TimeoutException as e:
            raise SourceError(SourceErrorKind.TIMEOUT, f"{method} {url} timed out: {e}") from e
        except httpx.TransportError as e:
            raise SourceError(SourceErrorKind.NETWORK, f"{method} {url} failed: {e}") from e

        if resp.status_code >= 400:
            raise self._status_error(method, url, resp)

        if len(resp.content) > self._max_response_bytes:
            raise SourceError(
                SourceErrorKind.PARSE,
                f"{method} {url} response exceeds {self._max_response_bytes} bytes",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SourceError(
                SourceErrorKind.PARSE, f"{method} {url} returned invalid JSON", status_code=resp.status_code
            ) from e
        if not isinstance(data, dict):
            raise SourceError(
                SourceErrorKind.PARSE,
                "HttpClient invariant violated: expected JSON object",
                status_code=resp.status_code,
            )
        return data

    @staticmethod
    def _status_error(method: str, url: str, resp: httpx.Response) -> SourceError:
        kind = SourceErrorKind.from_status(resp.status_code)
        message = f"{method} {url} returned {resp.status_code}: {resp.reason_phrase}"
        if kind is SourceErrorKind.RATE_LIMIT:
            retry_after = resp.headers.get("Retry-After")
            message = f"Rate limit exceeded. Retry after {retry_after} seconds." if retry_after else "Rate limit exceeded."
        payload: Any = None
        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None
        return SourceError(kind, message, status_code=resp.status_code, payload=payload)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
