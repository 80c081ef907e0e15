"""Async httpx wrapper with token auth, quota header parsing and error mapping."""

from __future__ import annotations

from typing import Any

import httpx

BASE_URL = "https://api.football-data.org/v4"


class UpstreamError(Exception):
    """Base class for failures talking to football-data.org."""


class RateLimited(UpstreamError):
    """Upstream answered 429; callers should back off."""


class Unavailable(UpstreamError):
    """Network failure, timeout or a non-2xx status other than 429."""


class Malformed(UpstreamError):
    """Response body was not JSON or did not have the expected shape."""


class QuotaInfo:
    """Parsed request quota from response headers."""

    def __init__(self, available_minute: int | None = None, reset_seconds: int | None = None):
        self.available_minute = available_minute
        self.reset_seconds = reset_seconds


def _int_header(response: httpx.Response, name: str) -> int | None:
    raw = response.headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class FootballDataClient:
    """Async HTTP client for the football-data.org v4 API.

    Issues exactly one request per call. Retry policy belongs to callers.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = BASE_URL,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {
            "base_url": base_url,
            "timeout": timeout,
            "headers": {"X-Auth-Token": api_token},
        }
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)
        self.last_quota = QuotaInfo()

    async def close(self) -> None:
        await self._client.aclose()

    def _parse_quota(self, response: httpx.Response) -> QuotaInfo:
        info = QuotaInfo(
            available_minute=_int_header(response, "x-requests-available-minute"),
            reset_seconds=_int_header(response, "x-requestcounter-reset"),
        )
        self.last_quota = info
        return info

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make an authenticated GET request and return the decoded JSON."""
        params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._client.get(path, params=params)
        except httpx.DecodingError as exc:
            raise Malformed(f"GET {path} returned an undecodable body: {exc}") from exc
        except httpx.RequestError as exc:
            # Transport failures and redirect loops alike.
            raise Unavailable(f"GET {path} failed: {exc}") from exc

        self._parse_quota(response)
        if response.status_code == 429:
            raise RateLimited(f"GET {path} rate limited")
        if response.is_error:
            raise Unavailable(f"GET {path} returned HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise Malformed(f"GET {path} returned a non-JSON body") from exc
