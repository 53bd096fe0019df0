"""Shared HTTP plumbing for RapidAPI-hosted property data providers."""

import json
import logging
from typing import Any

import httpx

from reitools.config import settings
from reitools.models.usage import RateLimitUsage

logger = logging.getLogger(__name__)

# RapidAPI reports plan usage on every response; older gateways use the second pair
_LIMIT_HEADERS = ("x-ratelimit-requests-limit", "x-rapidapi-requests-limit")
_REMAINING_HEADERS = ("x-ratelimit-requests-remaining", "x-rapidapi-requests-remaining")


def parse_rate_limit_headers(headers: httpx.Headers) -> RateLimitUsage | None:
    """Extract plan usage from RapidAPI response headers, if present."""
    limit_raw = next((headers[h] for h in _LIMIT_HEADERS if h in headers), None)
    remaining_raw = next((headers[h] for h in _REMAINING_HEADERS if h in headers), None)
    if limit_raw is None or remaining_raw is None:
        return None
    try:
        limit = int(limit_raw)
        remaining = int(remaining_raw)
    except ValueError:
        return None
    used = limit - remaining
    return RateLimitUsage(
        limit=limit,
        remaining=remaining,
        used=used,
        percent_used=round(used / limit * 100, 1) if limit > 0 else 0.0,
    )


def pick(record: dict, *paths: str, default: Any = None) -> Any:
    """Return the first truthy value among dotted key paths.

    Providers name the same field differently (`livingArea`, `sqft`,
    `description.sqft`), so each adapter lists its candidates in order.
    """
    for path in paths:
        value: Any = record
        for part in path.split("."):
            if not isinstance(value, dict):
                value = None
                break
            value = value.get(part)
        if value:
            return value
    return default


def load_json(text: str) -> Any:
    # Redfin-proxied payloads carry an anti-JSON-hijacking prefix
    if text.startswith("{}&&"):
        text = text[4:]
    return json.loads(text)


class RapidAPIClient:
    host: str = ""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.rapidapi_key
        self.timeout = timeout if timeout is not None else settings.adapter_timeout_seconds
        self.transport = transport
        self.headers = {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.host,
            "Accept": "application/json",
        }
        self.last_usage: RateLimitUsage | None = None
        # HTTP requests sent, each billed against the plan
        self.requests = 0

    async def _get(self, endpoint: str, params: dict | None = None) -> Any:
        self.requests += 1
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(
                f"https://{self.host}{endpoint}",
                headers=self.headers,
                params=params or {},
            )
            usage = parse_rate_limit_headers(resp.headers)
            if usage is not None:
                self.last_usage = usage
                logger.debug("%s plan usage: %d/%d", self.host, usage.used, usage.limit)
            resp.raise_for_status()
            return load_json(resp.text)
