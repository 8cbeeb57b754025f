"""
HTTP fetch with timeout and failure sentinel.

fetch_json returns the decoded JSON body, or None on timeout, transport error,
non-2xx status or malformed JSON. Callers map None to their documented
fallback; nothing here raises past the call site.
"""

from __future__ import annotations

from typing import Any

import httpx

from walletaudit.audit_logging import get_logger
from walletaudit.config.settings import DEFAULT_HTTP_TIMEOUT_SEC

logger = get_logger(__name__)

DEFAULT_HEADERS = {"accept": "application/json"}


def _safe_url(url: str) -> str:
    """Strip query string and path secrets for logs."""
    base = url.split("?")[0]
    if "/v2/" in base:
        base = base.split("/v2/")[0] + "/v2/***"
    return base


class HttpFetcher:
    """Thin wrapper over a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = DEFAULT_HTTP_TIMEOUT_SEC) -> None:
        self.client = client
        self.timeout = timeout

    async def fetch_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        merged = dict(DEFAULT_HEADERS)
        if headers:
            merged.update(headers)
        try:
            resp = await self.client.request(
                method,
                url,
                params=params,
                json=json,
                headers=merged,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException:
            logger.warning("http_timeout", url=_safe_url(url))
            return None
        except httpx.HTTPError as e:
            logger.warning("http_transport_error", url=_safe_url(url), error=str(e))
            return None
        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning("http_bad_status", url=_safe_url(url), status=resp.status_code)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("http_malformed_json", url=_safe_url(url))
            return None

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        return await self.fetch_json("GET", url, **kwargs)

    async def post_json(self, url: str, body: Any, **kwargs: Any) -> Any:
        return await self.fetch_json("POST", url, json=body, **kwargs)
