"""Tavily web search client used for competitor research.

Features:
- Async HTTP client using httpx
- Circuit breaker, retry with exponential backoff
- Raw page text included so competitor articles can be mined

ERROR LOGGING REQUIREMENTS:
- Log every search with query, timing and retry attempt
- Log and handle: timeouts, rate limits (429), auth failures (401/403)
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from blogforge.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from blogforge.core.config import get_settings
from blogforge.core.logging import get_logger, tavily_logger

logger = get_logger(__name__)

SEARCH_PATH = "/search"


@dataclass
class SearchHit:
    """One search result."""

    url: str
    title: str
    content: str = ""
    raw_content: str | None = None


@dataclass
class SearchResponse:
    success: bool
    results: list[SearchHit] = field(default_factory=list)
    error: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0


def _parse_hits(data: dict[str, Any]) -> list[SearchHit]:
    hits = []
    for item in data.get("results") or []:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        hits.append(
            SearchHit(
                url=item["url"],
                title=item.get("title") or "",
                content=item.get("content") or "",
                raw_content=item.get("raw_content"),
            )
        )
    return hits


class TavilyClient:
    """Async client for the Tavily search API."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()

        self._api_key = api_key or settings.tavily_api_key
        self._api_url = (api_url or settings.tavily_api_url).rstrip("/")
        self._timeout = timeout or settings.tavily_timeout
        self._max_retries = max_retries or settings.tavily_max_retries
        self._retry_delay = retry_delay if retry_delay is not None else settings.tavily_retry_delay
        self._transport = transport

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.tavily_circuit_failure_threshold,
                recovery_timeout=settings.tavily_circuit_recovery_timeout,
            ),
            name="tavily",
        )
        self._client: httpx.AsyncClient | None = None
        self._available = bool(self._api_key)

    @property
    def available(self) -> bool:
        return self._available

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def search(
        self,
        query: str,
        max_results: int = 5,
        search_depth: str = "advanced",
        include_raw_content: bool = True,
    ) -> SearchResponse:
        """Search the web and return up to max_results hits."""
        if not self._available:
            return SearchResponse(success=False, error="Tavily not configured (missing API key)")

        if not await self._circuit_breaker.can_execute():
            return SearchResponse(success=False, error="Circuit breaker is open")

        body = {
            "query": query,
            "search_depth": search_depth,
            "max_results": max_results,
            "include_raw_content": include_raw_content,
        }
        client = await self._get_client()
        last_error: str | None = None
        last_status: int | None = None

        for attempt in range(self._max_retries):
            attempt_start = time.monotonic()
            tavily_logger.api_call_start(SEARCH_PATH, retry_attempt=attempt)
            try:
                response = await client.post(SEARCH_PATH, json=body)
                duration_ms = (time.monotonic() - attempt_start) * 1000
                last_status = response.status_code

                if response.status_code in (401, 403):
                    tavily_logger.auth_failure(response.status_code)
                    await self._circuit_breaker.record_failure()
                    return SearchResponse(
                        success=False,
                        error=f"Authentication failed ({response.status_code})",
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )

                if response.status_code == 429 or response.status_code >= 500:
                    if response.status_code == 429:
                        tavily_logger.rate_limit(SEARCH_PATH)
                    last_error = f"HTTP {response.status_code}"
                    tavily_logger.api_call_error(
                        SEARCH_PATH,
                        duration_ms,
                        response.status_code,
                        last_error,
                        "RetryableError",
                        retry_attempt=attempt,
                    )
                    await self._circuit_breaker.record_failure()
                    if attempt < self._max_retries - 1:
                        await asyncio.sleep(self._retry_delay * (2**attempt))
                    continue

                if response.status_code >= 400:
                    tavily_logger.api_call_error(
                        SEARCH_PATH,
                        duration_ms,
                        response.status_code,
                        response.text[:200],
                        "ClientError",
                        retry_attempt=attempt,
                    )
                    return SearchResponse(
                        success=False,
                        error=f"Client error ({response.status_code})",
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )

                try:
                    data = response.json()
                except ValueError:
                    tavily_logger.api_call_error(
                        SEARCH_PATH,
                        duration_ms,
                        response.status_code,
                        "Response body is not JSON",
                        "InvalidResponse",
                        retry_attempt=attempt,
                    )
                    return SearchResponse(
                        success=False,
                        error="Invalid response body (not JSON)",
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )
                hits = _parse_hits(data if isinstance(data, dict) else {})
                tavily_logger.api_call_success(SEARCH_PATH, duration_ms, result_count=len(hits))
                await self._circuit_breaker.record_success()
                return SearchResponse(
                    success=True,
                    results=hits,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )

            except httpx.TimeoutException:
                tavily_logger.timeout(SEARCH_PATH, self._timeout)
                last_error = f"Request timed out after {self._timeout}s"
            except httpx.RequestError as e:
                tavily_logger.api_call_error(
                    SEARCH_PATH,
                    (time.monotonic() - attempt_start) * 1000,
                    None,
                    str(e),
                    type(e).__name__,
                    retry_attempt=attempt,
                )
                last_error = f"Request failed: {e}"

            await self._circuit_breaker.record_failure()
            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._retry_delay * (2**attempt))

        return SearchResponse(
            success=False,
            error=last_error or "Search failed after all retries",
            status_code=last_status,
        )


tavily_client: TavilyClient | None = None


async def init_tavily() -> TavilyClient:
    global tavily_client
    if tavily_client is None:
        tavily_client = TavilyClient()
        if not tavily_client.available:
            logger.info("Tavily not configured (missing API key)")
    return tavily_client


async def close_tavily() -> None:
    global tavily_client
    if tavily_client:
        await tavily_client.close()
        tavily_client = None


async def get_tavily() -> TavilyClient:
    """Dependency for getting the Tavily client."""
    global tavily_client
    if tavily_client is None:
        await init_tavily()
    return tavily_client  # type: ignore[return-value]
