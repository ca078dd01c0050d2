import time
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlparse

import httpx

from models.search import (
    ProviderHealth,
    SearchError,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
)
from orchestrator.routing_types import HealthState
from utils.logger import get_logger
from utils.source_classifier import classify_source_type

logger = get_logger(__name__)

USER_AGENT = "search-dispatch/1.0"
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class BaseSearchProvider(ABC):
    """
    Abstract base class for search providers.

    All providers expose the same contract to the orchestrator: an async
    ``search`` returning a SearchResponse and a lightweight ``get_health`` probe.
    A provider may raise from ``search``; the orchestrator turns that into a
    per-provider error without affecting other providers.
    """

    name: str = "base"

    @abstractmethod
    async def search(self, request: SearchRequest) -> SearchResponse:
        """
        Execute a search.

        Args:
            request: The search request

        Returns:
            SearchResponse carrying results and any provider-reported errors
        """

    @abstractmethod
    async def get_health(self) -> ProviderHealth:
        """Probe the provider cheaply and report status, latency and error rate."""


class HttpSearchProvider(BaseSearchProvider):
    """
    Shared plumbing for providers backed by a JSON HTTP API.

    Subclasses implement ``_send`` (issue the HTTP call) and ``_parse_results``
    (payload -> SearchResultItem list). Transport failures are reported as a
    ``<NAME>_API_ERROR`` on the returned response rather than raised.
    """

    healthy_latency_ms: int = 2000

    def __init__(
        self,
        api_key: str,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError(f"{self.name} API key is required")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_s,
            transport=self._transport,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )

    @abstractmethod
    async def _send(self, client: httpx.AsyncClient, request: SearchRequest) -> httpx.Response:
        ...

    @abstractmethod
    def _parse_results(self, payload: dict[str, Any], request: SearchRequest) -> list[SearchResultItem]:
        ...

    async def _probe(self, client: httpx.AsyncClient) -> httpx.Response:
        probe = SearchRequest(query_text="test")
        return await self._send(client, probe)

    @property
    def error_code(self) -> str:
        return f"{self.name.upper().replace('-', '')}_API_ERROR"

    async def search(self, request: SearchRequest) -> SearchResponse:
        start = time.perf_counter()
        try:
            async with self._client() as client:
                response = await self._send(client, request)
                response.raise_for_status()
                payload = response.json() if response.content else {}
            results = self._parse_results(payload if isinstance(payload, dict) else {}, request)
            results = results[: request.options.max_results]
            errors: list[SearchError] = []
            logger.info(
                f"{self.name} returned {len(results)} results",
                extra={"extra_fields": {"provider": self.name, "result_count": len(results)}},
            )
        except (httpx.HTTPError, ValueError) as e:
            results = []
            errors = [
                SearchError(
                    code=self.error_code,
                    message=str(e) or type(e).__name__,
                    retryable=self._is_retryable(e),
                    provider=self.name,
                    details={"exception_type": type(e).__name__},
                )
            ]
            logger.warning(
                f"{self.name} search failed: {e}",
                extra={
                    "extra_fields": {
                        "provider": self.name,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        return SearchResponse(
            query=request.query_text,
            provider=self.name,
            results=results,
            metadata=SearchMetadata(
                total_results=len(results), search_time_ms=elapsed_ms, provider=self.name
            ),
            errors=errors,
        )

    async def get_health(self) -> ProviderHealth:
        start = time.perf_counter()
        try:
            async with self._client() as client:
                response = await self._probe(client)
                response.raise_for_status()
        except httpx.HTTPError as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.warning(
                f"{self.name} health probe failed: {e}",
                extra={"extra_fields": {"provider": self.name, "error_type": type(e).__name__}},
            )
            return ProviderHealth(status=HealthState.UNHEALTHY, latency_ms=latency_ms, error_rate=1.0)

        latency_ms = int((time.perf_counter() - start) * 1000)
        status = HealthState.HEALTHY if latency_ms < self.healthy_latency_ms else HealthState.DEGRADED
        return ProviderHealth(status=status, latency_ms=latency_ms, error_rate=0.0)

    def _is_retryable(self, error: Exception) -> bool:
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in RETRYABLE_STATUS_CODES
        return isinstance(error, (httpx.TimeoutException, httpx.TransportError))

    def _make_item(
        self,
        *,
        url: str,
        title: str,
        snippet: str,
        relevance_score: float,
        published_date: Any = None,
        source_domain: str | None = None,
    ) -> SearchResultItem:
        domain = source_domain or extract_domain(url)
        return SearchResultItem(
            url=url,
            title=title or url,
            snippet=snippet,
            source_domain=domain,
            relevance_score=relevance_score,
            published_date=published_date,
            source_type=classify_source_type(url),
            provider=self.name,
        )


def extract_domain(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host
