"""Tavily search provider: primary general-web search.

Tavily does the crawling, content extraction and relevance scoring; we only
map its payload onto SearchResultItem.
"""

from typing import Any

import httpx

from api.base_provider import HttpSearchProvider
from models.search import SearchRequest, SearchResultItem
from orchestrator.routing_types import Freshness, ResultType

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
TAVILY_MAX_RESULTS = 20

FRESHNESS_DAYS = {
    Freshness.DAY: 1,
    Freshness.WEEK: 7,
    Freshness.MONTH: 30,
    Freshness.YEAR: 365,
}


class TavilyProvider(HttpSearchProvider):
    name = "tavily"
    healthy_latency_ms = 1500

    def __init__(self, api_key: str, search_depth: str = "advanced", **kwargs):
        """
        Args:
            api_key: Tavily API key
            search_depth: "basic" (faster) or "advanced" (deeper)
            **kwargs: timeout_s / transport, see HttpSearchProvider
        """
        super().__init__(api_key, **kwargs)
        self.search_depth = search_depth

    def _build_payload(self, request: SearchRequest) -> dict[str, Any]:
        options = request.options
        payload: dict[str, Any] = {
            "api_key": self.api_key,
            "query": request.query_text,
            "search_depth": self.search_depth,
            "include_answer": False,
            "include_raw_content": False,
            "include_images": request.result_type == ResultType.IMAGE,
            "max_results": max(1, min(options.max_results, TAVILY_MAX_RESULTS)),
        }
        if request.result_type == ResultType.NEWS:
            payload["topic"] = "news"
        if options.freshness is not None:
            payload["days"] = FRESHNESS_DAYS[options.freshness]
        return payload

    async def _send(self, client: httpx.AsyncClient, request: SearchRequest) -> httpx.Response:
        return await client.post(TAVILY_SEARCH_URL, json=self._build_payload(request))

    async def _probe(self, client: httpx.AsyncClient) -> httpx.Response:
        return await client.post(
            TAVILY_SEARCH_URL,
            json={"api_key": self.api_key, "query": "test", "search_depth": "basic", "max_results": 1},
        )

    def _parse_results(self, payload: dict[str, Any], request: SearchRequest) -> list[SearchResultItem]:
        results: list[SearchResultItem] = []
        for item in payload.get("results") or []:
            url = str(item.get("url") or "").strip()
            if not url:
                continue
            results.append(
                self._make_item(
                    url=url,
                    title=str(item.get("title") or "").strip(),
                    snippet=str(item.get("content") or item.get("snippet") or "").strip(),
                    relevance_score=float(item.get("score") or 0.5),
                    published_date=item.get("published_date"),
                )
            )
        return results
