"""SerpAPI (Google results) provider: secondary general-web search."""

from typing import Any

import httpx

from api.base_provider import HttpSearchProvider
from models.search import SearchRequest, SearchResultItem
from orchestrator.routing_types import Freshness, ResultType

SERPAPI_SEARCH_URL = "https://serpapi.com/search.json"
SERP_MAX_RESULTS = 100

FRESHNESS_TBS = {
    Freshness.DAY: "qdr:d",
    Freshness.WEEK: "qdr:w",
    Freshness.MONTH: "qdr:m",
    Freshness.YEAR: "qdr:y",
}

# result type -> (tbm parameter, payload key holding the results)
RESULT_TYPE_PARAMS = {
    ResultType.TEXT: (None, "organic_results"),
    ResultType.NEWS: ("nws", "news_results"),
    ResultType.IMAGE: ("isch", "images_results"),
    ResultType.VIDEO: ("vid", "video_results"),
}


def position_score(position: int | None) -> float:
    """Rank 1 scores 1.0, each later position loses 0.05, floored at 0.1."""
    if not position or position < 1:
        return 0.5
    return max(0.1, 1.0 - (position - 1) * 0.05)


class SerpProvider(HttpSearchProvider):
    name = "serp"

    def _query_text(self, request: SearchRequest) -> str:
        return request.query_text

    def _build_params(self, request: SearchRequest) -> dict[str, Any]:
        options = request.options
        tbm, _ = RESULT_TYPE_PARAMS[request.result_type]
        params: dict[str, Any] = {
            "api_key": self.api_key,
            "engine": "google",
            "q": self._query_text(request),
            "num": max(1, min(options.max_results, SERP_MAX_RESULTS)),
            "hl": options.language,
            "safe": "active" if options.safe_search else "off",
        }
        if options.region:
            params["gl"] = options.region
        if tbm:
            params["tbm"] = tbm
        if options.freshness is not None:
            params["tbs"] = FRESHNESS_TBS[options.freshness]
        return params

    async def _send(self, client: httpx.AsyncClient, request: SearchRequest) -> httpx.Response:
        return await client.get(SERPAPI_SEARCH_URL, params=self._build_params(request))

    def _parse_results(self, payload: dict[str, Any], request: SearchRequest) -> list[SearchResultItem]:
        _, results_key = RESULT_TYPE_PARAMS[request.result_type]
        results: list[SearchResultItem] = []
        for index, item in enumerate(payload.get(results_key) or [], start=1):
            url = str(item.get("link") or item.get("original") or "").strip()
            if not url:
                continue
            results.append(
                self._make_item(
                    url=url,
                    title=str(item.get("title") or "").strip(),
                    snippet=str(item.get("snippet") or "").strip(),
                    relevance_score=position_score(item.get("position") or index),
                    published_date=item.get("date"),
                )
            )
        return results
