"""Exa provider: neural / semantic web search."""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from api.base_provider import HttpSearchProvider
from models.search import SearchRequest, SearchResultItem
from orchestrator.routing_types import Freshness, ResultType

EXA_SEARCH_URL = "https://api.exa.ai/search"
EXA_MAX_RESULTS = 10

FRESHNESS_WINDOW = {
    Freshness.DAY: timedelta(days=1),
    Freshness.WEEK: timedelta(days=7),
    Freshness.MONTH: timedelta(days=30),
    Freshness.YEAR: timedelta(days=365),
}


class ExaProvider(HttpSearchProvider):
    name = "exa"

    def _build_payload(self, request: SearchRequest) -> dict[str, Any]:
        options = request.options
        payload: dict[str, Any] = {
            "query": request.query_text,
            "numResults": max(1, min(options.max_results, EXA_MAX_RESULTS)),
            "type": "neural" if request.semantic else "auto",
            "contents": {"text": {"maxCharacters": 500}},
        }
        if request.result_type == ResultType.NEWS:
            payload["category"] = "news"
        if options.freshness is not None:
            since = datetime.now(timezone.utc) - FRESHNESS_WINDOW[options.freshness]
            payload["startPublishedDate"] = since.isoformat().replace("+00:00", "Z")
        return payload

    async def _send(self, client: httpx.AsyncClient, request: SearchRequest) -> httpx.Response:
        return await client.post(
            EXA_SEARCH_URL, json=self._build_payload(request), headers={"x-api-key": self.api_key}
        )

    def _parse_results(self, payload: dict[str, Any], request: SearchRequest) -> list[SearchResultItem]:
        results: list[SearchResultItem] = []
        for item in payload.get("results") or []:
            url = str(item.get("url") or "").strip()
            if not url:
                continue
            snippet = item.get("text") or item.get("summary") or ""
            results.append(
                self._make_item(
                    url=url,
                    title=str(item.get("title") or "").strip(),
                    snippet=str(snippet).strip()[:500],
                    relevance_score=float(item.get("score") or 0.5),
                    published_date=item.get("publishedDate"),
                )
            )
        return results
