import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from api.base_provider import extract_domain
from api.cruise_critic_provider import CruiseCriticProvider
from api.exa_provider import ExaProvider
from api.serp_provider import SerpProvider, position_score
from api.tavily_provider import TavilyProvider
from models.search import SearchOptions, SearchRequest
from orchestrator.routing_types import Freshness, HealthState, ResultType
from utils.source_classifier import classify_source_type


def _search(provider, request):
    return asyncio.run(provider.search(request))


class TestTavilyProvider:
    def test_maps_payload_to_items(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "url": "https://en.wikipedia.org/wiki/Lisbon",
                            "title": "Lisbon",
                            "content": "Lisbon is the capital of Portugal.",
                            "score": 0.92,
                            "published_date": "2024-05-01",
                        },
                        {"url": "", "title": "dropped"},
                        {"url": "https://www.visitlisboa.com/en", "title": "Visit Lisboa", "content": "Guide"},
                    ]
                },
            )

        provider = TavilyProvider(api_key="tvly-test", transport=httpx.MockTransport(handler))
        request = SearchRequest(
            "Lisbon",
            result_type=ResultType.NEWS,
            options=SearchOptions(max_results=5, freshness=Freshness.WEEK),
        )
        response = _search(provider, request)

        assert seen["url"] == "https://api.tavily.com/search"
        assert seen["body"]["api_key"] == "tvly-test"
        assert seen["body"]["query"] == "Lisbon"
        assert seen["body"]["max_results"] == 5
        assert seen["body"]["topic"] == "news"
        assert seen["body"]["days"] == 7

        assert response.errors == ()
        assert response.provider == "tavily"
        assert [item.url for item in response.results] == [
            "https://en.wikipedia.org/wiki/Lisbon",
            "https://www.visitlisboa.com/en",
        ]
        first, second = response.results
        assert first.relevance_score == 0.92
        assert first.source_type == "academic"
        assert first.published_date == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert first.provider == "tavily"
        assert second.source_domain == "visitlisboa.com"
        assert second.relevance_score == 0.5

    def test_server_error_is_retryable(self):
        provider = TavilyProvider(
            api_key="tvly-test", transport=httpx.MockTransport(lambda r: httpx.Response(503))
        )
        response = _search(provider, SearchRequest("Lisbon"))

        assert response.results == ()
        assert response.errors[0].code == "TAVILY_API_ERROR"
        assert response.errors[0].retryable is True
        assert response.errors[0].provider == "tavily"

    def test_auth_error_is_not_retryable(self):
        provider = TavilyProvider(
            api_key="bad-key", transport=httpx.MockTransport(lambda r: httpx.Response(401))
        )
        response = _search(provider, SearchRequest("Lisbon"))
        assert response.errors[0].retryable is False

    def test_connection_error_is_retryable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = TavilyProvider(api_key="tvly-test", transport=httpx.MockTransport(handler))
        response = _search(provider, SearchRequest("Lisbon"))
        assert response.errors[0].retryable is True

    def test_health_probe(self):
        healthy = TavilyProvider(
            api_key="tvly-test", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"results": []}))
        )
        down = TavilyProvider(
            api_key="tvly-test", transport=httpx.MockTransport(lambda r: httpx.Response(500))
        )

        health = asyncio.run(healthy.get_health())
        assert health.status == HealthState.HEALTHY
        assert health.error_rate == 0.0

        health = asyncio.run(down.get_health())
        assert health.status == HealthState.UNHEALTHY
        assert health.error_rate == 1.0

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            TavilyProvider(api_key="")


class TestSerpProvider:
    def test_maps_organic_results(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={
                    "organic_results": [
                        {"position": 1, "link": "https://www.bbc.com/travel/lisbon", "title": "Lisbon", "snippet": "x"},
                        {"position": 3, "link": "https://www.tripadvisor.com/lisbon", "title": "Reviews"},
                    ]
                },
            )

        provider = SerpProvider(api_key="serp-test", transport=httpx.MockTransport(handler))
        request = SearchRequest(
            "Lisbon", options=SearchOptions(max_results=8, region="pt", freshness="month")
        )
        response = _search(provider, request)

        assert seen["params"]["q"] == "Lisbon"
        assert seen["params"]["num"] == "8"
        assert seen["params"]["gl"] == "pt"
        assert seen["params"]["tbs"] == "qdr:m"
        assert "tbm" not in seen["params"]

        first, second = response.results
        assert first.relevance_score == 1.0
        assert first.source_type == "news"
        assert second.relevance_score == pytest.approx(0.9)
        assert second.source_type == "review"

    def test_news_results_use_news_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["tbm"] == "nws"
            return httpx.Response(
                200, json={"news_results": [{"link": "https://reuters.com/a", "title": "A", "date": "bad date"}]}
            )

        provider = SerpProvider(api_key="serp-test", transport=httpx.MockTransport(handler))
        response = _search(provider, SearchRequest("Lisbon", result_type="news"))

        assert len(response.results) == 1
        assert response.results[0].published_date is None

    def test_malformed_json_is_reported(self):
        provider = SerpProvider(
            api_key="serp-test", transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>"))
        )
        response = _search(provider, SearchRequest("Lisbon"))

        assert response.results == ()
        assert response.errors[0].code == "SERP_API_ERROR"


def test_position_score():
    assert position_score(1) == 1.0
    assert position_score(5) == pytest.approx(0.8)
    assert position_score(40) == 0.1
    assert position_score(None) == 0.5


def test_cruise_critic_restricts_to_site():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["q"] = request.url.params["q"]
        return httpx.Response(
            200,
            json={"organic_results": [{"link": "https://www.cruisecritic.com/reviews/alaska", "title": "Alaska"}]},
        )

    provider = CruiseCriticProvider(api_key="serp-test", transport=httpx.MockTransport(handler))
    response = _search(provider, SearchRequest("Alaska cruise"))

    assert seen["q"] == "site:cruisecritic.com Alaska cruise"
    assert response.provider == "cruise-critic"
    assert response.results[0].source_type == "review"
    assert provider.error_code == "CRUISECRITIC_API_ERROR"


def test_exa_sends_neural_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["api_key"] = request.headers["x-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "url": "https://blog.example.com/quiet-towns",
                        "title": "Quiet towns",
                        "text": "A" * 800,
                        "score": 0.7,
                        "publishedDate": "2024-03-02T08:00:00.000Z",
                    }
                ]
            },
        )

    provider = ExaProvider(api_key="exa-test", transport=httpx.MockTransport(handler))
    response = _search(provider, SearchRequest("quiet seaside towns", semantic=True))

    assert seen["api_key"] == "exa-test"
    assert seen["body"]["type"] == "neural"
    assert seen["body"]["numResults"] == 10
    item = response.results[0]
    assert len(item.snippet) == 500
    assert item.source_type == "blog"
    assert item.published_date == datetime(2024, 3, 2, 8, 0, tzinfo=timezone.utc)


def test_exa_auto_mode_without_semantic_flag():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": []})

    provider = ExaProvider(api_key="exa-test", transport=httpx.MockTransport(handler))
    _search(provider, SearchRequest("Lisbon", options=SearchOptions(max_results=3)))

    assert seen["body"]["type"] == "auto"
    assert seen["body"]["numResults"] == 3


def test_extract_domain():
    assert extract_domain("https://www.example.com/a") == "example.com"
    assert extract_domain("https://docs.example.com/a") == "docs.example.com"
    assert extract_domain("nonsense") == ""


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.usa.gov/travel", "official"),
        ("https://www.bbc.com/news/world", "news"),
        ("https://medium.com/@writer/lisbon", "blog"),
        ("https://www.yelp.com/biz/cafe", "review"),
        ("https://www.reddit.com/r/travel", "social"),
        ("https://arxiv.org/abs/1234", "academic"),
        ("https://www.netflix.com/title/1", "blog"),
    ],
)
def test_classify_source_type(url, expected):
    assert classify_source_type(url) == expected


def test_tavily_rfc2822_dates_are_kept():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "url": "https://www.reuters.com/travel/lisbon",
                        "title": "Lisbon",
                        "content": "x",
                        "published_date": "Wed, 17 Jan 2024 18:40:00 GMT",
                    }
                ]
            },
        )

    provider = TavilyProvider(api_key="tvly-test", transport=httpx.MockTransport(handler))
    [item] = _search(provider, SearchRequest("Lisbon")).results

    assert item.published_date == datetime(2024, 1, 17, 18, 40, tzinfo=timezone.utc)


def test_serp_display_dates_are_kept():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"organic_results": [{"link": "https://a.com/x", "title": "A", "date": "Jan 15, 2024"}]},
        )

    provider = SerpProvider(api_key="serp-test", transport=httpx.MockTransport(handler))
    [item] = _search(provider, SearchRequest("Lisbon")).results

    assert item.published_date == datetime(2024, 1, 15, tzinfo=timezone.utc)


def test_recency_ranking_over_mixed_provider_date_formats():
    from orchestrator.result_processor import rank_by_recency

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "organic_results": [
                    {"link": "https://a.com/old", "title": "old", "date": "Jan 15, 2023"},
                    {"link": "https://a.com/undated", "title": "undated"},
                    {"link": "https://a.com/new", "title": "new", "date": "Mon, 01 Apr 2024 09:00:00 GMT"},
                    {"link": "https://a.com/mid", "title": "mid", "date": "2023-08-01"},
                ]
            },
        )

    provider = SerpProvider(api_key="serp-test", transport=httpx.MockTransport(handler))
    results = _search(provider, SearchRequest("Lisbon")).results

    ranked = rank_by_recency(list(results))

    assert [item.title for item in ranked] == ["new", "mid", "old", "undated"]
