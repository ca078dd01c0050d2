from datetime import datetime, timezone

import pytest

from fakes import make_item, make_query
from models.query import Assignment, Query
from models.search import (
    SearchError,
    SearchMetadata,
    SearchOptions,
    SearchResponse,
    parse_published_date,
    provider_error_code,
)
from orchestrator.routing_types import Priority


def test_query_coerces_priority_and_rejects_empty_text():
    query = Query(text="museums", category="cultural", priority="HIGH", target_worker_class="specialist")
    assert query.priority == Priority.HIGH

    with pytest.raises(ValueError):
        Query(text="  ", category="cultural", priority="low", target_worker_class="specialist")


def test_query_from_dict_defaults_priority():
    query = Query.from_dict({"text": "weather", "category": "weather", "target_worker_class": "gatherer"})
    assert query.priority == Priority.MEDIUM
    assert Query.from_dict(query.to_dict()) == query


@pytest.mark.parametrize(
    "priorities,expected",
    [
        (["high", "high", "low"], Priority.HIGH),
        (["high", "medium", "medium"], Priority.MEDIUM),
        (["high", "medium", "low"], Priority.LOW),
        (["high", "low"], Priority.LOW),
    ],
)
def test_assignment_derives_effective_priority(priorities, expected):
    queries = tuple(make_query("gatherer", "flights", p) for p in priorities)
    assert Assignment("gatherer", queries).effective_priority == expected


def test_assignment_keeps_explicit_priority():
    queries = (make_query("gatherer", "flights", "low"),)
    assert Assignment("gatherer", queries, Priority.HIGH).effective_priority == Priority.HIGH


def test_result_item_clamps_score_and_parses_date():
    item = make_item("https://a.com/x", score=1.7, published="2024-01-05T10:00:00Z")
    assert item.relevance_score == 1.0
    assert item.published_date == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert make_item("https://a.com/y", score=-3).relevance_score == 0.0


def test_parse_published_date_rejects_garbage():
    assert parse_published_date("yesterday") is None
    assert parse_published_date("") is None
    assert parse_published_date(None) is None


def test_provider_error_code():
    assert provider_error_code("serp") == "PROVIDER_SERP_ERROR"
    assert provider_error_code("cruise-critic") == "PROVIDER_CRUISE_CRITIC_ERROR"


def test_search_options_validation():
    with pytest.raises(ValueError):
        SearchOptions(max_results=0)


def test_response_success_flags():
    metadata = SearchMetadata(total_results=0, search_time_ms=3, provider="orchestrator")
    error = SearchError(code="TIMEOUT", message="slow", provider="serp")

    empty = SearchResponse(query="q", provider="orchestrator", results=[], metadata=metadata)
    failed = SearchResponse(query="q", provider="orchestrator", results=[], metadata=metadata, errors=[error])
    partial = SearchResponse(
        query="q", provider="orchestrator", results=[make_item("https://a.com/x")], metadata=metadata, errors=[error]
    )

    assert empty.is_success and not empty.is_partial
    assert not failed.is_success
    assert partial.is_success and partial.is_partial
    assert "errors" not in empty.to_dict()
    assert partial.to_dict()["errors"][0]["code"] == "TIMEOUT"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Wed, 17 Jan 2024 18:40:00 GMT", datetime(2024, 1, 17, 18, 40, tzinfo=timezone.utc)),
        ("Jan 15, 2024", datetime(2024, 1, 15, tzinfo=timezone.utc)),
        ("March 3, 2024", datetime(2024, 3, 3, tzinfo=timezone.utc)),
        ("2024-02-01T12:00:00Z", datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)),
    ],
)
def test_parse_published_date_provider_formats(raw, expected):
    assert parse_published_date(raw) == expected
