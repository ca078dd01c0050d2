"""
Search request/response data model shared by providers and the orchestrator.

Frozen dataclasses with normalization in ``__post_init__`` and a ``to_dict``
for callers that want a plain payload.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from orchestrator.routing_types import Freshness, HealthState, ResultType

NO_PROVIDERS_AVAILABLE = "NO_PROVIDERS_AVAILABLE"
TIMEOUT = "TIMEOUT"
ORCHESTRATOR_ERROR = "ORCHESTRATOR_ERROR"


def provider_error_code(provider_name: str) -> str:
    """``PROVIDER_<NAME>_ERROR`` with the provider name upper-cased and dashes folded."""
    return f"PROVIDER_{provider_name.upper().replace('-', '_')}_ERROR"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# Non-ISO date layouts seen in provider payloads, e.g. SerpAPI "Jan 15, 2024"
DISPLAY_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%d %b %Y")


def _parse_date_text(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    # RFC 2822, e.g. Tavily "Wed, 17 Jan 2024 18:40:00 GMT"
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError):
        pass
    for fmt in DISPLAY_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_published_date(value: Any) -> datetime | None:
    """Coerce provider date values into an aware UTC datetime; unparseable values become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = _parse_date_text(text)
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class SearchOptions:
    max_results: int = 10
    language: str = "en"
    region: str | None = None
    safe_search: bool = True
    freshness: Freshness | None = None

    def __post_init__(self):
        if self.max_results < 1:
            raise ValueError("max_results must be at least 1")
        if self.freshness is not None and not isinstance(self.freshness, Freshness):
            object.__setattr__(self, "freshness", Freshness(self.freshness))


@dataclass(frozen=True)
class SearchRequest:
    query_text: str
    result_type: ResultType = ResultType.TEXT
    provider_hint: str | None = None
    semantic: bool = False  # explicit neural/semantic search
    options: SearchOptions = field(default_factory=SearchOptions)

    def __post_init__(self):
        if not isinstance(self.result_type, ResultType):
            object.__setattr__(self, "result_type", ResultType(self.result_type))


@dataclass(frozen=True)
class SearchResultItem:
    url: str
    title: str
    snippet: str
    source_domain: str
    relevance_score: float = 0.0
    published_date: datetime | None = None
    source_type: str = "blog"
    provider: str | None = None

    def __post_init__(self):
        score = float(self.relevance_score or 0.0)
        object.__setattr__(self, "relevance_score", min(1.0, max(0.0, score)))
        object.__setattr__(self, "published_date", parse_published_date(self.published_date))

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "snippet": self.snippet,
            "source_domain": self.source_domain,
            "published_date": self.published_date.isoformat() if self.published_date else None,
            "relevance_score": self.relevance_score,
            "source_type": self.source_type,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class SearchError:
    code: str
    message: str
    retryable: bool = True
    provider: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "provider": self.provider,
            "details": self.details,
        }


@dataclass(frozen=True)
class SearchMetadata:
    total_results: int
    search_time_ms: int
    provider: str
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True)
class SearchResponse:
    query: str
    provider: str
    results: tuple[SearchResultItem, ...]
    metadata: SearchMetadata
    errors: tuple[SearchError, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "errors", tuple(self.errors or ()))

    @property
    def is_success(self) -> bool:
        """Any results, or no errors at all."""
        return len(self.results) > 0 or len(self.errors) == 0

    @property
    def is_partial(self) -> bool:
        return len(self.results) > 0 and len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "query": self.query,
            "provider": self.provider,
            "results": [r.to_dict() for r in self.results],
            "metadata": {
                "total_results": self.metadata.total_results,
                "search_time_ms": self.metadata.search_time_ms,
                "provider": self.metadata.provider,
                "timestamp": self.metadata.timestamp,
            },
        }
        if self.errors:
            payload["errors"] = [e.to_dict() for e in self.errors]
        return payload


@dataclass(frozen=True)
class ProviderHealth:
    status: HealthState
    latency_ms: int
    error_rate: float

    def __post_init__(self):
        if not isinstance(self.status, HealthState):
            object.__setattr__(self, "status", HealthState(self.status))


@dataclass(frozen=True)
class ProviderStatus:
    name: str
    healthy: bool
    latency_ms: int
    error_rate: float
    last_checked: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "latency_ms": self.latency_ms,
            "error_rate": self.error_rate,
            "last_checked": self.last_checked,
        }
