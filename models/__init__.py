"""
Models package for query distribution and search aggregation objects.
"""

from .query import (
    Assignment,
    Distribution,
    DistributionValidation,
    Query,
    QueryContext,
    WorkerCapability,
)
from .search import (
    ProviderHealth,
    ProviderStatus,
    SearchError,
    SearchMetadata,
    SearchOptions,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
)

__all__ = [
    "Assignment",
    "Distribution",
    "DistributionValidation",
    "ProviderHealth",
    "ProviderStatus",
    "Query",
    "QueryContext",
    "SearchError",
    "SearchMetadata",
    "SearchOptions",
    "SearchRequest",
    "SearchResponse",
    "SearchResultItem",
    "WorkerCapability",
]
