"""
Result post-processing: URL-normalized deduplication and ranking.

Everything here is pure and deterministic. Sorting relies on Python's stable
sort, so equal keys keep their input order.
"""

import math
from datetime import datetime, timezone
from urllib.parse import urlsplit

from models.search import SearchResultItem
from orchestrator.routing_types import RankingMode

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def normalize_url(url: str) -> str:
    """
    Reduce a URL to ``scheme://host/path`` for duplicate detection.

    Query string and fragment are dropped and the host is lower-cased. Strings
    that do not parse as absolute URLs are returned unchanged.
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return url
    if not parts.scheme or not host:
        return url
    return f"{parts.scheme}://{host}{parts.path}"


def deduplicate(items: list[SearchResultItem]) -> list[SearchResultItem]:
    """Keep the first item for each normalized URL, in input order."""
    seen: set[str] = set()
    unique: list[SearchResultItem] = []
    for item in items:
        key = normalize_url(item.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def rank_by_relevance(items: list[SearchResultItem]) -> list[SearchResultItem]:
    return sorted(items, key=lambda item: item.relevance_score, reverse=True)


def rank_by_recency(items: list[SearchResultItem]) -> list[SearchResultItem]:
    """Newest first; undated items sort as oldest."""
    return sorted(items, key=lambda item: item.published_date or _OLDEST, reverse=True)


def rank_by_diversity(items: list[SearchResultItem], max_results: int) -> list[SearchResultItem]:
    """
    Round-robin across source domains so no single source dominates.

    Groups are visited in first-seen order, one item per group per round.
    Each group contributes at most ``ceil(max_results / group_count)`` items;
    a group that runs dry drops out. Stops at ``max_results`` or when every
    group is exhausted or capped.
    """
    groups: dict[str, list[SearchResultItem]] = {}
    for item in items:
        groups.setdefault(item.source_domain, []).append(item)
    if not groups or max_results <= 0:
        return []

    cap = math.ceil(max_results / len(groups))
    cursors = {domain: 0 for domain in groups}
    ranked: list[SearchResultItem] = []

    while len(ranked) < max_results:
        added = False
        for domain, group in groups.items():
            if len(ranked) >= max_results:
                break
            position = cursors[domain]
            if position >= len(group) or position >= cap:
                continue
            ranked.append(group[position])
            cursors[domain] = position + 1
            added = True
        if not added:
            break

    return ranked


def rank(
    items: list[SearchResultItem], mode: RankingMode, max_results: int
) -> list[SearchResultItem]:
    if mode == RankingMode.RELEVANCE:
        return rank_by_relevance(items)
    if mode == RankingMode.RECENCY:
        return rank_by_recency(items)
    if mode == RankingMode.DIVERSITY:
        return rank_by_diversity(items, max_results)
    raise ValueError(f"Unsupported ranking mode: {mode}")


class ResultProcessor:
    def __init__(
        self,
        ranking: RankingMode = RankingMode.RELEVANCE,
        deduplication: bool = True,
    ):
        self.ranking = RankingMode(ranking)
        self.deduplication = deduplication

    def process(self, items: list[SearchResultItem], max_results: int) -> list[SearchResultItem]:
        processed = list(items)
        if self.deduplication:
            processed = deduplicate(processed)
        processed = rank(processed, self.ranking, max_results)
        return processed[:max_results]
