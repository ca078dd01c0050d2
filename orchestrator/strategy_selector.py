"""
StrategySelector - picks a distribution strategy from the shape of a query batch.

Rules are checked in order and the first match wins: small batches go Simple,
high-priority-dominated batches go Priority-Based, large batches go
Load-Balanced, everything else is Balanced.
"""

from models.query import Query, QueryContext
from orchestrator.routing_types import DistributionStrategy, Priority, StrategyDecision


class StrategySelector:
    def __init__(self, thresholds: dict[str, float] | None = None):
        self._thresholds = thresholds or {}

    def decide(self, queries: list[Query], context: QueryContext | None = None) -> StrategyDecision:
        reasons: list[str] = []

        simple_max_queries = int(self._thresholds.get("simple_max_queries", 3))
        high_priority_ratio = float(self._thresholds.get("high_priority_ratio", 0.6))
        load_balanced_min_queries = int(self._thresholds.get("load_balanced_min_queries", 10))

        query_count = len(queries)
        high_count = sum(1 for q in queries if q.priority == Priority.HIGH)

        if query_count <= simple_max_queries:
            reasons.append(f"small_batch_{query_count}")
            return StrategyDecision(strategy=DistributionStrategy.SIMPLE, reasons=reasons)

        if high_count > query_count * high_priority_ratio:
            reasons.append(f"high_priority_dominant_{high_count}_of_{query_count}")
            return StrategyDecision(strategy=DistributionStrategy.PRIORITY_BASED, reasons=reasons)

        if query_count > load_balanced_min_queries:
            reasons.append(f"large_batch_{query_count}")
            return StrategyDecision(strategy=DistributionStrategy.LOAD_BALANCED, reasons=reasons)

        reasons.append("default_balanced")
        return StrategyDecision(strategy=DistributionStrategy.BALANCED, reasons=reasons)


def select_strategy(queries: list[Query], context: QueryContext | None = None) -> DistributionStrategy:
    return StrategySelector().decide(queries, context).strategy
