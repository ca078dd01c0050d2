"""
Assignment strategies: pure functions mapping a query batch onto worker classes.

Every strategy has the signature ``(queries, registry) -> list[Assignment]`` and
must conserve queries: each input query appears in exactly one assignment.
Capacity is best-effort. When no class with spare capacity supports a query,
the query stays where it is and the assignment may end up over capacity.
"""

from collections.abc import Callable

from models.query import Assignment, Query
from orchestrator.capability_registry import CapabilityRegistry
from orchestrator.routing_types import DistributionStrategy, Priority

AssignmentStrategyFn = Callable[[list[Query], CapabilityRegistry], list[Assignment]]


def _check_worker_classes(queries: list[Query], registry: CapabilityRegistry) -> None:
    for query in queries:
        registry.get(query.target_worker_class)


def _empty_buckets(registry: CapabilityRegistry) -> dict[str, list[Query]]:
    return {worker_class: [] for worker_class in registry.worker_classes()}


def _to_assignments(
    buckets: dict[str, list[Query]], priority: Priority | None = None
) -> list[Assignment]:
    return [
        Assignment(worker_class=worker_class, queries=tuple(queries), effective_priority=priority)
        for worker_class, queries in buckets.items()
        if queries
    ]


def _least_loaded(
    query: Query,
    loads: dict[str, int],
    registry: CapabilityRegistry,
    exclude: str | None = None,
) -> str | None:
    """Least-loaded class with spare capacity that supports the query's category.

    ``loads`` is iterated in declaration order, so ``min`` breaks ties by it.
    """
    candidates = [
        worker_class
        for worker_class, load in loads.items()
        if worker_class != exclude
        and load < registry.capacity(worker_class)
        and registry.supports(worker_class, query.category)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda worker_class: loads[worker_class])


def assign_simple(queries: list[Query], registry: CapabilityRegistry) -> list[Assignment]:
    """Group by target class; overflow goes wholesale to the fallback class."""
    _check_worker_classes(queries, registry)
    buckets = _empty_buckets(registry)
    fallback = registry.fallback_worker_class

    for query in queries:
        worker_class = query.target_worker_class
        if len(buckets[worker_class]) < registry.capacity(worker_class):
            buckets[worker_class].append(query)
        else:
            buckets[fallback].append(query)

    return _to_assignments(buckets)


def _place_in_tier(query: Query, tier_classes: tuple[str, ...], registry: CapabilityRegistry) -> str:
    if query.target_worker_class in tier_classes:
        return query.target_worker_class
    for worker_class in tier_classes:
        if registry.supports(worker_class, query.category):
            return worker_class
    return tier_classes[0]


def assign_priority_based(queries: list[Query], registry: CapabilityRegistry) -> list[Assignment]:
    """High priority to the immediate-dispatch classes, the rest to planning/finishing classes.

    Produces two tiers at most: ``high`` and ``medium``.
    """
    _check_worker_classes(queries, registry)
    immediate = registry.immediate_dispatch_classes
    deferred = registry.deferred_dispatch_classes

    high = [q for q in queries if q.priority == Priority.HIGH]
    remaining = [q for q in queries if q.priority == Priority.MEDIUM]
    remaining += [q for q in queries if q.priority == Priority.LOW]

    high_buckets: dict[str, list[Query]] = {worker_class: [] for worker_class in immediate}
    for query in high:
        high_buckets[_place_in_tier(query, immediate, registry)].append(query)

    remaining_buckets: dict[str, list[Query]] = {worker_class: [] for worker_class in deferred}
    for query in remaining:
        remaining_buckets[_place_in_tier(query, deferred, registry)].append(query)

    return _to_assignments(high_buckets, Priority.HIGH) + _to_assignments(
        remaining_buckets, Priority.MEDIUM
    )


def assign_load_balanced(queries: list[Query], registry: CapabilityRegistry) -> list[Assignment]:
    """Greedy placement in priority order; a full preferred class spills to the least-loaded match."""
    _check_worker_classes(queries, registry)
    buckets = _empty_buckets(registry)
    loads = {worker_class: 0 for worker_class in buckets}

    ordered = sorted(queries, key=lambda q: q.priority.rank, reverse=True)
    for query in ordered:
        worker_class = query.target_worker_class
        if loads[worker_class] >= registry.capacity(worker_class):
            worker_class = _least_loaded(query, loads, registry) or worker_class
        buckets[worker_class].append(query)
        loads[worker_class] += 1

    return _to_assignments(buckets)


def assign_balanced(queries: list[Query], registry: CapabilityRegistry) -> list[Assignment]:
    """Group by target class, then move overflow one-by-one to the least-loaded capable class."""
    _check_worker_classes(queries, registry)
    buckets = _empty_buckets(registry)
    for query in queries:
        buckets[query.target_worker_class].append(query)

    for worker_class in registry.worker_classes():
        capacity = registry.capacity(worker_class)
        if len(buckets[worker_class]) <= capacity:
            continue

        overflow = buckets[worker_class][capacity:]
        buckets[worker_class] = buckets[worker_class][:capacity]
        for query in overflow:
            loads = {name: len(bucket) for name, bucket in buckets.items()}
            target = _least_loaded(query, loads, registry, exclude=worker_class)
            # No home found: stays on the overloaded class.
            buckets[target or worker_class].append(query)

    return _to_assignments(buckets)


ASSIGNMENT_STRATEGIES: dict[DistributionStrategy, AssignmentStrategyFn] = {
    DistributionStrategy.SIMPLE: assign_simple,
    DistributionStrategy.PRIORITY_BASED: assign_priority_based,
    DistributionStrategy.LOAD_BALANCED: assign_load_balanced,
    DistributionStrategy.BALANCED: assign_balanced,
}
