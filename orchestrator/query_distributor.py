"""
QueryDistributor - assigns a batch of tagged queries to worker classes.

Chooses an assignment strategy from the batch shape, runs it against the
capability registry and wraps the result in a Distribution with an estimated
total processing time.
"""

from dataclasses import replace

from models.query import Assignment, Distribution, DistributionValidation, Query, QueryContext
from orchestrator.assignment_strategies import ASSIGNMENT_STRATEGIES
from orchestrator.capability_registry import CapabilityRegistry
from orchestrator.routing_types import DistributionStrategy
from orchestrator.strategy_selector import StrategySelector
from utils.logger import get_logger

logger = get_logger(__name__)


class QueryDistributor:
    """
    Distributes query batches across capacity-constrained worker classes.

    Example usage:
        distributor = QueryDistributor(CapabilityRegistry.from_yaml())
        distribution = distributor.distribute(queries)
        report = distributor.validate(distribution)
        for assignment in distribution.assignments:
            print(assignment.worker_class, len(assignment.queries))
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        selector: StrategySelector | None = None,
    ):
        self._registry = registry
        self._selector = selector or StrategySelector()

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    def distribute(
        self,
        queries: list[Query],
        context: QueryContext | None = None,
        strategy: DistributionStrategy | None = None,
    ) -> Distribution:
        """
        Assign queries to worker classes.

        Args:
            queries: Query batch from the upstream generator
            context: Opaque generator context (only used for log correlation)
            strategy: Force a strategy instead of selecting one from the batch shape

        Returns:
            Distribution holding every input query exactly once

        Raises:
            UnknownWorkerClassError: If a query targets a worker class the registry lacks
        """
        queries = list(queries)
        if strategy is None:
            decision = self._selector.decide(queries, context)
            strategy, reasons = decision.strategy, decision.reasons
        else:
            reasons = [f"forced_{strategy.value}"]

        assignments = ASSIGNMENT_STRATEGIES[strategy](queries, self._registry)
        distribution = Distribution(
            original_queries=tuple(queries),
            assignments=tuple(assignments),
            strategy_name=strategy.value,
            estimated_total_processing_time_s=self.estimate_processing_time(assignments),
        )

        logger.info(
            f"Distributed {len(queries)} queries with {strategy.value} strategy",
            extra={
                "extra_fields": {
                    "distribution_id": distribution.distribution_id,
                    "session_id": context.session_id if context else None,
                    "strategy": strategy.value,
                    "reasons": reasons,
                    "assignment_sizes": {a.worker_class: len(a.queries) for a in assignments},
                    "estimated_total_processing_time_s": distribution.estimated_total_processing_time_s,
                }
            },
        )
        return distribution

    def estimate_processing_time(self, assignments: list[Assignment] | tuple[Assignment, ...]) -> float:
        return sum(self.assignment_processing_time(a) for a in assignments)

    def assignment_processing_time(self, assignment: Assignment) -> float:
        capability = self._registry.get(assignment.worker_class)
        return len(assignment.queries) * capability.est_processing_time_s

    def validate(self, distribution: Distribution) -> DistributionValidation:
        """
        Check the conservation invariant and flag capacity problems.

        Over-capacity assignments and idle worker classes are warnings, not
        errors: rebalancing is best-effort.
        """
        errors: list[str] = []
        warnings: list[str] = []

        assigned = distribution.assigned_count
        expected = len(distribution.original_queries)
        if assigned != expected:
            errors.append(
                f"Total assigned queries ({assigned}) does not match original query count ({expected})"
            )

        for assignment in distribution.assignments:
            capacity = self._registry.capacity(assignment.worker_class)
            if len(assignment.queries) > capacity:
                warnings.append(
                    f"{assignment.worker_class} overloaded: {len(assignment.queries)}/{capacity} queries"
                )

        busy = {a.worker_class for a in distribution.assignments if a.queries}
        idle = [w for w in self._registry.worker_classes() if w not in busy]
        if idle:
            warnings.append(f"Worker classes with no queries: {', '.join(idle)}")

        if errors or warnings:
            logger.warning(
                "Distribution validation found issues",
                extra={
                    "extra_fields": {
                        "distribution_id": distribution.distribution_id,
                        "errors": errors,
                        "warnings": warnings,
                    }
                },
            )

        return DistributionValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def optimize_for_parallel_processing(self, distribution: Distribution) -> Distribution:
        """Return a copy with the longest-running assignments first."""
        ordered = sorted(
            distribution.assignments,
            key=self.assignment_processing_time,
            reverse=True,
        )
        return replace(distribution, assignments=tuple(ordered))
