"""
Query distribution data model.

Immutable dataclasses describing a batch of tagged queries, the static
capabilities of each worker class, and the resulting distribution of queries
onto worker classes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from orchestrator.routing_types import Priority


@dataclass(frozen=True)
class Query:
    text: str
    category: str
    priority: Priority
    target_worker_class: str
    source_hint: str | None = None

    def __post_init__(self):
        if not isinstance(self.priority, Priority):
            object.__setattr__(self, "priority", Priority(str(self.priority).lower()))
        if not self.text or not self.text.strip():
            raise ValueError("Query text must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "category": self.category,
            "priority": self.priority.value,
            "target_worker_class": self.target_worker_class,
            "source_hint": self.source_hint,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Query":
        return cls(
            text=data["text"],
            category=data["category"],
            priority=Priority(data.get("priority", "medium")),
            target_worker_class=data["target_worker_class"],
            source_hint=data.get("source_hint"),
        )


@dataclass(frozen=True)
class QueryContext:
    """
    Opaque upstream context handed over with a query batch.

    Only ``session_id`` is read by this package; ``data`` is passed through
    untouched for whatever the query generator wants to record.
    """

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkerCapability:
    worker_class: str
    max_concurrent_queries: int
    supported_categories: frozenset[str]
    est_processing_time_s: float

    def supports(self, category: str) -> bool:
        return category in self.supported_categories


def derive_effective_priority(queries: tuple[Query, ...] | list[Query]) -> Priority:
    """High if more than half are high, else medium if more than half are medium, else low."""
    total = len(queries)
    high = sum(1 for q in queries if q.priority == Priority.HIGH)
    medium = sum(1 for q in queries if q.priority == Priority.MEDIUM)
    if high > total * 0.5:
        return Priority.HIGH
    if medium > total * 0.5:
        return Priority.MEDIUM
    return Priority.LOW


@dataclass(frozen=True)
class Assignment:
    worker_class: str
    queries: tuple[Query, ...]
    effective_priority: Priority | None = None

    def __post_init__(self):
        object.__setattr__(self, "queries", tuple(self.queries))
        if self.effective_priority is None:
            object.__setattr__(
                self, "effective_priority", derive_effective_priority(self.queries)
            )

    def __len__(self) -> int:
        return len(self.queries)


@dataclass(frozen=True)
class Distribution:
    original_queries: tuple[Query, ...]
    assignments: tuple[Assignment, ...]
    strategy_name: str
    estimated_total_processing_time_s: float
    distribution_id: str = field(
        default_factory=lambda: f"distribution_{uuid.uuid4().hex[:12]}"
    )
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def assigned_count(self) -> int:
        return sum(len(a.queries) for a in self.assignments)

    def assignment_for(self, worker_class: str) -> Assignment | None:
        for assignment in self.assignments:
            if assignment.worker_class == worker_class:
                return assignment
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "distribution_id": self.distribution_id,
            "strategy": self.strategy_name,
            "total_queries": len(self.original_queries),
            "estimated_total_processing_time_s": self.estimated_total_processing_time_s,
            "created_at": self.created_at.isoformat(),
            "assignments": [
                {
                    "worker_class": a.worker_class,
                    "effective_priority": a.effective_priority.value,
                    "queries": [q.to_dict() for q in a.queries],
                }
                for a in self.assignments
            ],
        }


@dataclass(frozen=True)
class DistributionValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
