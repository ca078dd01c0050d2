from dataclasses import dataclass, field
from enum import Enum


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class DistributionStrategy(str, Enum):
    SIMPLE = "simple"
    PRIORITY_BASED = "priority-based"
    LOAD_BALANCED = "load-balanced"
    BALANCED = "balanced"


class ExecutionStrategy(str, Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"
    FALLBACK = "fallback"


class RankingMode(str, Enum):
    RELEVANCE = "relevance"
    RECENCY = "recency"
    DIVERSITY = "diversity"


class ResultType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    NEWS = "news"


class Freshness(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ProviderRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    CRUISE = "cruise"
    NEURAL = "neural"


class HealthState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class StrategyDecision:
    strategy: DistributionStrategy
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    roles: frozenset[ProviderRole]
    enabled: bool = True


@dataclass(frozen=True)
class SelectionResult:
    providers: list[str]
    route: str  # "hint"|"cruise"|"neural"|"general"|"none"
    skipped_unhealthy: list[str] = field(default_factory=list)
