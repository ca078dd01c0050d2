import os
from pathlib import Path

from dotenv import load_dotenv

from orchestrator.routing_types import ExecutionStrategy, RankingMode


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration management for the dispatch engine."""

    def __init__(self, env_file: str | None = None):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Provider credentials
        self.TAVILY_API_KEY = os.getenv("TAVILY_API_KEY", "")
        self.SERPAPI_API_KEY = os.getenv("SERPAPI_API_KEY", "")
        self.EXA_API_KEY = os.getenv("EXA_API_KEY", "")

        # Registry files (None means the packaged YAML)
        self.WORKER_CAPABILITIES_FILE = os.getenv("WORKER_CAPABILITIES_FILE") or None
        self.SEARCH_PROVIDERS_FILE = os.getenv("SEARCH_PROVIDERS_FILE") or None

        # Orchestrator
        self.SEARCH_STRATEGY = os.getenv("SEARCH_STRATEGY", ExecutionStrategy.PARALLEL.value).lower()
        self.SEARCH_TIMEOUT_S = float(os.getenv("SEARCH_TIMEOUT_S", "10"))
        self.SEARCH_MAX_RESULTS = int(os.getenv("SEARCH_MAX_RESULTS", "20"))
        self.SEARCH_RANKING = os.getenv("SEARCH_RANKING", RankingMode.RELEVANCE.value).lower()
        self.SEARCH_DEDUPLICATION = _env_bool("SEARCH_DEDUPLICATION", True)
        self.SEARCH_CONSULT_HEALTH = _env_bool("SEARCH_CONSULT_HEALTH", False)

        # Health monitor
        self.HEALTH_CHECK_INTERVAL_S = float(os.getenv("HEALTH_CHECK_INTERVAL_S", "300"))
        self.HEALTH_PROBE_TIMEOUT_S = float(os.getenv("HEALTH_PROBE_TIMEOUT_S", "5"))

        # Batch dispatch
        self.DISPATCH_BATCH_SIZE = int(os.getenv("DISPATCH_BATCH_SIZE", "3"))
        self.DISPATCH_BATCH_DELAY_S = float(os.getenv("DISPATCH_BATCH_DELAY_S", "1.0"))

    def validate(self) -> list[str]:
        """
        Check the configuration for problems.

        Returns:
            list[str]: Human-readable problems; empty when the configuration is usable
        """
        problems: list[str] = []

        if not (self.TAVILY_API_KEY or self.SERPAPI_API_KEY or self.EXA_API_KEY):
            problems.append("No search provider API key is set (TAVILY_API_KEY, SERPAPI_API_KEY, EXA_API_KEY)")

        valid_strategies = [s.value for s in ExecutionStrategy]
        if self.SEARCH_STRATEGY not in valid_strategies:
            problems.append(
                f"Unknown SEARCH_STRATEGY '{self.SEARCH_STRATEGY}'. Must be one of: {', '.join(valid_strategies)}"
            )

        valid_rankings = [r.value for r in RankingMode]
        if self.SEARCH_RANKING not in valid_rankings:
            problems.append(
                f"Unknown SEARCH_RANKING '{self.SEARCH_RANKING}'. Must be one of: {', '.join(valid_rankings)}"
            )

        if not 1 <= self.SEARCH_TIMEOUT_S <= 30:
            problems.append("SEARCH_TIMEOUT_S should be between 1 and 30 seconds")
        if not 1 <= self.SEARCH_MAX_RESULTS <= 100:
            problems.append("SEARCH_MAX_RESULTS must be between 1 and 100")
        if self.DISPATCH_BATCH_SIZE < 1:
            problems.append("DISPATCH_BATCH_SIZE must be at least 1")

        return problems
