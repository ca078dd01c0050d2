"""Factories wiring providers, registries and the orchestrator from environment configuration."""

from api.base_provider import BaseSearchProvider, HttpSearchProvider
from api.cruise_critic_provider import CruiseCriticProvider
from api.exa_provider import ExaProvider
from api.serp_provider import SerpProvider
from api.tavily_provider import TavilyProvider
from config.config import Config
from orchestrator.batch_dispatcher import BatchSearchDispatcher
from orchestrator.health_monitor import HealthMonitor
from orchestrator.provider_registry import ProviderRegistry, load_provider_specs
from orchestrator.search_orchestrator import OrchestratorConfig, SearchOrchestrator
from utils.logger import get_logger

logger = get_logger(__name__)

# provider name -> (class, Config attribute holding its API key)
PROVIDER_CLASSES: dict[str, tuple[type[HttpSearchProvider], str]] = {
    "tavily": (TavilyProvider, "TAVILY_API_KEY"),
    "serp": (SerpProvider, "SERPAPI_API_KEY"),
    "exa": (ExaProvider, "EXA_API_KEY"),
    "cruise-critic": (CruiseCriticProvider, "SERPAPI_API_KEY"),
}


def create_provider_registry_from_env(config: Config | None = None) -> ProviderRegistry:
    """
    Build the provider registry from the provider YAML and API keys.

    Enabled providers without credentials are skipped with a warning, so the
    registry may come back smaller than the YAML (or empty).

    Raises:
        ConfigurationError: If the provider YAML is missing or malformed
    """
    config = config or Config()
    entries: list[tuple] = []

    for spec in load_provider_specs(config.SEARCH_PROVIDERS_FILE):
        if not spec.enabled:
            continue
        if spec.name not in PROVIDER_CLASSES:
            logger.warning(f"No implementation for search provider '{spec.name}', skipping")
            continue

        provider_cls, key_attr = PROVIDER_CLASSES[spec.name]
        api_key = getattr(config, key_attr, "")
        if not api_key:
            logger.warning(
                f"Search provider '{spec.name}' enabled but {key_attr} is not configured",
                extra={"extra_fields": {"provider": spec.name}},
            )
            continue

        provider: BaseSearchProvider = provider_cls(api_key=api_key, timeout_s=config.SEARCH_TIMEOUT_S)
        entries.append((spec, provider))

    registry = ProviderRegistry(entries)
    logger.info(
        f"Provider registry ready with {len(registry)} providers",
        extra={"extra_fields": {"providers": registry.names()}},
    )
    return registry


def create_search_orchestrator_from_env(
    config: Config | None = None, registry: ProviderRegistry | None = None
) -> SearchOrchestrator:
    config = config or Config()
    registry = registry or create_provider_registry_from_env(config)
    orchestrator_config = OrchestratorConfig(
        strategy=config.SEARCH_STRATEGY,
        timeout_s=config.SEARCH_TIMEOUT_S,
        max_results=config.SEARCH_MAX_RESULTS,
        deduplication=config.SEARCH_DEDUPLICATION,
        ranking=config.SEARCH_RANKING,
        consult_health=config.SEARCH_CONSULT_HEALTH,
    )
    return SearchOrchestrator(registry, orchestrator_config)


def create_health_monitor_from_env(registry: ProviderRegistry, config: Config | None = None) -> HealthMonitor:
    config = config or Config()
    return HealthMonitor(
        registry,
        interval_s=config.HEALTH_CHECK_INTERVAL_S,
        probe_timeout_s=config.HEALTH_PROBE_TIMEOUT_S,
    )


def create_batch_dispatcher_from_env(
    orchestrator: SearchOrchestrator | None = None, config: Config | None = None
) -> BatchSearchDispatcher:
    config = config or Config()
    orchestrator = orchestrator or create_search_orchestrator_from_env(config)
    return BatchSearchDispatcher(
        orchestrator,
        batch_size=config.DISPATCH_BATCH_SIZE,
        batch_delay_s=config.DISPATCH_BATCH_DELAY_S,
    )
