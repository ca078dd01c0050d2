"""
SearchOrchestrator - routes a search request to providers, runs them under an
execution strategy and post-processes the merged results.

Provider calls are the only suspension points. Each call is raced against a
timeout and produces its own outcome value; merging happens after the calls
have settled, never from concurrent writers.
"""

import asyncio
import concurrent.futures
import re
import time
import uuid
from dataclasses import dataclass, field, replace

from api.base_provider import BaseSearchProvider
from models.search import (
    NO_PROVIDERS_AVAILABLE,
    ORCHESTRATOR_ERROR,
    TIMEOUT,
    SearchError,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    provider_error_code,
)
from orchestrator.provider_registry import ProviderRegistry
from orchestrator.result_processor import ResultProcessor
from orchestrator.routing_types import ExecutionStrategy, ProviderRole, RankingMode, SelectionResult
from utils.logger import get_logger

logger = get_logger(__name__)

ORCHESTRATOR_ID = "orchestrator"

CRUISE_PATTERN = re.compile(
    r"\b(cruises?|cruisecritic|cruise\s+(?:ship|line)s?|shore\s+excursions?|ports?\s+of\s+call|embarkation)\b",
    re.I,
)
SEMANTIC_PATTERN = re.compile(r"\b(neural|semantic(?:ally)?|similar\s+to|like\s+this)\b", re.I)


@dataclass(frozen=True)
class OrchestratorConfig:
    strategy: ExecutionStrategy = ExecutionStrategy.PARALLEL
    timeout_s: float = 10.0
    max_results: int = 20
    deduplication: bool = True
    ranking: RankingMode = RankingMode.RELEVANCE
    consult_health: bool = False

    def __post_init__(self):
        object.__setattr__(self, "strategy", ExecutionStrategy(self.strategy))
        object.__setattr__(self, "ranking", RankingMode(self.ranking))
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        if not 1 <= self.max_results <= 100:
            raise ValueError("max_results must be between 1 and 100")


@dataclass
class _ProviderOutcome:
    provider: str
    results: list[SearchResultItem] = field(default_factory=list)
    errors: list[SearchError] = field(default_factory=list)


class SearchOrchestrator:
    """
    Multi-provider search with content-based routing.

    Example usage:
        orchestrator = SearchOrchestrator(registry, OrchestratorConfig(strategy="fallback"))
        response = orchestrator.search_sync(SearchRequest(query_text="best time to visit Lisbon"))
        for item in response.results:
            print(item.source_domain, item.title)
    """

    def __init__(self, registry: ProviderRegistry, config: OrchestratorConfig | None = None):
        self._registry = registry
        self.config = config or OrchestratorConfig()
        self._processor = ResultProcessor(
            ranking=self.config.ranking, deduplication=self.config.deduplication
        )

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def select_providers(self, request: SearchRequest) -> SelectionResult:
        """
        Pick providers for a request; first matching route wins.

        1. provider_hint naming a registered provider
        2. cruise vocabulary + a cruise provider
        3. explicit or hinted semantic search + a neural provider
        4. the primary general providers, then the secondary ones
        """
        registry = self._registry
        query = request.query_text

        if request.provider_hint and registry.has(request.provider_hint):
            selected, route = [request.provider_hint], "hint"
        elif CRUISE_PATTERN.search(query) and registry.has_role(ProviderRole.CRUISE):
            selected, route = registry.by_role(ProviderRole.CRUISE)[:1], "cruise"
        elif registry.has_role(ProviderRole.NEURAL) and (
            request.semantic or SEMANTIC_PATTERN.search(query)
        ):
            selected, route = registry.by_role(ProviderRole.NEURAL)[:1], "neural"
        else:
            selected = registry.by_role(ProviderRole.PRIMARY)
            selected += [n for n in registry.by_role(ProviderRole.SECONDARY) if n not in selected]
            route = "general" if selected else "none"

        skipped: list[str] = []
        if self.config.consult_health and selected:
            healthy = [name for name in selected if registry.is_healthy(name)]
            # Degrade rather than exclude: keep unhealthy providers if nothing else is left.
            if healthy:
                skipped = [name for name in selected if name not in healthy]
                selected = healthy

        return SelectionResult(providers=selected, route=route, skipped_unhealthy=skipped)

    async def _safe_call(
        self, name: str, provider: BaseSearchProvider, request: SearchRequest
    ) -> _ProviderOutcome:
        """Race one provider call against the timeout; never raises."""
        timeout_s = self.config.timeout_s
        try:
            response = await asyncio.wait_for(provider.search(request), timeout=timeout_s)
            return _ProviderOutcome(
                provider=name, results=list(response.results), errors=list(response.errors)
            )

        except asyncio.TimeoutError:
            logger.warning(
                f"Timeout for provider {name}",
                extra={"extra_fields": {"provider": name, "timeout_s": timeout_s}},
            )
            error = SearchError(
                code=TIMEOUT,
                message=f"Provider {name} timed out after {timeout_s}s",
                retryable=True,
                provider=name,
                details={"timeout_seconds": timeout_s},
            )
            return _ProviderOutcome(provider=name, errors=[error])

        except Exception as e:
            logger.error(
                f"Unexpected error for provider {name}: {e}",
                extra={
                    "extra_fields": {
                        "provider": name,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )
            error = SearchError(
                code=provider_error_code(name),
                message=f"Provider {name} failed: {e}",
                retryable=True,
                provider=name,
                details={"exception_type": type(e).__name__},
            )
            return _ProviderOutcome(provider=name, errors=[error])

    async def _execute_parallel(
        self, request: SearchRequest, providers: list[str]
    ) -> tuple[list[SearchResultItem], list[SearchError]]:
        tasks = [self._safe_call(name, self._registry.get(name), request) for name in providers]
        # _safe_call settles every task itself, so gather never fails fast
        outcomes = await asyncio.gather(*tasks)

        results: list[SearchResultItem] = []
        errors: list[SearchError] = []
        for outcome in outcomes:
            results.extend(outcome.results)
            errors.extend(outcome.errors)
        return results, errors

    async def _execute_sequential(
        self, request: SearchRequest, providers: list[str], max_results: int
    ) -> tuple[list[SearchResultItem], list[SearchError]]:
        results: list[SearchResultItem] = []
        errors: list[SearchError] = []
        for name in providers:
            outcome = await self._safe_call(name, self._registry.get(name), request)
            results.extend(outcome.results)
            errors.extend(outcome.errors)
            if len(results) >= max_results / 2:
                break
        return results, errors

    async def _execute_fallback(
        self, request: SearchRequest, providers: list[str]
    ) -> tuple[list[SearchResultItem], list[SearchError]]:
        errors: list[SearchError] = []
        for name in providers:
            outcome = await self._safe_call(name, self._registry.get(name), request)
            errors.extend(outcome.errors)
            if outcome.results:
                return outcome.results, errors
        return [], errors

    async def search(self, request: SearchRequest) -> SearchResponse:
        """
        Run an orchestrated search.

        Never raises: provider failures, timeouts and internal errors are all
        reported in ``errors``. Non-empty results alongside errors is a
        partial success.

        Args:
            request: The search request

        Returns:
            SearchResponse with deduplicated, ranked results
        """
        request_id = str(uuid.uuid4())
        start = time.perf_counter()
        max_results = min(request.options.max_results, self.config.max_results)

        selection = self.select_providers(request)
        if not selection.providers:
            logger.warning(
                "No suitable providers available",
                extra={"extra_fields": {"request_id": request_id, "query": request.query_text}},
            )
            error = SearchError(
                code=NO_PROVIDERS_AVAILABLE,
                message="No suitable providers available",
                retryable=False,
            )
            return self._build_response(request, [], [error], start)

        logger.info(
            f"Starting {self.config.strategy.value} search across {len(selection.providers)} providers",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "providers": selection.providers,
                    "route": selection.route,
                    "skipped_unhealthy": selection.skipped_unhealthy,
                    "timeout_s": self.config.timeout_s,
                }
            },
        )

        provider_request = replace(request, options=replace(request.options, max_results=max_results))
        errors: list[SearchError] = []
        try:
            if self.config.strategy == ExecutionStrategy.PARALLEL:
                raw, errors = await self._execute_parallel(provider_request, selection.providers)
            elif self.config.strategy == ExecutionStrategy.SEQUENTIAL:
                raw, errors = await self._execute_sequential(
                    provider_request, selection.providers, max_results
                )
            else:
                raw, errors = await self._execute_fallback(provider_request, selection.providers)

            results = self._processor.process(raw, max_results)
        except Exception as e:
            logger.error(
                f"Search orchestration failed: {e}",
                exc_info=True,
                extra={"extra_fields": {"request_id": request_id, "error_type": type(e).__name__}},
            )
            error = SearchError(
                code=ORCHESTRATOR_ERROR,
                message=str(e) or "Search orchestration failed",
                retryable=True,
                details={"exception_type": type(e).__name__},
            )
            # Keep provider errors gathered before the failure
            return self._build_response(request, [], [*errors, error], start)

        response = self._build_response(request, results, errors, start)
        logger.info(
            f"Search complete: {len(results)} results, {len(errors)} errors",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "raw_result_count": len(raw),
                    "result_count": len(results),
                    "error_codes": [e.code for e in errors],
                    "search_time_ms": response.metadata.search_time_ms,
                }
            },
        )
        return response

    def _build_response(
        self,
        request: SearchRequest,
        results: list[SearchResultItem],
        errors: list[SearchError],
        start: float,
    ) -> SearchResponse:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        return SearchResponse(
            query=request.query_text,
            provider=ORCHESTRATOR_ID,
            results=results,
            metadata=SearchMetadata(
                total_results=len(results), search_time_ms=elapsed_ms, provider=ORCHESTRATOR_ID
            ),
            errors=errors,
        )

    def search_sync(self, request: SearchRequest) -> SearchResponse:
        """
        Synchronous wrapper for search.

        Handles the case where an event loop is already running by executing
        in a separate thread with its own loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.search(request))

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, self.search(request))
            return future.result()
