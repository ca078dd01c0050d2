"""
HealthMonitor - periodic provider liveness and latency sampling.

Runs off the request path. Results land in the provider registry's status
table, which provider selection may consult when ``consult_health`` is on.
"""

import asyncio
import time

from api.base_provider import BaseSearchProvider
from models.search import ProviderStatus
from orchestrator.provider_registry import ProviderRegistry
from orchestrator.routing_types import HealthState
from utils.logger import get_logger

logger = get_logger(__name__)


class HealthMonitor:
    def __init__(
        self,
        registry: ProviderRegistry,
        interval_s: float = 300.0,
        probe_timeout_s: float = 5.0,
    ):
        self._registry = registry
        self.interval_s = interval_s
        self.probe_timeout_s = probe_timeout_s
        self._task: asyncio.Task | None = None

    async def _probe(self, name: str, provider: BaseSearchProvider) -> ProviderStatus:
        start = time.perf_counter()
        try:
            health = await asyncio.wait_for(provider.get_health(), timeout=self.probe_timeout_s)
        except Exception as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.warning(
                f"Health probe failed for {name}",
                extra={
                    "extra_fields": {
                        "provider": name,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )
            return ProviderStatus(name=name, healthy=False, latency_ms=latency_ms, error_rate=1.0)

        return ProviderStatus(
            name=name,
            healthy=health.status != HealthState.UNHEALTHY,
            latency_ms=health.latency_ms,
            error_rate=health.error_rate,
        )

    async def check_all(self) -> list[ProviderStatus]:
        """Probe every registered provider concurrently and record the statuses."""
        items = self._registry.items()
        statuses = await asyncio.gather(*(self._probe(name, provider) for name, provider in items))
        for status in statuses:
            self._registry.update_status(status)

        logger.info(
            "Provider health check complete",
            extra={
                "extra_fields": {
                    "healthy": [s.name for s in statuses if s.healthy],
                    "unhealthy": [s.name for s in statuses if not s.healthy],
                }
            },
        )
        return list(statuses)

    def check_all_sync(self) -> list[ProviderStatus]:
        return asyncio.run(self.check_all())

    async def _run(self) -> None:
        while True:
            try:
                await self.check_all()
            except Exception as e:
                logger.error(
                    f"Health check cycle failed: {e}",
                    exc_info=True,
                    extra={"extra_fields": {"error_type": type(e).__name__}},
                )
            await asyncio.sleep(self.interval_s)

    def start(self) -> asyncio.Task:
        """Schedule periodic checks on the running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())
            logger.info(
                "Health monitor started",
                extra={"extra_fields": {"interval_s": self.interval_s}},
            )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Health monitor stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
