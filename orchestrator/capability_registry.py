"""
CapabilityRegistry - static worker-class capabilities loaded from YAML.

Declaration order in the YAML is kept; it breaks ties in least-loaded placement
and fixes the order assignments are emitted in.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from models.query import WorkerCapability
from orchestrator.errors import ConfigurationError, UnknownWorkerClassError

DEFAULT_CAPABILITIES_PATH = Path(__file__).resolve().parent.parent / "config" / "worker_capabilities.yaml"


@dataclass(frozen=True)
class CapabilityRegistry:
    _workers: tuple[WorkerCapability, ...]
    fallback_worker_class: str
    immediate_dispatch_classes: tuple[str, ...]
    deferred_dispatch_classes: tuple[str, ...]

    def __post_init__(self):
        if not self._workers:
            raise ConfigurationError("Capability registry needs at least one worker class")
        known = self.worker_classes()
        referenced = (
            [self.fallback_worker_class]
            + list(self.immediate_dispatch_classes)
            + list(self.deferred_dispatch_classes)
        )
        for worker_class in referenced:
            if worker_class not in known:
                raise ConfigurationError(
                    f"distribution_defaults references unknown worker class '{worker_class}'"
                )
        if not self.immediate_dispatch_classes or not self.deferred_dispatch_classes:
            raise ConfigurationError("Both dispatch class sets must be non-empty")

    @classmethod
    def from_yaml(cls, path: str | None = None) -> "CapabilityRegistry":
        registry_path = Path(path) if path else DEFAULT_CAPABILITIES_PATH
        if not registry_path.exists():
            raise ConfigurationError(f"Worker capability registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
        if not data or "workers" not in data:
            raise ConfigurationError("Invalid capability registry: missing workers")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CapabilityRegistry":
        workers: list[WorkerCapability] = []
        for worker_class, wdata in (data.get("workers") or {}).items():
            required = ["max_concurrent_queries", "supported_categories", "est_processing_time_s"]
            if not isinstance(wdata, dict) or any(key not in wdata for key in required):
                raise ConfigurationError(f"Missing required fields for worker class {worker_class}")
            categories = wdata["supported_categories"]
            if not isinstance(categories, list):
                raise ConfigurationError(f"Invalid supported_categories for worker class {worker_class}")
            max_queries = int(wdata["max_concurrent_queries"])
            if max_queries < 0:
                raise ConfigurationError(f"Negative capacity for worker class {worker_class}")
            workers.append(
                WorkerCapability(
                    worker_class=worker_class,
                    max_concurrent_queries=max_queries,
                    supported_categories=frozenset(str(c) for c in categories),
                    est_processing_time_s=float(wdata["est_processing_time_s"]),
                )
            )

        defaults = data.get("distribution_defaults") or {}
        names = [w.worker_class for w in workers]
        return cls(
            _workers=tuple(workers),
            fallback_worker_class=defaults.get("fallback_worker_class", names[0] if names else ""),
            immediate_dispatch_classes=tuple(defaults.get("immediate_dispatch_classes", names[:1])),
            deferred_dispatch_classes=tuple(defaults.get("deferred_dispatch_classes", names[1:] or names[:1])),
        )

    def worker_classes(self) -> list[str]:
        """Worker class names in declaration order."""
        return [w.worker_class for w in self._workers]

    def capabilities(self) -> list[WorkerCapability]:
        return list(self._workers)

    def get(self, worker_class: str) -> WorkerCapability:
        for capability in self._workers:
            if capability.worker_class == worker_class:
                return capability
        raise UnknownWorkerClassError(worker_class, self.worker_classes())

    def has(self, worker_class: str) -> bool:
        return any(w.worker_class == worker_class for w in self._workers)

    def capacity(self, worker_class: str) -> int:
        return self.get(worker_class).max_concurrent_queries

    def supports(self, worker_class: str, category: str) -> bool:
        return self.get(worker_class).supports(category)
