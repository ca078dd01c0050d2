from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import yaml

from api.base_provider import BaseSearchProvider
from models.search import ProviderStatus
from orchestrator.errors import ConfigurationError
from orchestrator.routing_types import ProviderRole, ProviderSpec

DEFAULT_PROVIDERS_PATH = Path(__file__).resolve().parent.parent / "config" / "search_providers.yaml"


def load_provider_specs(path: str | None = None) -> list[ProviderSpec]:
    specs_path = Path(path) if path else DEFAULT_PROVIDERS_PATH
    if not specs_path.exists():
        raise ConfigurationError(f"Search provider registry not found at {specs_path}")

    data = yaml.safe_load(specs_path.read_text(encoding="utf-8"))
    if not data or "providers" not in data:
        raise ConfigurationError("Invalid provider registry: missing providers")
    return parse_provider_specs(data)


def parse_provider_specs(data: dict[str, Any]) -> list[ProviderSpec]:
    specs: list[ProviderSpec] = []
    for name, pdata in (data.get("providers") or {}).items():
        pdata = pdata or {}
        roles = pdata.get("roles", [])
        if not isinstance(roles, list):
            raise ConfigurationError(f"Invalid roles list for provider {name}")
        try:
            parsed_roles = frozenset(ProviderRole(str(r).lower()) for r in roles)
        except ValueError as e:
            raise ConfigurationError(f"Unknown role for provider {name}: {e}") from e
        specs.append(
            ProviderSpec(name=name, roles=parsed_roles, enabled=bool(pdata.get("enabled", True)))
        )
    return specs


class ProviderRegistry:
    """
    Search provider handles plus their declared roles.

    Handles and roles are fixed at construction. The status table is the only
    mutable state; it is written by the health monitor and read by provider
    selection, so reads may be stale.
    """

    def __init__(self, entries: list[tuple[ProviderSpec, BaseSearchProvider]] | None = None):
        self._specs: dict[str, ProviderSpec] = {}
        self._providers: dict[str, BaseSearchProvider] = {}
        for spec, provider in entries or []:
            if not spec.enabled:
                continue
            if spec.name in self._providers:
                raise ConfigurationError(f"Duplicate provider name: {spec.name}")
            self._specs[spec.name] = spec
            self._providers[spec.name] = provider

        self._status: dict[str, ProviderStatus] = {}
        self._status_lock = threading.Lock()

    @classmethod
    def from_providers(
        cls, providers: dict[str, tuple[BaseSearchProvider, list[ProviderRole] | list[str]]]
    ) -> "ProviderRegistry":
        """Build a registry from ``{name: (provider, roles)}``, keeping insertion order."""
        entries = []
        for name, (provider, roles) in providers.items():
            spec = ProviderSpec(name=name, roles=frozenset(ProviderRole(r) for r in roles))
            entries.append((spec, provider))
        return cls(entries)

    def names(self) -> list[str]:
        return list(self._providers)

    def get(self, name: str) -> BaseSearchProvider | None:
        return self._providers.get(name)

    def has(self, name: str) -> bool:
        return name in self._providers

    def items(self) -> list[tuple[str, BaseSearchProvider]]:
        return list(self._providers.items())

    def by_role(self, role: ProviderRole) -> list[str]:
        return [name for name, spec in self._specs.items() if role in spec.roles]

    def has_role(self, role: ProviderRole) -> bool:
        return bool(self.by_role(role))

    def update_status(self, status: ProviderStatus) -> None:
        with self._status_lock:
            self._status[status.name] = status

    def get_status(self, name: str) -> ProviderStatus | None:
        with self._status_lock:
            return self._status.get(name)

    def statuses(self) -> list[ProviderStatus]:
        with self._status_lock:
            return list(self._status.values())

    def is_healthy(self, name: str) -> bool:
        """Providers never checked count as healthy."""
        status = self.get_status(name)
        return status is None or status.healthy

    def __len__(self) -> int:
        return len(self._providers)
