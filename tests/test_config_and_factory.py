import json

import pytest

from api.exa_provider import ExaProvider
from api.provider_factory import (
    create_batch_dispatcher_from_env,
    create_health_monitor_from_env,
    create_provider_registry_from_env,
    create_search_orchestrator_from_env,
)
from api.tavily_provider import TavilyProvider
from config.config import Config
from main import main
from orchestrator.routing_types import ExecutionStrategy, ProviderRole, RankingMode

ALL_KEYS = ("TAVILY_API_KEY", "SERPAPI_API_KEY", "EXA_API_KEY")


@pytest.fixture
def no_env_file(tmp_path):
    return str(tmp_path / "missing.env")


@pytest.fixture
def clean_env(monkeypatch):
    for key in ALL_KEYS + ("SEARCH_PROVIDERS_FILE", "WORKER_CAPABILITIES_FILE", "SEARCH_STRATEGY", "SEARCH_RANKING"):
        monkeypatch.delenv(key, raising=False)


def test_config_reads_environment(mock_env, no_env_file):
    config = Config(env_file=no_env_file)

    assert config.TAVILY_API_KEY == "test-tavily-key"
    assert config.EXA_API_KEY == ""
    assert config.SEARCH_STRATEGY == "fallback"
    assert config.SEARCH_TIMEOUT_S == 5.0
    assert config.SEARCH_MAX_RESULTS == 15
    assert config.validate() == []


def test_config_validate_reports_problems(clean_env, monkeypatch, no_env_file):
    monkeypatch.setenv("SEARCH_STRATEGY", "round-robin")
    monkeypatch.setenv("SEARCH_MAX_RESULTS", "500")
    problems = Config(env_file=no_env_file).validate()

    assert any("API key" in p for p in problems)
    assert any("SEARCH_STRATEGY" in p for p in problems)
    assert any("SEARCH_MAX_RESULTS" in p for p in problems)


def test_config_boolean_flags(clean_env, monkeypatch, no_env_file):
    monkeypatch.setenv("SEARCH_DEDUPLICATION", "false")
    monkeypatch.setenv("SEARCH_CONSULT_HEALTH", "yes")
    config = Config(env_file=no_env_file)
    assert config.SEARCH_DEDUPLICATION is False
    assert config.SEARCH_CONSULT_HEALTH is True


def test_registry_from_env_uses_enabled_providers_with_keys(mock_env, no_env_file, monkeypatch):
    monkeypatch.delenv("SEARCH_PROVIDERS_FILE", raising=False)
    registry = create_provider_registry_from_env(Config(env_file=no_env_file))

    assert registry.names() == ["tavily", "serp"]
    assert isinstance(registry.get("tavily"), TavilyProvider)
    assert registry.get("tavily").timeout_s == 5.0
    assert not registry.has_role(ProviderRole.NEURAL)


def test_registry_from_env_skips_missing_keys_and_unknown_providers(clean_env, monkeypatch, tmp_path, no_env_file):
    providers_file = tmp_path / "providers.yaml"
    providers_file.write_text(
        "providers:\n"
        "  tavily: {roles: [primary]}\n"
        "  exa: {roles: [neural], enabled: true}\n"
        "  cruise-critic: {roles: [cruise], enabled: true}\n"
        "  bing: {roles: [secondary]}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SEARCH_PROVIDERS_FILE", str(providers_file))
    monkeypatch.setenv("SERPAPI_API_KEY", "serp-key")
    monkeypatch.setenv("EXA_API_KEY", "exa-key")

    registry = create_provider_registry_from_env(Config(env_file=no_env_file))

    assert registry.names() == ["exa", "cruise-critic"]
    assert isinstance(registry.get("exa"), ExaProvider)
    assert registry.by_role(ProviderRole.CRUISE) == ["cruise-critic"]


def test_orchestrator_from_env(mock_env, monkeypatch, no_env_file):
    monkeypatch.delenv("SEARCH_PROVIDERS_FILE", raising=False)
    config = Config(env_file=no_env_file)
    orchestrator = create_search_orchestrator_from_env(config)

    assert orchestrator.config.strategy == ExecutionStrategy.FALLBACK
    assert orchestrator.config.ranking == RankingMode.DIVERSITY
    assert orchestrator.config.max_results == 15
    assert len(orchestrator.registry) == 2


def test_health_monitor_from_env(mock_env, monkeypatch, no_env_file):
    monkeypatch.setenv("HEALTH_CHECK_INTERVAL_S", "60")
    config = Config(env_file=no_env_file)
    monitor = create_health_monitor_from_env(create_provider_registry_from_env(config), config)
    assert monitor.interval_s == 60.0
    assert monitor.probe_timeout_s == 5.0


def test_batch_dispatcher_from_env(mock_env, monkeypatch, no_env_file):
    monkeypatch.setenv("DISPATCH_BATCH_SIZE", "5")
    monkeypatch.setenv("DISPATCH_BATCH_DELAY_S", "0.25")
    monkeypatch.delenv("SEARCH_PROVIDERS_FILE", raising=False)
    config = Config(env_file=no_env_file)

    dispatcher = create_batch_dispatcher_from_env(config=config)

    assert dispatcher.batch_size == 5
    assert dispatcher.batch_delay_s == 0.25


def test_cli_distribute(tmp_path, capsys):
    queries_file = tmp_path / "queries.json"
    queries_file.write_text(
        json.dumps(
            [
                {"text": "flights LIS to OPO", "category": "flights", "priority": "high", "target_worker_class": "gatherer"},
                {"text": "dinner in Alfama", "category": "dining", "priority": "medium", "target_worker_class": "specialist"},
            ]
        ),
        encoding="utf-8",
    )

    exit_code = main(["distribute", str(queries_file)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["strategy"] == "simple"
    assert payload["total_queries"] == 2
    assert payload["validation"]["is_valid"] is True


def test_cli_search_without_providers(clean_env, capsys):
    exit_code = main(["search", "Lisbon museums"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["errors"][0]["code"] == "NO_PROVIDERS_AVAILABLE"
