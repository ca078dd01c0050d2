import pytest
from dotenv import load_dotenv

from orchestrator.capability_registry import CapabilityRegistry

# Load environment variables from .env file for tests
load_dotenv()


@pytest.fixture
def registry() -> CapabilityRegistry:
    """Registry loaded from the packaged worker capability YAML."""
    return CapabilityRegistry.from_yaml()


@pytest.fixture
def small_registry() -> CapabilityRegistry:
    """Tiny capacities so overflow paths are easy to hit."""
    return CapabilityRegistry.from_dict(
        {
            "workers": {
                "architect": {
                    "max_concurrent_queries": 1,
                    "supported_categories": ["planning"],
                    "est_processing_time_s": 30,
                },
                "gatherer": {
                    "max_concurrent_queries": 2,
                    "supported_categories": ["flights", "planning"],
                    "est_processing_time_s": 15,
                },
                "specialist": {
                    "max_concurrent_queries": 1,
                    "supported_categories": ["dining"],
                    "est_processing_time_s": 20,
                },
                "putter": {
                    "max_concurrent_queries": 1,
                    "supported_categories": ["final"],
                    "est_processing_time_s": 25,
                },
            },
            "distribution_defaults": {
                "fallback_worker_class": "gatherer",
                "immediate_dispatch_classes": ["gatherer", "specialist"],
                "deferred_dispatch_classes": ["architect", "putter"],
            },
        }
    )


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "TAVILY_API_KEY": "test-tavily-key",
        "SERPAPI_API_KEY": "test-serp-key",
        "SEARCH_STRATEGY": "fallback",
        "SEARCH_RANKING": "diversity",
        "SEARCH_TIMEOUT_S": "5",
        "SEARCH_MAX_RESULTS": "15",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("EXA_API_KEY", raising=False)
    return env_vars
