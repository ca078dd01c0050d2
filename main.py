import argparse
import json
import sys

from dotenv import load_dotenv

load_dotenv()

from api.provider_factory import (  # noqa: E402
    create_health_monitor_from_env,
    create_provider_registry_from_env,
    create_search_orchestrator_from_env,
)
from config.config import Config  # noqa: E402
from models.query import Query, QueryContext  # noqa: E402
from models.search import SearchOptions, SearchRequest  # noqa: E402
from orchestrator.capability_registry import CapabilityRegistry  # noqa: E402
from orchestrator.query_distributor import QueryDistributor  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query distribution and multi-provider search")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Run an orchestrated search")
    search.add_argument("query", help="Search query text")
    search.add_argument("--strategy", choices=["parallel", "sequential", "fallback"])
    search.add_argument("--ranking", choices=["relevance", "recency", "diversity"])
    search.add_argument("--max-results", type=int, default=10)
    search.add_argument("--semantic", action="store_true", help="Request neural/semantic search")
    search.add_argument("--provider", help="Route to this provider only")

    distribute = subparsers.add_parser("distribute", help="Distribute a JSON list of queries")
    distribute.add_argument("file", help="Path to a JSON file holding a list of query objects")

    subparsers.add_parser("health", help="Probe every configured provider once")
    return parser


def run_search(args: argparse.Namespace, config: Config) -> int:
    if args.strategy:
        config.SEARCH_STRATEGY = args.strategy
    if args.ranking:
        config.SEARCH_RANKING = args.ranking

    orchestrator = create_search_orchestrator_from_env(config)
    request = SearchRequest(
        query_text=args.query,
        provider_hint=args.provider,
        semantic=args.semantic,
        options=SearchOptions(max_results=args.max_results),
    )
    response = orchestrator.search_sync(request)
    print(json.dumps(response.to_dict(), indent=2))
    return 0 if response.is_success else 1


def run_distribute(args: argparse.Namespace, config: Config) -> int:
    with open(args.file, encoding="utf-8") as f:
        raw_queries = json.load(f)

    queries = [Query.from_dict(item) for item in raw_queries]
    distributor = QueryDistributor(CapabilityRegistry.from_yaml(config.WORKER_CAPABILITIES_FILE))
    distribution = distributor.distribute(queries, QueryContext())
    validation = distributor.validate(distribution)

    payload = distribution.to_dict()
    payload["validation"] = {
        "is_valid": validation.is_valid,
        "errors": validation.errors,
        "warnings": validation.warnings,
    }
    print(json.dumps(payload, indent=2))
    return 0 if validation.is_valid else 1


def run_health(config: Config) -> int:
    registry = create_provider_registry_from_env(config)
    monitor = create_health_monitor_from_env(registry, config)
    statuses = monitor.check_all_sync()
    print(json.dumps([s.to_dict() for s in statuses], indent=2))
    return 0 if all(s.healthy for s in statuses) else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config()

    problems = config.validate()
    if problems and args.command != "distribute":
        for problem in problems:
            print(f"Config warning: {problem}", file=sys.stderr)

    if args.command == "search":
        return run_search(args, config)
    if args.command == "distribute":
        return run_distribute(args, config)
    return run_health(config)


if __name__ == "__main__":
    sys.exit(main())
