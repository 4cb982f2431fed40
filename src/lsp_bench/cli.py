"""Command line entry point: benchmark one or more language servers."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .benchmark.errors import BenchmarkSetupError
from .benchmark.fixtures import Fixture, load_fixtures
from .benchmark.report import compare_results, format_comparison, format_results
from .benchmark.runner import BenchmarkResult
from .benchmark.suite import run_server
from .config import (
    BENCHMARK_ITERATIONS,
    DEFAULT_FIXTURES_DIR,
    DEFAULT_SERVERS,
    DOCUMENT_SETTLE_DELAY,
    REQUEST_TIMEOUT,
    WARMUP_ITERATIONS,
    BenchmarkSettings,
    ServerConfig,
    load_server_configs,
)
from .utils.lsp.errors import LSPError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="lsp-bench",
        description="Measure LSP request latency for one or more language servers.",
    )
    ap.add_argument(
        "--server",
        default=None,
        help="Only benchmark this server (name from the server config). "
        "Default: all servers, followed by a comparison.",
    )
    ap.add_argument(
        "--servers-config",
        type=Path,
        default=None,
        help="JSON file with a list of {name, label, command, env} server definitions",
    )
    ap.add_argument("--fixtures", type=Path, default=DEFAULT_FIXTURES_DIR, help="Fixture directory")
    ap.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Workspace root sent as rootUri and used as the servers' cwd",
    )
    ap.add_argument("--iterations", type=int, default=BENCHMARK_ITERATIONS)
    ap.add_argument("--warmup", type=int, default=WARMUP_ITERATIONS)
    ap.add_argument(
        "--timeout", type=float, default=REQUEST_TIMEOUT, help="Per-request timeout in seconds"
    )
    ap.add_argument(
        "--settle-delay",
        type=float,
        default=DOCUMENT_SETTLE_DELAY,
        help="Seconds to wait after didOpen before continuing",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Log protocol traffic")
    return ap


async def run_all(
    servers: list[ServerConfig],
    fixtures: list[Fixture],
    settings: BenchmarkSettings,
) -> list[BenchmarkResult]:
    """Benchmark servers one after another; a failing server is skipped."""
    all_results: list[BenchmarkResult] = []
    for server in servers:
        print(f"Starting {server.label}...")
        try:
            all_results.extend(await run_server(server, fixtures, settings))
        except (BenchmarkSetupError, LSPError) as e:
            logger.error(f"Failed to benchmark {server.label}: {e}")
    return all_results


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        servers = load_server_configs(args.servers_config) if args.servers_config else DEFAULT_SERVERS
    except (BenchmarkSetupError, ValidationError, ValueError) as e:
        logger.error(f"Invalid server configuration: {e}")
        return 1

    names = [s.name for s in servers]
    if args.server is not None:
        if args.server not in names:
            ap.error(f"unknown server {args.server!r} (choose from {', '.join(names)})")
        servers = [s for s in servers if s.name == args.server]

    try:
        settings = BenchmarkSettings(
            warmup=args.warmup,
            iterations=args.iterations,
            request_timeout=args.timeout,
            settle_delay=args.settle_delay,
            fixtures_dir=args.fixtures,
            root_dir=args.root,
        )
    except ValidationError as e:
        ap.error(str(e))

    print("LSP Benchmark Suite")
    print("===================\n")

    try:
        fixtures = load_fixtures(settings.fixtures_dir)
    except BenchmarkSetupError as e:
        logger.error(str(e))
        return 1

    print("Fixtures:")
    for f in fixtures:
        print(f"  - {f.name}: {f.lines} lines, {f.size} bytes")
    print()

    results = asyncio.run(run_all(servers, fixtures, settings))
    if not results:
        logger.error("No benchmark results collected")
        return 1

    print()
    print(format_results(results))
    comparison = format_comparison(compare_results(results))
    if comparison:
        print()
        print(comparison)
    return 0


if __name__ == "__main__":
    sys.exit(main())
