"""The per-server benchmark schedule."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager

from ..config import BenchmarkSettings, ServerConfig, resolve_command
from ..utils.lsp.base import LSPServer
from ..utils.lsp.errors import LSPResponseError, RequestTimeout
from ..utils.lsp.operations import LSPOperations
from .fixtures import Fixture
from .runner import BenchmarkResult, run_benchmark

logger = logging.getLogger(__name__)


@asynccontextmanager
async def opened_document(
    lsp: LSPOperations, fixture: Fixture, language_id: str
) -> AsyncIterator[None]:
    """Keep `fixture` open for the duration of the block."""
    await lsp.open_document(fixture.uri, fixture.content, language_id)
    try:
        yield
    finally:
        await lsp.close_document(fixture.uri)


async def _measure(
    results: list[BenchmarkResult],
    name: str,
    fn: Callable[[], Awaitable[object]],
    settings: BenchmarkSettings,
) -> None:
    # A single failing operation only drops its own entry.
    try:
        result = await run_benchmark(name, fn, settings.iterations, settings.warmup)
    except (RequestTimeout, LSPResponseError) as e:
        logger.warning(f"Skipping {name}: {e}")
        return
    results.append(result)


async def benchmark_server(
    lsp: LSPOperations,
    label: str,
    fixtures: Sequence[Fixture],
    settings: BenchmarkSettings,
    language_id: str | None = None,
) -> list[BenchmarkResult]:
    """Run the four per-fixture benchmarks against an initialized server.

    Every document opened here is closed again before the next fixture.
    """
    results: list[BenchmarkResult] = []

    for fixture in fixtures:
        lang = language_id or fixture.language_id
        prefix = f"[{label}]"

        async def open_close(fixture: Fixture = fixture, lang: str = lang) -> None:
            await lsp.open_document(fixture.uri, fixture.content, lang)
            await lsp.close_document(fixture.uri)

        await _measure(results, f"{prefix} Open: {fixture.label}", open_close, settings)

        hover_line = fixture.lines // 2
        async with opened_document(lsp, fixture, lang):
            await _measure(
                results,
                f"{prefix} Symbols: {fixture.label}",
                lambda uri=fixture.uri: lsp.document_symbols(uri),
                settings,
            )
            await _measure(
                results,
                f"{prefix} Tokens: {fixture.label}",
                lambda uri=fixture.uri: lsp.semantic_tokens(uri),
                settings,
            )
            await _measure(
                results,
                f"{prefix} Hover: {fixture.label}",
                lambda uri=fixture.uri: lsp.hover(uri, hover_line, settings.hover_character),
                settings,
            )

    return results


async def run_server(
    server_config: ServerConfig,
    fixtures: Sequence[Fixture],
    settings: BenchmarkSettings,
) -> list[BenchmarkResult]:
    """Start one server, benchmark it and always tear it down."""
    command = resolve_command(server_config, settings.root_dir)
    server = LSPServer(
        command,
        label=server_config.label,
        env=server_config.env,
        cwd=settings.root_dir,
        request_timeout=settings.request_timeout,
        settle_delay=settings.settle_delay,
        shutdown_timeout=settings.shutdown_timeout,
        exit_grace_period=settings.exit_grace_period,
    )
    async with server:
        await server.lsp.initialize(settings.root_dir.resolve().as_uri())
        return await benchmark_server(
            server.lsp,
            server_config.label,
            fixtures,
            settings,
            language_id=server_config.language_id,
        )
