"""End-to-end tests against the scripted mock server process."""

import asyncio
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from lsp_bench.utils.lsp.base import LSPServer
from lsp_bench.utils.lsp.errors import RequestTimeout, ServerStartError, TransportExit

sys.path.insert(0, str(Path(__file__).parent / "fixtures"))

from mock_server import CANNED_SYMBOLS  # noqa: E402


def _methods(log: list[dict[str, Any]]) -> list[str]:
    return [m["method"] for m in log if "method" in m]


@pytest.mark.asyncio
async def test_initialize_open_and_document_symbols(
    mock_command: Callable[..., list[str]],
    read_mock_log: Callable[[], list[dict[str, Any]]],
):
    async with LSPServer(mock_command(), label="mock", settle_delay=0.01) as server:
        init = await server.lsp.initialize("file:///workspace")
        assert init["serverInfo"] == {"name": "mock-server"}
        assert server.lsp.server_capabilities["hoverProvider"] is True

        await server.lsp.open_document("file:///workspace/a.ts", "const a = 1;\n")
        symbols = await server.lsp.document_symbols("file:///workspace/a.ts")

    assert symbols == CANNED_SYMBOLS
    assert server.transport.returncode is not None

    log = read_mock_log()
    assert _methods(log)[:4] == [
        "initialize",
        "initialized",
        "textDocument/didOpen",
        "textDocument/documentSymbol",
    ]
    assert _methods(log)[4:] == ["shutdown", "exit"]
    assert "id" in log[0] and "id" not in log[1]


@pytest.mark.asyncio
async def test_server_requests_get_answered(
    mock_command: Callable[..., list[str]],
    read_mock_log: Callable[[], list[dict[str, Any]]],
):
    async with LSPServer(mock_command(), settle_delay=0) as server:
        await server.lsp.initialize("file:///workspace")
        # Round trip so the configuration reply has been written.
        await server.lsp.hover("file:///workspace/a.ts", 0, 0)

    replies = [m for m in read_mock_log() if m.get("id") == "cfg-1"]
    assert replies == [{"jsonrpc": "2.0", "id": "cfg-1", "result": [None]}]


@pytest.mark.asyncio
async def test_process_exit_fails_pending_requests(
    mock_command: Callable[..., list[str]],
):
    server = LSPServer(mock_command("--crash-on", "textDocument/hover"), request_timeout=30.0)
    async with server:
        await server.lsp.initialize("file:///workspace")
        loop = asyncio.get_running_loop()
        start = loop.time()
        with pytest.raises(TransportExit) as exc_info:
            await server.lsp.hover("file:///workspace/a.ts", 1, 10)
        # Failed by the exit, not by waiting out the 30s deadline.
        assert loop.time() - start < 10
        assert exc_info.value.returncode == 3

        assert server.correlator.is_closed
        with pytest.raises(TransportExit):
            await server.lsp.document_symbols("file:///workspace/a.ts")


@pytest.mark.asyncio
async def test_unanswered_request_times_out(mock_command: Callable[..., list[str]]):
    async with LSPServer(
        mock_command("--ignore", "textDocument/hover"), request_timeout=0.2
    ) as server:
        await server.lsp.initialize("file:///workspace")
        with pytest.raises(RequestTimeout):
            await server.lsp.hover("file:///workspace/a.ts", 0, 0)
        assert server.correlator.pending_ids == []
        # The client stays usable after a timeout.
        assert await server.lsp.semantic_tokens("file:///workspace/a.ts") == {"data": [0, 0, 5, 1, 0]}


@pytest.mark.asyncio
async def test_stop_kills_server_when_shutdown_hangs(mock_command: Callable[..., list[str]]):
    server = LSPServer(
        mock_command("--ignore", "shutdown", "--ignore", "exit"),
        shutdown_timeout=0.1,
        exit_grace_period=0.1,
    )
    async with server:
        await server.lsp.initialize("file:///workspace")
        pid = server.transport.pid
    assert pid is not None
    # Killed, not a clean exit.
    assert server.transport.returncode not in (None, 0)
    assert not server.transport.is_running


@pytest.mark.asyncio
async def test_missing_executable(tmp_path: Path):
    server = LSPServer([str(tmp_path / "no-such-server")])
    with pytest.raises(ServerStartError):
        await server.start()


@pytest.mark.asyncio
async def test_long_stderr_line_does_not_break_client(mock_command: Callable[..., list[str]]):
    server = LSPServer(mock_command("--stderr-noise", "200000"), settle_delay=0)
    async with server:
        await server.lsp.initialize("file:///workspace")
        assert await server.lsp.hover("file:///workspace/a.ts", 0, 0) == {
            "contents": {"kind": "plaintext", "value": "mock hover"}
        }
    assert server.transport.stderr_tail[-1] == "mock stderr done"
    assert all(len(line) <= 4096 for line in server.transport.stderr_tail)


@pytest.mark.asyncio
async def test_requests_on_shared_server(mock_server: LSPServer):
    assert mock_server.lsp.is_initialized
    results = await asyncio.gather(
        mock_server.lsp.document_symbols("file:///workspace/a.ts"),
        mock_server.lsp.semantic_tokens("file:///workspace/a.ts"),
        mock_server.lsp.hover("file:///workspace/a.ts", 2, 10),
    )
    assert results[0] == CANNED_SYMBOLS
    assert results[1] == {"data": [0, 0, 5, 1, 0]}
    assert results[2]["contents"]["value"] == "mock hover"
