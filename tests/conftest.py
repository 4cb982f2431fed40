import json
import sys
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from lsp_bench.utils.lsp.base import LSPServer

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def mock_log(tmp_path: Path) -> Path:
    return tmp_path / "mock_server.log"


@pytest.fixture
def mock_command(mock_log: Path) -> Callable[..., list[str]]:
    """Build the command line that starts the scripted mock server."""

    def make(*extra: str) -> list[str]:
        return [sys.executable, str(FIXTURES_DIR / "mock_server.py"), str(mock_log), *extra]

    return make


@pytest.fixture
def read_mock_log(mock_log: Path) -> Callable[[], list[dict[str, Any]]]:
    """Return every message the mock server received, in order."""

    def read() -> list[dict[str, Any]]:
        if not mock_log.exists():
            return []
        return [json.loads(line) for line in mock_log.read_text().splitlines() if line]

    return read


@pytest.fixture
def ts_fixtures(tmp_path: Path) -> Path:
    directory = tmp_path / "fixtures"
    directory.mkdir()
    (directory / "small.ts").write_text("const a = 1;\nexport { a };\n")
    (directory / "larger.ts").write_text(
        "\n".join(f"export const value{i} = {i};" for i in range(20)) + "\n"
    )
    (directory / "notes.md").write_text("not a fixture\n")
    return directory


@pytest_asyncio.fixture
async def mock_server(mock_command: Callable[..., list[str]]) -> AsyncGenerator[LSPServer, None]:
    """An initialized LSPServer talking to the mock server, stopped afterwards."""
    server = LSPServer(mock_command(), label="mock", settle_delay=0)
    await server.start()
    try:
        await server.lsp.initialize("file:///workspace")
        yield server
    finally:
        await server.stop()
