"""Benchmark configuration: defaults, server definitions and run settings."""

import json
import shutil
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from .benchmark.errors import BenchmarkSetupError

WARMUP_ITERATIONS = 3
BENCHMARK_ITERATIONS = 10
REQUEST_TIMEOUT = 30.0
SHUTDOWN_TIMEOUT = 5.0
EXIT_GRACE_PERIOD = 1.0
# Heuristic pause after didOpen; see LSPOperations.open_document.
DOCUMENT_SETTLE_DELAY = 0.1
HOVER_CHARACTER = 10
DEFAULT_FIXTURES_DIR = Path("benchmarks") / "fixtures"


class ServerConfig(BaseModel):
    name: str = Field(
        ...,
        description="Key used to select the server on the command line (e.g. 'rust')",
    )
    label: str = Field(
        ...,
        description="Display label; prefixes every benchmark name as '[label] ...'",
    )
    command: list[str] = Field(
        ...,
        min_length=1,
        description="Executable and arguments that start the server over stdio",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the server process",
    )
    language_id: str | None = Field(
        default=None,
        description="Override the languageId sent in didOpen",
    )


class BenchmarkSettings(BaseModel):
    warmup: int = Field(default=WARMUP_ITERATIONS, ge=0)
    iterations: int = Field(default=BENCHMARK_ITERATIONS, ge=1)
    request_timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)
    settle_delay: float = Field(default=DOCUMENT_SETTLE_DELAY, ge=0)
    shutdown_timeout: float = Field(default=SHUTDOWN_TIMEOUT, gt=0)
    exit_grace_period: float = Field(default=EXIT_GRACE_PERIOD, ge=0)
    hover_character: int = Field(default=HOVER_CHARACTER, ge=0)
    fixtures_dir: Path = DEFAULT_FIXTURES_DIR
    root_dir: Path = Field(default_factory=Path.cwd)


DEFAULT_SERVERS = [
    ServerConfig(
        name="rust",
        label="Rust LSP",
        command=[str(Path("target") / "release" / "typescript-language-server")],
    ),
    ServerConfig(
        name="tsserver",
        label="tsserver",
        command=["npx", "typescript-language-server", "--stdio"],
    ),
]

_server_list = TypeAdapter(list[ServerConfig])


def load_server_configs(path: Path) -> list[ServerConfig]:
    """Read a JSON array of server definitions."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise BenchmarkSetupError(f"Cannot read server config {path}: {e}") from e
    servers = _server_list.validate_python(json.loads(text))
    names = [s.name for s in servers]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate server names in {path}: {names}")
    return servers


def resolve_command(server: ServerConfig, root_dir: Path | None = None) -> list[str]:
    """Return the server command with its executable resolved.

    Bare names are looked up on PATH; relative paths such as
    `target/release/...` are taken relative to `root_dir`, which is also the
    cwd the server is started in.
    """
    program = Path(server.command[0])
    if root_dir is not None and len(program.parts) > 1 and not program.is_absolute():
        program = root_dir.resolve() / program
    executable = shutil.which(str(program))
    if executable is None:
        raise BenchmarkSetupError(
            f"{server.label}: executable {server.command[0]!r} not found"
        )
    return [executable, *server.command[1:]]
