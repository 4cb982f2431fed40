"""Loading benchmark input files."""

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .errors import BenchmarkSetupError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".ts", ".tsx")

LANGUAGE_IDS = {
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".jsx": "javascriptreact",
}


class Fixture(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    uri: str
    content: str
    size: int
    lines: int
    language_id: str = "typescript"

    @property
    def label(self) -> str:
        return f"{self.name} ({self.lines} lines)"


def load_fixture(path: Path) -> Fixture:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BenchmarkSetupError(f"Cannot read fixture {path}: {e}") from e
    return Fixture(
        name=path.name,
        path=path,
        uri=path.resolve().as_uri(),
        content=content,
        size=path.stat().st_size,
        lines=len(content.split("\n")),
        language_id=LANGUAGE_IDS.get(path.suffix, "typescript"),
    )


def load_fixtures(
    directory: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS
) -> list[Fixture]:
    """Load every fixture file in `directory`, smallest first."""
    if not directory.is_dir():
        raise BenchmarkSetupError(f"Fixture directory not found: {directory}")

    suffixes = set(extensions)
    fixtures = [
        load_fixture(path)
        for path in sorted(directory.iterdir())
        if path.is_file() and path.suffix in suffixes
    ]
    if not fixtures:
        raise BenchmarkSetupError(f"No fixture files found in {directory}")

    fixtures.sort(key=lambda f: f.size)
    logger.debug(f"Loaded {len(fixtures)} fixtures from {directory}")
    return fixtures
