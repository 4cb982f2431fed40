"""Result tables and server-vs-server comparison."""

import re
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from .runner import BenchmarkResult

_LABEL_RE = re.compile(r"^\[(?P<label>[^\]]+)\] (?P<rest>.*)$", re.DOTALL)

NAME_WIDTH = 40
TIME_WIDTH = 11


def split_label(name: str) -> tuple[str | None, str]:
    """Split ``"[label] rest"`` into ``("label", "rest")``."""
    m = _LABEL_RE.match(name)
    if not m:
        return None, name
    return m.group("label"), m.group("rest")


class ComparisonEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    candidate: BenchmarkResult
    baseline: BenchmarkResult

    @property
    def speedup(self) -> float:
        if self.candidate.mean == 0:
            return float("inf")
        return self.baseline.mean / self.candidate.mean


def group_by_label(results: Sequence[BenchmarkResult]) -> dict[str, list[BenchmarkResult]]:
    """Group results by server label, in order of first appearance."""
    groups: dict[str, list[BenchmarkResult]] = {}
    for result in results:
        label, _ = split_label(result.name)
        if label is not None:
            groups.setdefault(label, []).append(result)
    return groups


def compare_results(results: Sequence[BenchmarkResult]) -> list[ComparisonEntry]:
    """Pair up results of exactly two labeled servers.

    The first label seen is the candidate, the second the baseline. Results
    without a counterpart are left out. Any other number of labels yields
    no comparison.
    """
    groups = group_by_label(results)
    if len(groups) != 2:
        return []
    candidates, baselines = groups.values()

    baseline_by_name = {split_label(r.name)[1]: r for r in baselines}
    entries = []
    for candidate in candidates:
        name = split_label(candidate.name)[1]
        baseline = baseline_by_name.get(name)
        if baseline is not None:
            entries.append(ComparisonEntry(name=name, candidate=candidate, baseline=baseline))
    return entries


def format_results(results: Sequence[BenchmarkResult]) -> str:
    # The name column grows to the longest name so every row has one width.
    name_width = max([NAME_WIDTH, *(len(r.name) for r in results)])
    headers = ["Mean", "Median", "Min", "Max", "StdDev"]
    header = (
        f"{'Benchmark':<{name_width}}"
        + "".join(f" {h:>{TIME_WIDTH}}" for h in headers)
        + f" {'N':>4}"
    )
    rule = len(header)
    lines = ["=" * rule, header, "-" * rule]
    for r in results:
        times = (r.mean, r.median, r.min, r.max, r.std_dev)
        lines.append(
            f"{r.name:<{name_width}}"
            + "".join(f" {t:>{TIME_WIDTH - 2}.2f}ms" for t in times)
            + f" {r.samples:>4}"
        )
    lines.append("=" * rule)
    return "\n".join(lines)


def format_comparison(entries: Sequence[ComparisonEntry]) -> str:
    if not entries:
        return ""
    candidate_label = split_label(entries[0].candidate.name)[0]
    baseline_label = split_label(entries[0].baseline.name)[0]
    name_width = max([NAME_WIDTH, *(len(e.name) for e in entries)])
    lines = [
        f"Comparison Summary ({candidate_label} vs {baseline_label}):",
        "-" * (name_width + 16),
    ]
    for entry in entries:
        verdict = "faster" if entry.speedup > 1 else "slower"
        lines.append(f"{entry.name:<{name_width}} {entry.speedup:>6.2f}x {verdict}")
    return "\n".join(lines)
