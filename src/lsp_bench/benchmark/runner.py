"""Timing loop and summary statistics."""

import logging
import math
import time
from collections.abc import Awaitable, Callable, Sequence

from pydantic import BaseModel, ConfigDict

from ..config import BENCHMARK_ITERATIONS, WARMUP_ITERATIONS

logger = logging.getLogger(__name__)


class BenchmarkResult(BaseModel):
    """Latency summary for one benchmark, in milliseconds."""

    model_config = ConfigDict(frozen=True)

    name: str
    mean: float
    median: float
    min: float
    max: float
    std_dev: float
    samples: int


def summarize(name: str, samples_ms: Sequence[float]) -> BenchmarkResult:
    """Reduce raw samples to a BenchmarkResult.

    The median is the sorted sample at index ``n // 2`` (no interpolation,
    even for even counts) and the standard deviation is the population one.
    """
    if not samples_ms:
        raise ValueError(f"No samples for benchmark {name!r}")
    times = sorted(samples_ms)
    n = len(times)
    mean = sum(times) / n
    std_dev = math.sqrt(sum((t - mean) ** 2 for t in times) / n)
    return BenchmarkResult(
        name=name,
        mean=mean,
        median=times[n // 2],
        min=times[0],
        max=times[-1],
        std_dev=std_dev,
        samples=n,
    )


async def run_benchmark(
    name: str,
    fn: Callable[[], Awaitable[object]],
    iterations: int = BENCHMARK_ITERATIONS,
    warmup: int = WARMUP_ITERATIONS,
) -> BenchmarkResult:
    """Await `fn` `warmup` times untimed, then `iterations` times timed."""
    if iterations < 1:
        raise ValueError("iterations must be at least 1")

    for _ in range(warmup):
        await fn()

    times: list[float] = []
    for _ in range(iterations):
        start = time.perf_counter()
        await fn()
        times.append((time.perf_counter() - start) * 1000.0)

    result = summarize(name, times)
    logger.info(f"{name}: mean {result.mean:.2f}ms over {result.samples} runs")
    return result
