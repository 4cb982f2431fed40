class BenchmarkSetupError(Exception):
    """A benchmark input (fixture directory, server binary) is unavailable."""
