"""Language Server Protocol client and latency benchmark harness."""

__version__ = "0.1.0"
