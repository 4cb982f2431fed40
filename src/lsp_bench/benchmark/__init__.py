"""Benchmark harness: fixtures, timing, scheduling and reports."""
