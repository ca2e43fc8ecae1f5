"""Benchmark harness: timed seed runs, query-plan proof and the scale ladder."""

from scaleseed.bench.ladder import run_ladder
from scaleseed.bench.queries import BENCH_QUERIES, parse_explain, run_explain_analyze
from scaleseed.bench.runner import BenchRunner, detect_schema_drift

__all__ = [
    "BENCH_QUERIES",
    "BenchRunner",
    "detect_schema_drift",
    "parse_explain",
    "run_explain_analyze",
    "run_ladder",
]
