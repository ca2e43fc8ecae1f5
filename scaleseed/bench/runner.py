"""Benchmark runner: seed, measure, explain, clean up; repeated N times."""

import gc
import logging
import time
import tracemalloc
from pathlib import Path

import psutil
from psycopg import Connection

from scaleseed.backends.direct import DirectBackend, quote_ident
from scaleseed.bench.queries import run_explain_analyze, write_explain_plans
from scaleseed.cleanup import run_cleanup
from scaleseed.config import BenchConfig, ScaleSeedConfig
from scaleseed.dates import utc_now_iso
from scaleseed.exceptions import SchemaDriftError
from scaleseed.generators import SEED_TABLES
from scaleseed.generators.organization import org_id_for
from scaleseed.introspection import SchemaIntrospector
from scaleseed.manifest import read_manifest
from scaleseed.models import BenchResult, BenchRunResult, ExplainResult, ProgressState
from scaleseed.orchestrator import SeedOrchestrator
from scaleseed.progress import ProgressTracker
from scaleseed.reports import write_bench

logger = logging.getLogger(__name__)

MB = 1024 * 1024


def current_rss_mb() -> float:
    """Resident set size of this process right now, in MB."""
    return round(psutil.Process().memory_info().rss / MB, 2)


def insert_rate(total_rows: int, runtime_ms: int) -> int:
    if runtime_ms <= 0:
        return 0
    return round(total_rows / (runtime_ms / 1000))


def detect_schema_drift(output_dir: Path, seed: int, current_hash: str) -> None:
    """
    Compare ``current_hash`` with the hash in the last manifest for ``seed``.

    A missing or unreadable manifest skips the check.

    Raises:
        SchemaDriftError: If both hashes exist and differ
    """
    previous = read_manifest(output_dir, seed)
    if previous is None:
        logger.info("  No previous manifest found, skipping drift check")
        return
    if previous.detected_schema_hash and previous.detected_schema_hash != current_hash:
        raise SchemaDriftError(seed, current_hash, previous.detected_schema_hash)
    logger.info(f"  Schema hash matches previous manifest: {current_hash}")


def summarize(cfg: BenchConfig, runs: list[BenchRunResult], plans: list[ExplainResult]) -> BenchResult:
    n = len(runs) or 1
    return BenchResult(
        seed=cfg.seed,
        scale=cfg.scale,
        repeat=cfg.repeat,
        runs=runs,
        explain_plans=plans,
        avg_runtime_ms=round(sum(r.runtime_ms for r in runs) / n),
        avg_insert_rate=round(sum(r.insert_rate_rows_per_sec for r in runs) / n),
        avg_memory_rss_mb=round(sum(r.memory_rss_mb for r in runs) / n, 2),
        avg_heap_peak_mb=round(sum(r.heap_peak_mb for r in runs) / n, 2),
        created_at=utc_now_iso(),
    )


class BenchRunner:
    """
    Run a benchmark against a live database.

    Every iteration seeds in strict mode, samples memory, and cleans the
    tenant up again; EXPLAIN runs once, on the final iteration.
    """

    def __init__(
        self,
        conn: Connection,
        output_dir: Path | str,
        progress: ProgressTracker | None = None,
        schema: str = "public",
    ):
        self.conn = conn
        self.output_dir = Path(output_dir)
        self.progress = progress
        self.schema = schema

    def run(self, cfg: BenchConfig) -> BenchResult | None:
        logger.info(
            f"Benchmark: seed={cfg.seed} scale={cfg.scale} repeat={cfg.repeat} "
            f"strict={cfg.strict_schema} explain={cfg.explain}"
        )
        seed_cfg = cfg.seed_config()
        if cfg.dry_run:
            logger.info(f"DRY RUN: would seed {seed_cfg.targets()} x{cfg.repeat}, no database access")
            return None

        logger.info("Schema drift check...")
        current = SchemaIntrospector(self.conn, self.schema).snapshot(SEED_TABLES)
        detect_schema_drift(self.output_dir, cfg.seed, current.schema_hash)

        runs: list[BenchRunResult] = []
        plans: list[ExplainResult] = []
        checkpoint = ProgressState(command="bench", seed=cfg.seed, scale=cfg.scale, stage="start")

        tracing = tracemalloc.is_tracing()
        if not tracing:
            tracemalloc.start()
        try:
            for i in range(1, cfg.repeat + 1):
                logger.info(f"--- Iteration {i}/{cfg.repeat} ---")
                self._checkpoint(checkpoint, f"iteration_{i}_seed")
                runs.append(self._iteration(i, seed_cfg))

                if cfg.explain and i == cfg.repeat:
                    self._checkpoint(checkpoint, f"iteration_{i}_explain")
                    plans = self._explain(cfg)

                self._checkpoint(checkpoint, f"iteration_{i}_cleanup")
                proof = run_cleanup(self.conn, cfg.seed, cfg.org_slug, self.schema)
                if proof.has_residue:
                    logger.warning(f"  Iteration {i} cleanup left residue: {proof.residue}")

                checkpoint.completed_stages.append(f"iteration_{i}")
                self._checkpoint(checkpoint, f"iteration_{i}_done")
        finally:
            if not tracing:
                tracemalloc.stop()

        result = summarize(cfg, runs, plans)
        path = write_bench(self.output_dir, result)
        if self.progress:
            self.progress.clear()

        logger.info("--- Bench summary ---")
        logger.info(f"  Avg Runtime: {result.avg_runtime_ms}ms")
        logger.info(f"  Avg Insert Rate: {result.avg_insert_rate} rows/sec")
        logger.info(f"  Avg Memory RSS: {result.avg_memory_rss_mb}MB | Heap peak: {result.avg_heap_peak_mb}MB")
        logger.info(f"  Results written to {path}")
        return result

    def _checkpoint(self, state: ProgressState, stage: str) -> None:
        state.stage = stage
        if self.progress:
            self.progress.write(state)

    def _iteration(self, iteration: int, seed_cfg: ScaleSeedConfig) -> BenchRunResult:
        gc.collect()
        tracemalloc.reset_peak()
        started = time.perf_counter()

        orchestrator = SeedOrchestrator(
            DirectBackend(self.conn, self.schema),
            SchemaIntrospector(self.conn, self.schema),
            self.output_dir,
        )
        manifest = orchestrator.run(seed_cfg)

        runtime_ms = int((time.perf_counter() - started) * 1000)
        _, heap_peak = tracemalloc.get_traced_memory()
        run = BenchRunResult(
            iteration=iteration,
            runtime_ms=runtime_ms,
            memory_rss_mb=current_rss_mb(),
            heap_peak_mb=round(heap_peak / MB, 2),
            insert_rate_rows_per_sec=insert_rate(manifest.total_rows, runtime_ms),
            counts=dict(manifest.counts),
            detected_schema_hash=manifest.detected_schema_hash,
            skipped_tables=list(manifest.skipped_tables),
        )
        logger.info(
            f"  Runtime: {runtime_ms}ms | Rows: {manifest.total_rows} | "
            f"Rate: {run.insert_rate_rows_per_sec} rows/sec"
        )
        logger.info(f"  Memory RSS: {run.memory_rss_mb}MB | Heap peak: {run.heap_peak_mb}MB")
        return run

    def _explain(self, cfg: BenchConfig) -> list[ExplainResult]:
        org_id = org_id_for(cfg.seed, cfg.org_slug)
        with self.conn.cursor() as cur:
            cur.execute(
                f"SELECT id FROM {quote_ident(self.schema)}.{quote_ident('projects')} "
                f"WHERE organization_id = %s LIMIT 1",
                (org_id,),
            )
            row = cur.fetchone()
        if row is None:
            logger.info("  SKIP explain: no projects found")
            return []

        logger.info("--- EXPLAIN ANALYZE ---")
        present = set(SchemaIntrospector(self.conn, self.schema).snapshot(SEED_TABLES).present_tables)
        plans = run_explain_analyze(self.conn, org_id, str(row[0]), self.schema, present)
        directory = write_explain_plans(self.output_dir, plans, cfg.seed, cfg.scale)
        logger.info(f"  Plans written to {directory}")
        return plans
