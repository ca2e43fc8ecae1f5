"""Seed orchestration: capability snapshot, strict checks, generators, manifest."""

import json
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any

from scaleseed.config import ScaleSeedConfig
from scaleseed.exceptions import SchemaGuardrailError
from scaleseed.generators import GENERATORS, SEED_TABLES, GenerationContext, SeedState
from scaleseed.manifest import build_manifest, write_manifest_to_disk, write_manifest_to_org
from scaleseed.models import CapabilitySnapshot, Manifest, ProgressState
from scaleseed.progress import ProgressTracker

logger = logging.getLogger(__name__)

# Tables that must exist when strict schema mode is on
STRICT_REQUIRED_TABLES: tuple[str, ...] = (
    "schedule_baselines",
    "schedule_baseline_items",
    "earned_value_snapshots",
    "workspace_member_capacity",
    "attachments",
    "workspace_storage_usage",
    "audit_events",
)


class SeedStage(str, Enum):
    INIT = "INIT"
    CAPABILITY_SNAPSHOT = "CAPABILITY_SNAPSHOT"
    STRICT_CHECK = "STRICT_CHECK"
    GENERATE = "GENERATE"
    MANIFEST = "MANIFEST"
    DONE = "DONE"
    FAIL = "FAIL"


def check_strict_schema(caps: CapabilitySnapshot) -> None:
    """
    Raise if the snapshot lacks any strict-mode table or required index.

    Raises:
        SchemaGuardrailError: STRICT_SCHEMA_VIOLATION naming what is missing
    """
    missing = [t for t in STRICT_REQUIRED_TABLES if not caps.has_table(t)]
    if missing:
        raise SchemaGuardrailError.missing_tables(missing)
    if caps.indexes_missing:
        raise SchemaGuardrailError.missing_indexes(caps.indexes_missing)


def check_core_tables(caps: CapabilitySnapshot) -> None:
    """Core generators cannot be skipped in any mode."""
    for spec in GENERATORS:
        missing = spec.missing_tables(caps)
        if missing and not spec.optional:
            raise SchemaGuardrailError.missing_core_table(spec.name, missing)


class SeedOrchestrator:
    """
    Run one seed for one config.

    Stages: INIT -> CAPABILITY_SNAPSHOT -> STRICT_CHECK (strict only) ->
    GENERATE -> MANIFEST -> DONE, with FAIL on any error after INIT.

    Args:
        backend: DirectBackend or StagingBackend receiving the rows
        introspector: Anything with ``snapshot(tables) -> CapabilitySnapshot``
        output_dir: Where the manifest files go
        progress: Checkpoint tracker; None disables checkpoints (nested runs)
    """

    def __init__(
        self,
        backend: Any,
        introspector: Any,
        output_dir: Path | str,
        progress: ProgressTracker | None = None,
    ):
        self.backend = backend
        self.introspector = introspector
        self.output_dir = Path(output_dir)
        self.progress = progress
        self.stage = SeedStage.INIT
        self.caps: CapabilitySnapshot | None = None
        self.state: SeedState | None = None

    def run(self, cfg: ScaleSeedConfig) -> Manifest | None:
        """
        Seed the tenant for ``cfg``.

        Returns:
            The manifest, or None for a dry run

        Raises:
            SchemaGuardrailError: Strict-mode violation or missing core table
            DatabaseError: A write failed (earlier batches stay committed)
        """
        self.stage = SeedStage.INIT
        started = time.perf_counter()
        logger.info(f"Scale seed starting: seed={cfg.seed} scale={cfg.scale} strict={cfg.strict_schema}")
        logger.info(
            f"Targets: {cfg.workspace_count} ws, {cfg.project_count} proj, {cfg.task_count} tasks, "
            f"{cfg.dep_count} deps, {cfg.user_count} users, {cfg.audit_count} audit, "
            f"{cfg.attachments_count} attachments"
        )
        if cfg.dry_run:
            logger.info("DRY RUN: no database writes")
            return None

        try:
            self.stage = SeedStage.CAPABILITY_SNAPSHOT
            caps = self.introspector.snapshot(SEED_TABLES)
            self.caps = caps
            logger.info(json.dumps(caps.to_log_dict(), indent=2))

            if cfg.strict_schema:
                self.stage = SeedStage.STRICT_CHECK
                check_strict_schema(caps)

            self.stage = SeedStage.GENERATE
            counts = self._generate(cfg, caps)

            self.stage = SeedStage.MANIFEST
            runtime_ms = int((time.perf_counter() - started) * 1000)
            manifest = build_manifest(cfg, counts, runtime_ms, caps)
            write_manifest_to_org(
                self.backend,
                self.state["org_id"],
                self.state["org_metadata_column"],
                manifest,
            )
            write_manifest_to_disk(self.output_dir, manifest)
            if self.progress:
                self.progress.clear()
        except Exception:
            self.stage = SeedStage.FAIL
            raise

        self.stage = SeedStage.DONE
        logger.info(f"Seed complete in {runtime_ms / 1000:.1f}s")
        logger.info("Counts:")
        for table, count in counts.items():
            logger.info(f"  {table}: {count:,}")
        return manifest

    def _generate(self, cfg: ScaleSeedConfig, caps: CapabilitySnapshot) -> dict[str, int]:
        check_core_tables(caps)
        ctx = GenerationContext(cfg, caps, self.backend)
        self.state = ctx.state
        checkpoint = ProgressState(command="seed", seed=cfg.seed, scale=cfg.scale, stage="generate")

        counts: dict[str, int] = {}
        total = len(GENERATORS)
        for i, spec in enumerate(GENERATORS, start=1):
            missing = spec.missing_tables(caps)
            if missing:
                logger.info(f"{i}/{total} {spec.name}: SKIPPED ({', '.join(missing)} not in DB)")
                continue

            logger.info(f"{i}/{total} {spec.name}...")
            output = spec.run(ctx)
            ctx.state.publish(output.maps)
            counts.update(output.counts)
            if self.progress:
                self.progress.record_generator(checkpoint, spec.name, output.total_rows)

        return counts


def run_seed(
    cfg: ScaleSeedConfig,
    backend: Any,
    introspector: Any,
    output_dir: Path | str,
    progress: ProgressTracker | None = None,
) -> Manifest | None:
    """Convenience wrapper: one orchestrator, one run."""
    return SeedOrchestrator(backend, introspector, output_dir, progress).run(cfg)
