"""Scale ladder: benchmark at increasing scales until done or a guardrail trips."""

import logging
from pathlib import Path
from typing import Any

import psycopg

from scaleseed.config import LadderConfig
from scaleseed.dates import utc_now_iso
from scaleseed.exceptions import SchemaGuardrailError, ScaleSeedError
from scaleseed.models import LadderResult, LadderStep
from scaleseed.reports import write_ladder

logger = logging.getLogger(__name__)


def run_ladder(cfg: LadderConfig, runner: Any, output_dir: Path | str) -> LadderResult:
    """
    Run ``runner.run(bench_config)`` once per ladder scale.

    A SchemaGuardrailError (drift included) stops the ladder; the scales not
    reached are reported as skipped. Any other failure is recorded against
    its scale and the ladder moves on.
    """
    steps: list[LadderStep] = []
    stopped_reason: str | None = None

    for scale in cfg.scales:
        logger.info(f"=== Ladder step: scale={scale} ===")
        try:
            result = runner.run(cfg.bench.at_scale(scale))
        except SchemaGuardrailError as e:
            stopped_reason = str(e).splitlines()[0]
            steps.append(LadderStep(scale=scale, status="guardrail", error=stopped_reason))
            logger.error(f"Ladder stopped at scale={scale}: {stopped_reason}")
            break
        except (ScaleSeedError, psycopg.Error) as e:
            error = str(e).splitlines()[0]
            steps.append(LadderStep(scale=scale, status="failed", error=error))
            logger.error(f"Scale {scale} failed: {error}")
            continue

        if result is None:
            steps.append(LadderStep(scale=scale, status="dry_run"))
            continue
        steps.append(
            LadderStep(
                scale=scale,
                status="ok",
                avg_runtime_ms=result.avg_runtime_ms,
                avg_insert_rate=result.avg_insert_rate,
            )
        )

    ladder = LadderResult(
        seed=cfg.bench.seed,
        scales=cfg.scales,
        steps=steps,
        stopped_reason=stopped_reason,
        created_at=utc_now_iso(),
    )
    summary, proof = write_ladder(Path(output_dir), ladder)
    logger.info(f"Ladder summary written to {summary}")
    logger.info(f"Resume proof written to {proof}")
    logger.info(
        f"Succeeded: {ladder.succeeded} | Failed: {ladder.failed} | Skipped: {ladder.skipped}"
    )
    return ladder
