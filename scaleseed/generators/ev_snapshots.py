"""Weekly earned-value snapshots for the EV project subset."""

from datetime import timedelta

from scaleseed.dates import REFERENCE_TS
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

SPI_RANGE = (0.8, 1.1)
CPI_RANGE = (0.85, 1.15)
# Snapshots stop short of completion: planned duration runs this many weeks past the last one
REMAINING_WEEKS = 4

EV_ALIASES = {
    "organization_id": ("organizationId",),
    "project_id": ("projectId",),
    "snapshot_date": ("as_of_date", "period_end"),
    "bac": ("budget_at_completion",),
    "pv": ("planned_value",),
    "ev": ("earned_value",),
    "ac": ("actual_cost",),
    "etc": ("estimate_to_complete",),
    "eac": ("estimate_at_completion",),
    "vac": ("variance_at_completion",),
}


def compute_ev_metrics(
    bac: float, progress: float, spi_factor: float, cpi_factor: float
) -> dict[str, float]:
    """
    Earned-value figures for one snapshot.

    PV ramps linearly with ``progress``; EV = PV * spi_factor and
    AC = EV / cpi_factor, so CPI = EV / AC and SPI = EV / PV reproduce the
    factors. EAC = BAC / CPI, ETC = EAC - AC, VAC = BAC - EAC.
    """
    pv = bac * progress
    ev = pv * spi_factor
    ac = ev / cpi_factor
    cpi = ev / ac if ac else 1.0
    spi = ev / pv if pv else 1.0
    eac = bac / cpi
    return {
        "bac": round(bac, 2),
        "pv": round(pv, 2),
        "ev": round(ev, 2),
        "ac": round(ac, 2),
        "cpi": round(cpi, 4),
        "spi": round(spi, 4),
        "eac": round(eac, 2),
        "etc": round(eac - ac, 2),
        "vac": round(bac - eac, 2),
    }


def generate_ev_snapshots(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    projects = ctx.state["projects"]
    weeks = ctx.cfg.ev_snapshot_weeks
    planned_weeks = weeks + REMAINING_WEEKS

    rows = []
    for p in ctx.state["ev_project_indices"]:
        project = projects[p]
        for k in range(1, weeks + 1):
            metrics = compute_ev_metrics(
                project.budget,
                k / planned_weeks,
                rng.uniform(*SPI_RANGE),
                rng.uniform(*CPI_RANGE),
            )
            rows.append(
                {
                    "id": stable_id("ev_snapshot", ctx.key(p, k)),
                    "organization_id": ctx.state["org_id"],
                    "project_id": project.id,
                    "snapshot_date": project.start_date + timedelta(weeks=k),
                    **metrics,
                    "created_at": REFERENCE_TS,
                }
            )

    ctx.insert("earned_value_snapshots", rows, aliases=EV_ALIASES)
    return GeneratorOutput(counts={"earned_value_snapshots": len(rows)})
