"""Projects, spread round-robin over workspaces."""

from datetime import datetime, time, timedelta, timezone

from scaleseed.dates import REFERENCE_DATE, add_business_days
from scaleseed.distribution import PROJECT_STATUS, expand
from scaleseed.generators.base import GenerationContext, ProjectRef
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

BUDGET_MIN = 50_000
BUDGET_MAX = 500_000
START_SPREAD_WEEKS = 26
PLANNED_BUSINESS_DAYS = 120

PROJECT_ALIASES = {
    "organization_id": ("organizationId",),
    "workspace_id": ("workspaceId",),
    "created_by_id": ("created_by", "owner_id"),
    "budget": ("bac", "budget_amount"),
}


def ev_project_indices(project_count: int, ev_count: int) -> list[int]:
    """``ev_count`` evenly spaced project indices (all of them if ev_count >= project_count)."""
    ev_count = min(ev_count, project_count)
    return [k * project_count // ev_count for k in range(ev_count)]


def generate_projects(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    cfg = ctx.cfg
    fake = ctx.faker(rng)
    user_ids = ctx.state["user_ids"]
    workspace_ids = ctx.state["workspace_ids"]
    count = cfg.project_count
    statuses = expand(count, PROJECT_STATUS)
    first_start = REFERENCE_DATE - timedelta(weeks=START_SPREAD_WEEKS)

    projects: list[ProjectRef] = []
    rows = []
    for p in range(count):
        w = p % len(workspace_ids)
        start = first_start + timedelta(weeks=p % START_SPREAD_WEEKS)
        ref = ProjectRef(
            id=stable_id("project", ctx.key(p)),
            workspace_index=w,
            start_date=start,
            budget=round(rng.uniform(BUDGET_MIN, BUDGET_MAX), 2),
            created_by=user_ids[p % len(user_ids)],
        )
        projects.append(ref)
        rows.append(
            {
                "id": ref.id,
                "organization_id": ctx.state["org_id"],
                "workspace_id": workspace_ids[w],
                "name": f"{fake.catch_phrase()} #{p + 1}",
                "description": fake.sentence(nb_words=12),
                "status": statuses[p],
                "start_date": start,
                "end_date": add_business_days(start, PLANNED_BUSINESS_DAYS),
                "budget": ref.budget,
                "created_by_id": ref.created_by,
                # Minute offsets keep created_at distinct for the project_list ordering
                "created_at": datetime.combine(start, time(9), tzinfo=timezone.utc)
                + timedelta(minutes=p),
                "updated_at": datetime.combine(start, time(9), tzinfo=timezone.utc),
            }
        )

    ctx.insert("projects", rows, aliases=PROJECT_ALIASES)

    return GeneratorOutput(
        counts={"projects": count},
        maps={
            "projects": projects,
            "ev_project_indices": ev_project_indices(count, cfg.ev_project_count),
        },
    )
