"""Schedule baselines for the earned-value project subset."""

from datetime import datetime, time, timezone

from scaleseed.dates import REFERENCE_TS
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

BASELINE_ALIASES = {
    "organization_id": ("organizationId",),
    "project_id": ("projectId",),
    "created_by": ("created_by_id", "created_by_user_id"),
}

ITEM_ALIASES = {
    "baseline_id": ("baselineId", "schedule_baseline_id"),
    "task_id": ("taskId", "work_task_id"),
    "planned_start_at": ("planned_start", "planned_start_date"),
    "planned_end_at": ("planned_end", "planned_end_date"),
    "duration_days": ("planned_duration_days",),
}


def generate_baselines(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    projects = ctx.state["projects"]
    tasks_by_project = ctx.state["tasks_by_project"]

    baselines = []
    items = []
    for p in ctx.state["ev_project_indices"]:
        project = projects[p]
        baseline_id = stable_id("baseline", ctx.key(p))
        baselines.append(
            {
                "id": baseline_id,
                "organization_id": ctx.state["org_id"],
                "project_id": project.id,
                "name": "Baseline 1",
                "is_active": True,
                "created_by": project.created_by,
                "created_at": REFERENCE_TS,
            }
        )
        for i, task in enumerate(tasks_by_project.get(p, [])):
            items.append(
                {
                    "id": stable_id("baseline_item", ctx.key(p, i)),
                    "baseline_id": baseline_id,
                    "task_id": task.id,
                    "planned_start_at": datetime.combine(task.start_date, time(9), tzinfo=timezone.utc),
                    "planned_end_at": datetime.combine(task.due_date, time(17), tzinfo=timezone.utc),
                    "duration_days": (task.due_date - task.start_date).days,
                    "created_at": REFERENCE_TS,
                }
            )

    ctx.insert("schedule_baselines", baselines, aliases=BASELINE_ALIASES)
    ctx.insert("schedule_baseline_items", items, aliases=ITEM_ALIASES)

    return GeneratorOutput(
        counts={"schedule_baselines": len(baselines), "schedule_baseline_items": len(items)}
    )
