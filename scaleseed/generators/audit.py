"""Audit events spread evenly over the year before the reference date."""

from datetime import timedelta

from scaleseed.dates import REFERENCE_TS
from scaleseed.distribution import AUDIT_ACTION, expand
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

WINDOW_DAYS = 365
# One event in PROJECT_EVERY targets a project, the rest target tasks
PROJECT_EVERY = 4

AUDIT_ALIASES = {
    "organization_id": ("organizationId",),
    "workspace_id": ("workspaceId",),
    "actor_user_id": ("user_id", "actor_id"),
    "entity_type": ("target_type",),
    "entity_id": ("target_id",),
    "metadata_json": ("metadata", "payload", "details"),
}


def audit_timestamp(index: int, total: int):
    """Linear position of event ``index`` inside the window ending at REFERENCE_TS."""
    window = timedelta(days=WINDOW_DAYS)
    return REFERENCE_TS - window + window * (index / total)


def generate_audit(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    cfg = ctx.cfg
    user_ids = ctx.state["user_ids"]
    workspace_ids = ctx.state["workspace_ids"]
    projects = ctx.state["projects"]
    all_tasks = ctx.state["all_tasks"]
    count = cfg.audit_count
    actions = expand(count, AUDIT_ACTION)

    rows = []
    for i in range(count):
        if i % PROJECT_EVERY == 0 or not all_tasks:
            entity_type = "project"
            project = projects[rng.choice_index(len(projects))]
            entity_id = project.id
        else:
            entity_type = "work_task"
            task = all_tasks[rng.choice_index(len(all_tasks))]
            project = projects[task.project_index]
            entity_id = task.id

        rows.append(
            {
                "id": stable_id("audit", ctx.key(i)),
                "organization_id": ctx.state["org_id"],
                "workspace_id": workspace_ids[project.workspace_index],
                "actor_user_id": user_ids[i % len(user_ids)],
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": actions[i],
                "metadata_json": {"source": "scale-seed", "seed": cfg.seed, "index": i},
                "created_at": audit_timestamp(i, count),
            }
        )

    ctx.insert("audit_events", rows, aliases=AUDIT_ALIASES)
    return GeneratorOutput(counts={"audit_events": len(rows)})
