"""Work tasks, unevenly spread over projects."""

import math
from datetime import datetime, time, timezone

from scaleseed.dates import add_business_days
from scaleseed.distribution import TASK_PRIORITY, TASK_STATUS, TASK_TYPE, expand
from scaleseed.generators.base import GenerationContext, TaskRef
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

RANK_STEP = 1000
TITLE_POOL_SIZE = 256
# Business days between successive task starts inside a project
START_STAGGER_DAYS = 2
MAX_START_OFFSET = 120

TASK_ALIASES = {
    "organization_id": ("organizationId",),
    "workspace_id": ("workspaceId",),
    "project_id": ("projectId",),
    "assignee_user_id": ("assignee_id", "assigneeId"),
    "reporter_user_id": ("reporter_id", "created_by"),
    "rank": ("position", "sort_order"),
    "estimate_hours": ("estimated_hours", "estimate"),
}


def allocate_task_counts(total: int, project_count: int, rng: SeededRng) -> list[int]:
    """
    Split ``total`` tasks over projects with weight ``0.5 + rng()`` each.

    Floors each weighted share, then hands out the remainder one per project
    from project 0, so the result always sums to ``total``.
    """
    weights = [0.5 + rng() for _ in range(project_count)]
    weight_sum = sum(weights)
    counts = [math.floor(total * w / weight_sum) for w in weights]
    remainder = total - sum(counts)
    for i in range(remainder):
        counts[i % project_count] += 1
    return counts


def generate_tasks(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    fake = ctx.faker(rng)
    org_id = ctx.state["org_id"]
    user_ids = ctx.state["user_ids"]
    workspace_ids = ctx.state["workspace_ids"]
    members_by_workspace = ctx.state["members_by_workspace"]
    projects = ctx.state["projects"]

    titles = [fake.bs().capitalize() for _ in range(TITLE_POOL_SIZE)]
    per_project = allocate_task_counts(ctx.cfg.task_count, len(projects), rng)

    tasks_by_project: dict[int, list[TaskRef]] = {}
    rows = []
    for p, (project, n) in enumerate(zip(projects, per_project)):
        if n == 0:
            continue
        statuses = expand(n, TASK_STATUS)
        priorities = expand(n, TASK_PRIORITY)
        types = expand(n, TASK_TYPE)
        members = members_by_workspace.get(project.workspace_index, [])
        refs = tasks_by_project.setdefault(p, [])

        for i in range(n):
            start = add_business_days(
                project.start_date, (i * START_STAGGER_DAYS) % MAX_START_OFFSET
            )
            due = add_business_days(start, 1 + rng.randint(0, 9))
            ref = TaskRef(stable_id("task", ctx.key(p, i)), p, start, due)
            refs.append(ref)

            status = statuses[i]
            # Priority and type read their buckets in a different order than
            # status so the three columns don't move in lockstep.
            task_type = types[(i + n // 2) % n]
            rows.append(
                {
                    "id": ref.id,
                    "organization_id": org_id,
                    "workspace_id": workspace_ids[project.workspace_index],
                    "project_id": project.id,
                    "title": f"{titles[rng.choice_index(len(titles))]} ({p + 1}.{i + 1})",
                    "description": None,
                    "status": status,
                    "type": task_type,
                    "priority": priorities[n - 1 - i],
                    "assignee_user_id": user_ids[members[i % len(members)]] if members else None,
                    "reporter_user_id": project.created_by,
                    "start_date": start,
                    "due_date": due,
                    "completed_at": (
                        datetime.combine(due, time(17), tzinfo=timezone.utc)
                        if status == "DONE"
                        else None
                    ),
                    "rank": (i + 1) * RANK_STEP,
                    "estimate_hours": rng.randint(1, 40),
                    "created_at": datetime.combine(start, time(9), tzinfo=timezone.utc),
                    "updated_at": datetime.combine(start, time(9), tzinfo=timezone.utc),
                }
            )

    ctx.insert("work_tasks", rows, aliases=TASK_ALIASES)

    return GeneratorOutput(
        counts={"work_tasks": len(rows)},
        maps={
            "tasks_by_project": tasks_by_project,
            "all_tasks": [ref for refs in tasks_by_project.values() for ref in refs],
        },
    )
