"""Task dependencies: forward-only edges inside each project, so every project graph is a DAG."""

import logging

from scaleseed.dates import REFERENCE_TS
from scaleseed.distribution import DEPENDENCY_TYPE, expand
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

logger = logging.getLogger(__name__)

DEPENDENCY_ALIASES = {
    "organization_id": ("organizationId",),
    "workspace_id": ("workspaceId",),
    "project_id": ("projectId",),
    "predecessor_task_id": ("predecessor_id", "depends_on_task_id"),
    "successor_task_id": ("successor_id", "task_id"),
    "type": ("dependency_type", "kind"),
    "created_by_user_id": ("created_by", "created_by_id"),
}


def max_edges(n: int) -> int:
    """Edges the chain + skip-one pattern can produce for ``n`` tasks."""
    return max(0, n - 1) + max(0, n - 2)


def plan_project_edges(n: int, target: int) -> list[tuple[int, int]]:
    """
    Pick up to ``target`` (predecessor, successor) index pairs for ``n`` tasks.

    Chain edges i -> i+1 come first, then skip edges i -> i+2 at even i, then at
    odd i. Every edge points from a lower to a higher index.
    """
    target = min(target, max_edges(n))
    edges: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()

    candidates = [(i, i + 1) for i in range(n - 1)]
    candidates += [(i, i + 2) for i in range(0, n - 2, 2)]
    candidates += [(i, i + 2) for i in range(1, n - 2, 2)]

    for edge in candidates:
        if len(edges) >= target:
            break
        if edge in seen:
            continue
        seen.add(edge)
        edges.append(edge)
    return edges


def allocate_edges(sizes: list[int], dep_count: int) -> list[int]:
    """
    Per-project edge targets summing to ``min(dep_count, total capacity)``.

    Each project first gets its task-proportional floor share, capped at
    ``max_edges``; what is left over goes out one edge at a time, round-robin in
    project order, to projects that still have room.
    """
    total_tasks = sum(sizes)
    if not total_tasks:
        return [0] * len(sizes)
    caps = [max_edges(n) for n in sizes]
    targets = [min(dep_count * n // total_tasks, cap) for n, cap in zip(sizes, caps)]

    remaining = min(dep_count, sum(caps)) - sum(targets)
    while remaining > 0:
        for i, cap in enumerate(caps):
            if remaining == 0:
                break
            if targets[i] < cap:
                targets[i] += 1
                remaining -= 1
    return targets


def generate_dependencies(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    org_id = ctx.state["org_id"]
    workspace_ids = ctx.state["workspace_ids"]
    projects = ctx.state["projects"]
    tasks_by_project = ctx.state["tasks_by_project"]
    project_keys = list(tasks_by_project)
    targets = allocate_edges([len(tasks_by_project[p]) for p in project_keys], ctx.cfg.dep_count)

    planned = []
    for p, target in zip(project_keys, targets):
        for a, b in plan_project_edges(len(tasks_by_project[p]), target):
            planned.append((p, a, b))

    if len(planned) < ctx.cfg.dep_count:
        logger.info(
            f"work_task_dependencies: {len(planned)} of {ctx.cfg.dep_count} requested "
            f"edges fit the per-project task counts"
        )

    types = expand(len(planned), DEPENDENCY_TYPE) if planned else []
    rows = []
    for k, (p, a, b) in enumerate(planned):
        project = projects[p]
        refs = tasks_by_project[p]
        rows.append(
            {
                "id": stable_id("dep", ctx.key(p, a, b)),
                "organization_id": org_id,
                "workspace_id": workspace_ids[project.workspace_index],
                "project_id": project.id,
                "predecessor_task_id": refs[a].id,
                "successor_task_id": refs[b].id,
                "type": types[k],
                "created_by_user_id": project.created_by,
                "created_at": REFERENCE_TS,
            }
        )

    ctx.insert("work_task_dependencies", rows, aliases=DEPENDENCY_ALIASES)
    return GeneratorOutput(counts={"work_task_dependencies": len(rows)})
