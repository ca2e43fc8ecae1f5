"""Entity generators, registered in foreign-key order."""

from scaleseed.generators.attachments import generate_attachments
from scaleseed.generators.audit import generate_audit
from scaleseed.generators.base import (
    GenerationContext,
    GeneratorSpec,
    ProjectRef,
    SeedState,
    TaskRef,
    adapt_rows,
)
from scaleseed.generators.baselines import generate_baselines
from scaleseed.generators.capacity import generate_capacity
from scaleseed.generators.dependencies import generate_dependencies
from scaleseed.generators.ev_snapshots import generate_ev_snapshots
from scaleseed.generators.organization import generate_organization
from scaleseed.generators.projects import generate_projects
from scaleseed.generators.tasks import generate_tasks
from scaleseed.generators.users import generate_users
from scaleseed.generators.workspaces import generate_workspace_members, generate_workspaces

# Every table a seed run may write, parents before children
SEED_TABLES: tuple[str, ...] = (
    "organizations",
    "users",
    "user_organizations",
    "workspaces",
    "workspace_members",
    "projects",
    "work_tasks",
    "work_task_dependencies",
    "schedule_baselines",
    "schedule_baseline_items",
    "earned_value_snapshots",
    "workspace_member_capacity",
    "attachments",
    "workspace_storage_usage",
    "audit_events",
)

GENERATORS: tuple[GeneratorSpec, ...] = (
    GeneratorSpec("organization", generate_organization, ("organizations",), rng_offset=1),
    GeneratorSpec("users", generate_users, ("users",), rng_offset=2),
    GeneratorSpec("workspaces", generate_workspaces, ("workspaces",), rng_offset=3),
    GeneratorSpec("workspace_members", generate_workspace_members, ("workspace_members",), rng_offset=4),
    GeneratorSpec("projects", generate_projects, ("projects",), rng_offset=5),
    GeneratorSpec("tasks", generate_tasks, ("work_tasks",), rng_offset=6),
    GeneratorSpec("dependencies", generate_dependencies, ("work_task_dependencies",), rng_offset=7),
    GeneratorSpec(
        "baselines",
        generate_baselines,
        ("schedule_baselines", "schedule_baseline_items"),
        optional=True,
        rng_offset=8,
    ),
    GeneratorSpec(
        "ev_snapshots", generate_ev_snapshots, ("earned_value_snapshots",), optional=True, rng_offset=9
    ),
    GeneratorSpec(
        "capacity", generate_capacity, ("workspace_member_capacity",), optional=True, rng_offset=10
    ),
    GeneratorSpec("attachments", generate_attachments, ("attachments",), optional=True, rng_offset=11),
    GeneratorSpec("audit", generate_audit, ("audit_events",), optional=True, rng_offset=12),
)


def get_generator(name: str) -> GeneratorSpec | None:
    for spec in GENERATORS:
        if spec.name == name:
            return spec
    return None


__all__ = [
    "GENERATORS",
    "SEED_TABLES",
    "GenerationContext",
    "GeneratorSpec",
    "ProjectRef",
    "SeedState",
    "TaskRef",
    "adapt_rows",
    "get_generator",
]
