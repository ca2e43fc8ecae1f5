"""Per-user daily capacity calendar."""

from datetime import timedelta

from scaleseed.dates import REFERENCE_DATE, REFERENCE_TS, is_weekday
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

WORKDAY_HOURS = 8
PTO_PROBABILITY = 0.05

CAPACITY_ALIASES = {
    "organization_id": ("organizationId",),
    "workspace_id": ("workspaceId",),
    "user_id": ("userId",),
    "date": ("day", "capacity_date"),
    "capacity_hours": ("hours", "available_hours"),
}


def capacity_hours(day, draw: float) -> int:
    """8h on weekdays unless ``draw`` hits the PTO band; 0h at weekends."""
    if not is_weekday(day):
        return 0
    return 0 if draw < PTO_PROBABILITY else WORKDAY_HOURS


def generate_capacity(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    user_ids = ctx.state["user_ids"]
    workspace_ids = ctx.state["workspace_ids"]
    days = [REFERENCE_DATE + timedelta(days=d) for d in range(ctx.cfg.capacity_days)]

    rows = []
    for u, user_id in enumerate(user_ids):
        workspace_id = workspace_ids[u % len(workspace_ids)]
        for day in days:
            rows.append(
                {
                    "id": stable_id("capacity", ctx.key(u, day.isoformat())),
                    "organization_id": ctx.state["org_id"],
                    "workspace_id": workspace_id,
                    "user_id": user_id,
                    "date": day,
                    # Draw for every day so the stream doesn't depend on the calendar
                    "capacity_hours": capacity_hours(day, rng()),
                    "created_at": REFERENCE_TS,
                }
            )

    ctx.insert("workspace_member_capacity", rows, aliases=CAPACITY_ALIASES)
    return GeneratorOutput(counts={"workspace_member_capacity": len(rows)})
