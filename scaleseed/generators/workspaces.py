"""Workspaces and workspace memberships."""

from scaleseed.dates import REFERENCE_TS
from scaleseed.distribution import MEMBER_ROLE, expand
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

WORKSPACE_ALIASES = {
    "organization_id": ("organizationId",),
    "created_by": ("owner_id", "created_by_id"),
}

# Every Nth user also joins the workspace after its primary one
SECOND_WORKSPACE_EVERY = 5


def generate_workspaces(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    fake = ctx.faker(rng)
    user_ids = ctx.state["user_ids"]
    count = ctx.cfg.workspace_count

    workspace_ids = [stable_id("workspace", ctx.key(w)) for w in range(count)]
    rows = [
        {
            "id": workspace_ids[w],
            "organization_id": ctx.state["org_id"],
            "name": f"{fake.catch_phrase()} {w + 1}",
            "slug": f"ws-{w + 1:04d}",
            "description": fake.sentence(nb_words=8),
            "created_by": user_ids[w % len(user_ids)],
            "created_at": REFERENCE_TS,
            "updated_at": REFERENCE_TS,
        }
        for w in range(count)
    ]
    ctx.insert("workspaces", rows, aliases=WORKSPACE_ALIASES)

    return GeneratorOutput(counts={"workspaces": count}, maps={"workspace_ids": workspace_ids})


def membership_pairs(user_count: int, workspace_count: int) -> list[tuple[int, int]]:
    """(workspace index, user index) pairs, unique, in deterministic order."""
    pairs = []
    for u in range(user_count):
        primary = u % workspace_count
        pairs.append((primary, u))
        if u % SECOND_WORKSPACE_EVERY == 0 and workspace_count > 1:
            pairs.append(((primary + 1) % workspace_count, u))
    return pairs


def generate_workspace_members(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    user_ids = ctx.state["user_ids"]
    workspace_ids = ctx.state["workspace_ids"]

    pairs = membership_pairs(len(user_ids), len(workspace_ids))
    roles = expand(len(pairs), MEMBER_ROLE)

    members_by_workspace: dict[int, list[int]] = {}
    rows = []
    for m, (w, u) in enumerate(pairs):
        members_by_workspace.setdefault(w, []).append(u)
        rows.append(
            {
                "id": stable_id("ws_member", ctx.key(w, u)),
                "workspace_id": workspace_ids[w],
                "user_id": user_ids[u],
                "role": roles[m],
                "created_at": REFERENCE_TS,
            }
        )

    ctx.insert(
        "workspace_members",
        rows,
        aliases={"workspace_id": ("workspaceId",), "user_id": ("userId",)},
    )
    return GeneratorOutput(
        counts={"workspace_members": len(rows)},
        maps={"members_by_workspace": members_by_workspace},
    )
