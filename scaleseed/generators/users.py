"""Users and their organization memberships."""

from scaleseed.dates import REFERENCE_TS
from scaleseed.distribution import DistributionEntry, expand
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

# Not a usable credential: a bcrypt-shaped placeholder no password hashes to.
PASSWORD_PLACEHOLDER = "$2b$10$scaleseedscaleseedscaleseedscaleseedscaleseedscalese"

ORG_ROLE = (DistributionEntry("admin", 5), DistributionEntry("member", 95))

USER_ALIASES = {
    "first_name": ("firstName",),
    "last_name": ("lastName",),
    "password": ("password_hash",),
    "is_email_verified": ("email_verified",),
}


def user_email(seed: int, org_slug: str, index: int) -> str:
    return f"user{index}.s{seed}@{org_slug}.scale-seed.test".lower()


def user_email_pattern(seed: int, org_slug: str) -> str:
    """LIKE pattern matching every user_email() of one seed and org, and no other."""
    suffix = user_email(seed, org_slug, 0)[len("user0"):]
    escaped = suffix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"user%{escaped}"


def generate_users(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    cfg = ctx.cfg
    fake = ctx.faker(rng)
    org_id = ctx.state["org_id"]
    count = cfg.user_count

    user_ids = [stable_id("user", ctx.key(i)) for i in range(count)]
    users = [
        {
            "id": user_ids[i],
            "email": user_email(cfg.seed, cfg.org_slug, i),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "password": PASSWORD_PLACEHOLDER,
            "role": "admin" if i == 0 else "user",
            "is_email_verified": True,
            "created_at": REFERENCE_TS,
            "updated_at": REFERENCE_TS,
        }
        for i in range(count)
    ]
    ctx.insert("users", users, aliases=USER_ALIASES)

    counts = {"users": count}
    if ctx.caps.has_table("user_organizations"):
        roles = expand(count, ORG_ROLE)
        memberships = [
            {
                "id": stable_id("user_org", ctx.key(i)),
                "user_id": user_ids[i],
                "organization_id": org_id,
                "role": "owner" if i == 0 else roles[i],
                "is_active": True,
                "joined_at": REFERENCE_TS,
                "created_at": REFERENCE_TS,
            }
            for i in range(count)
        ]
        ctx.insert(
            "user_organizations",
            memberships,
            aliases={"user_id": ("userId",), "organization_id": ("organizationId",)},
        )
        counts["user_organizations"] = count

    return GeneratorOutput(counts=counts, maps={"user_ids": user_ids})
