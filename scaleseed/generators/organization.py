"""Tenant organization, tagged so cleanup can find it again."""

from typing import Any

from scaleseed.config import ScaleSeedConfig
from scaleseed.dates import REFERENCE_TS
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

# Candidate jsonb columns carrying the seed tag, in preference order
METADATA_COLUMNS = ("settings", "metadata")

TAG_KEY = "scaleSeed"


def org_id_for(seed: int, org_slug: str) -> str:
    return stable_id("org", f"{seed}:{org_slug}")


def org_slug_for(seed: int, org_slug: str) -> str:
    return f"{org_slug}-{seed}"


def seed_tag(cfg: ScaleSeedConfig, status: str = "seeding") -> dict[str, Any]:
    return {"seed": cfg.seed, "scale": cfg.scale, "orgSlug": cfg.org_slug, "status": status}


def generate_organization(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    cfg = ctx.cfg
    fake = ctx.faker(rng)
    org_id = org_id_for(cfg.seed, cfg.org_slug)
    metadata_column = ctx.caps.resolve_column("organizations", *METADATA_COLUMNS)

    row: dict[str, Any] = {
        "id": org_id,
        "name": f"{fake.company()} (scale seed {cfg.seed})",
        "slug": org_slug_for(cfg.seed, cfg.org_slug),
        "created_at": REFERENCE_TS,
        "updated_at": REFERENCE_TS,
    }
    if metadata_column:
        row[metadata_column] = {TAG_KEY: seed_tag(cfg)}

    ctx.insert("organizations", [row])
    return GeneratorOutput(
        counts={"organizations": 1},
        maps={"org_id": org_id, "org_metadata_column": metadata_column},
    )
