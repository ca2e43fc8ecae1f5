"""Task attachments and the per-workspace storage counters they feed."""

import logging
import math

from scaleseed.dates import REFERENCE_TS
from scaleseed.distribution import ATTACHMENT_STATUS, expand
from scaleseed.generators.base import GenerationContext
from scaleseed.ids import stable_id
from scaleseed.models import GeneratorOutput
from scaleseed.rng import SeededRng

logger = logging.getLogger(__name__)

MIN_SIZE_BYTES = 50_000
MAX_SIZE_BYTES = 50_000_000

FILE_TYPES = (
    ("pdf", "application/pdf"),
    ("png", "image/png"),
    ("jpg", "image/jpeg"),
    ("docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
    ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ("zip", "application/zip"),
)

# Attachment status -> storage counter it adds to
USAGE_COLUMN_BY_STATUS = {"uploaded": "used_bytes", "pending": "reserved_bytes"}

ATTACHMENT_ALIASES = {
    "organization_id": ("organizationId",),
    "workspace_id": ("workspaceId",),
    "parent_id": ("task_id", "entity_id"),
    "parent_type": ("entity_type",),
    "file_name": ("filename", "original_name", "name"),
    "mime_type": ("content_type",),
    "size_bytes": ("file_size", "size"),
    "storage_key": ("storage_path", "key"),
    "uploader_user_id": ("uploaded_by", "uploaded_by_user_id", "created_by"),
}


def log_uniform_size(draw: float) -> int:
    """Map a draw in [0, 1) to a byte size, log-uniform over [MIN, MAX]."""
    low, high = math.log(MIN_SIZE_BYTES), math.log(MAX_SIZE_BYTES)
    size = math.floor(math.exp(low + draw * (high - low)))
    return min(MAX_SIZE_BYTES, max(MIN_SIZE_BYTES, size))


def usage_increments(
    attachments: list[dict], inserted_ids: set[str] | None = None
) -> dict[str, dict[str, int]]:
    """
    Sum attachment sizes per workspace and counter.

    Args:
        attachments: Attachment rows (logical field names)
        inserted_ids: Attachment ids actually written this run; rows
            outside the set are ignored. None means count every row.
    """
    totals: dict[str, dict[str, int]] = {}
    for row in attachments:
        column = USAGE_COLUMN_BY_STATUS.get(row["status"])
        if column is None:
            continue
        if inserted_ids is not None and row["id"] not in inserted_ids:
            continue
        usage = totals.setdefault(row["workspace_id"], {"used_bytes": 0, "reserved_bytes": 0})
        usage[column] += row["size_bytes"]
    return totals


def generate_attachments(ctx: GenerationContext, rng: SeededRng) -> GeneratorOutput:
    cfg = ctx.cfg
    org_id = ctx.state["org_id"]
    user_ids = ctx.state["user_ids"]
    workspace_ids = ctx.state["workspace_ids"]
    projects = ctx.state["projects"]
    all_tasks = ctx.state["all_tasks"]
    count = cfg.attachments_count
    if not all_tasks:
        return GeneratorOutput(counts={"attachments": 0})

    statuses = expand(count, ATTACHMENT_STATUS)
    rows = []
    for i in range(count):
        task = all_tasks[rng.choice_index(len(all_tasks))]
        workspace_id = workspace_ids[projects[task.project_index].workspace_index]
        extension, mime_type = FILE_TYPES[rng.choice_index(len(FILE_TYPES))]
        attachment_id = stable_id("attachment", ctx.key(i))
        rows.append(
            {
                "id": attachment_id,
                "organization_id": org_id,
                "workspace_id": workspace_id,
                "parent_type": "work_task",
                "parent_id": task.id,
                "file_name": f"attachment-{i + 1}.{extension}",
                "mime_type": mime_type,
                "size_bytes": log_uniform_size(rng()),
                "storage_key": f"scale-seed/{cfg.seed}/{workspace_id}/{attachment_id}.{extension}",
                "status": statuses[i],
                "uploader_user_id": user_ids[i % len(user_ids)],
                "created_at": REFERENCE_TS,
            }
        )

    tracks_usage = ctx.caps.has_table("workspace_storage_usage")
    result = ctx.insert(
        "attachments",
        rows,
        aliases=ATTACHMENT_ALIASES,
        returning="id" if tracks_usage else None,
    )

    counts = {"attachments": count}
    if tracks_usage:
        # Only rows written now feed the counters; a replay adds nothing.
        _apply_usage(ctx, usage_increments(rows, {str(v) for v in result.returned}))
        counts["workspace_storage_usage"] = len(usage_increments(rows))
        if result.inserted < count:
            logger.info(
                f"attachments: {count - result.inserted} rows already present, "
                f"storage usage not re-applied for them"
            )

    return GeneratorOutput(counts=counts)


def _apply_usage(ctx: GenerationContext, increments: dict[str, dict[str, int]]) -> None:
    usage_columns = [
        c for c in ("used_bytes", "reserved_bytes") if ctx.caps.has_column("workspace_storage_usage", c)
    ]
    if not increments or not usage_columns:
        return

    key_columns = ["organization_id", "workspace_id"]
    rows = [
        (ctx.state["org_id"], workspace_id, *(usage[c] for c in usage_columns))
        for workspace_id, usage in sorted(increments.items())
    ]
    ctx.backend.increment_upsert("workspace_storage_usage", key_columns, usage_columns, rows)
