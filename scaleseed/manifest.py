"""Seed manifest: built once per successful run, stored on the tenant and on disk."""

import logging
from pathlib import Path
from typing import Any

from scaleseed.config import ScaleSeedConfig
from scaleseed.dates import utc_now_iso
from scaleseed.generators.organization import TAG_KEY
from scaleseed.models import CapabilitySnapshot, Manifest
from scaleseed.reports import manifest_basename, read_json, write_manifest

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "5a.3"


def build_manifest(
    cfg: ScaleSeedConfig,
    counts: dict[str, int],
    runtime_ms: int,
    caps: CapabilitySnapshot,
) -> Manifest:
    return Manifest(
        version=MANIFEST_VERSION,
        seed=cfg.seed,
        scale=cfg.scale,
        org_slug=cfg.org_slug,
        counts=dict(counts),
        runtime_ms=runtime_ms,
        skipped_tables=list(caps.missing_tables),
        detected_schema_hash=caps.schema_hash,
        required_indexes_present=list(caps.indexes_present),
        missing_indexes=list(caps.indexes_missing),
        created_at=utc_now_iso(),
    )


def tenant_payload(manifest: Manifest) -> dict[str, Any]:
    """Manifest as stored under the tenant's seed tag (keeps the lookup keys)."""
    return {**manifest.to_dict(), "status": "complete"}


def write_manifest_to_org(
    backend: Any, org_id: str, metadata_column: str | None, manifest: Manifest
) -> None:
    if metadata_column is None:
        logger.warning("organizations has no metadata column; manifest stored on disk only")
        return
    backend.merge_json("organizations", org_id, metadata_column, TAG_KEY, tenant_payload(manifest))


def write_manifest_to_disk(output_dir: Path, manifest: Manifest) -> Path:
    path = write_manifest(output_dir, manifest)
    logger.info(f"Manifest written to {path}")
    return path


def read_manifest(output_dir: Path, seed: int) -> Manifest | None:
    """
    Load the last manifest written for ``seed``.

    Returns:
        The manifest, or None if it is missing or unreadable
    """
    path = output_dir / f"{manifest_basename(seed)}.json"
    if not path.exists():
        return None
    try:
        return Manifest.from_dict(read_json(path))
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Could not read manifest {path}: {e}")
        return None
