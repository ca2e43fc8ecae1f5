"""Proof artifacts: JSON documents and their Markdown renderings."""

import json
from pathlib import Path
from typing import Any

from scaleseed.models import BenchResult, CleanupProof, LadderResult, Manifest


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str) + "\n")
    return path


def write_markdown(path: Path, lines: list[str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
    return path


def read_json(path: Path) -> Any:
    return json.loads(path.read_text())


def scale_label(scale: float) -> str:
    """Scale as it appears in file names: 0.1 -> '0.1', 1.0 -> '1'."""
    return f"{scale:g}"


def manifest_basename(seed: int) -> str:
    return f"seed-manifest-seed-{seed}"


def bench_basename(seed: int, scale: float) -> str:
    return f"bench-seed-{seed}-scale-{scale_label(scale)}"


def manifest_markdown(manifest: Manifest) -> list[str]:
    lines = [
        f"# Seed Manifest (seed={manifest.seed}, scale={manifest.scale})",
        "",
        "| Field | Value |",
        "|-------|-------|",
        f"| Version | {manifest.version} |",
        f"| Org slug | {manifest.org_slug} |",
        f"| Runtime | {manifest.runtime_ms}ms |",
        f"| Total rows | {manifest.total_rows} |",
        f"| Schema hash | `{manifest.detected_schema_hash}` |",
        f"| Created | {manifest.created_at} |",
        "",
        "## Counts",
        "",
        "| Table | Rows |",
        "|-------|------|",
    ]
    lines.extend(f"| {table} | {count} |" for table, count in manifest.counts.items())

    if manifest.skipped_tables:
        lines += ["", "## Skipped Tables", ""]
        lines.extend(f"- {t}" for t in manifest.skipped_tables)

    lines += ["", "## Required Indexes", ""]
    lines.extend(f"- [x] {label}" for label in manifest.required_indexes_present)
    lines.extend(f"- [ ] {label}" for label in manifest.missing_indexes)
    return lines


def bench_markdown(result: BenchResult) -> list[str]:
    first = result.runs[0] if result.runs else None
    lines = [
        f"# Benchmark (seed={result.seed}, scale={result.scale})",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Iterations | {result.repeat} |",
        f"| Avg Runtime | {result.avg_runtime_ms}ms |",
        f"| Avg Insert Rate | {result.avg_insert_rate} rows/sec |",
        f"| Avg Memory RSS | {result.avg_memory_rss_mb}MB |",
        f"| Avg Heap Peak | {result.avg_heap_peak_mb}MB |",
        f"| Schema Hash | `{first.detected_schema_hash if first else 'N/A'}` |",
        "",
        "## Per-Iteration Results",
        "",
        "| # | Runtime (ms) | Rows/sec | RSS (MB) | Heap peak (MB) |",
        "|---|-------------|---------|---------|---------------|",
    ]
    for r in result.runs:
        lines.append(
            f"| {r.iteration} | {r.runtime_ms} | {r.insert_rate_rows_per_sec} "
            f"| {r.memory_rss_mb} | {r.heap_peak_mb} |"
        )

    if first and first.skipped_tables:
        lines += ["", "## Skipped Tables", ""]
        lines.extend(f"- {t}" for t in first.skipped_tables)

    if result.explain_plans:
        lines += [
            "",
            "## EXPLAIN Summary",
            "",
            "| Query | Planning (ms) | Execution (ms) | Rows | Index scan |",
            "|-------|--------------|----------------|------|------------|",
        ]
        for p in result.explain_plans:
            lines.append(
                f"| {p.name} | {p.planning_time_ms} | {p.execution_time_ms} | {p.rows} "
                f"| {'yes' if p.uses_index else 'no'} |"
            )
    return lines


def write_manifest(output_dir: Path, manifest: Manifest) -> Path:
    base = manifest_basename(manifest.seed)
    write_markdown(output_dir / f"{base}.md", manifest_markdown(manifest))
    return write_json(output_dir / f"{base}.json", manifest.to_dict())


def write_bench(output_dir: Path, result: BenchResult) -> Path:
    base = bench_basename(result.seed, result.scale)
    write_markdown(output_dir / f"{base}.md", bench_markdown(result))
    return write_json(output_dir / f"{base}.json", result.to_dict())


def write_cleanup_proof(output_dir: Path, proof: CleanupProof) -> Path:
    return write_json(output_dir / f"cleanup-proof-seed-{proof.seed}.json", proof.to_dict())


def write_ladder(output_dir: Path, result: LadderResult) -> tuple[Path, Path]:
    summary = write_json(output_dir / f"ladder-seed-{result.seed}.json", result.to_dict())
    proof = write_json(
        output_dir / f"ladder-resume-proof-seed-{result.seed}.json", result.resume_proof()
    )
    return summary, proof
