"""Tests for manifests, checkpoints and report files."""

import json

from scaleseed.backends import StagingBackend
from scaleseed.generators import SEED_TABLES
from scaleseed.manifest import (
    MANIFEST_VERSION,
    build_manifest,
    read_manifest,
    tenant_payload,
    write_manifest_to_disk,
    write_manifest_to_org,
)
from scaleseed.models import LadderResult, LadderStep, ProgressState
from scaleseed.progress import ProgressTracker, format_progress
from scaleseed.reports import bench_basename, scale_label, write_ladder


def _manifest(cfg):
    caps = StagingBackend().snapshot(SEED_TABLES)
    return build_manifest(cfg, {"users": 12, "work_tasks": 120}, 1500, caps)


class TestManifest:
    def test_build(self, small_config):
        manifest = _manifest(small_config)
        assert manifest.version == MANIFEST_VERSION
        assert manifest.total_rows == 132
        assert manifest.org_slug == "scale-seed"
        assert manifest.created_at.endswith("+00:00")

    def test_camel_case_keys(self, small_config):
        data = _manifest(small_config).to_dict()
        assert {"orgSlug", "runtimeMs", "skippedTables", "detectedSchemaHash",
                "requiredIndexesPresent", "missingIndexes", "createdAt"} <= set(data)

    def test_tenant_payload_keeps_lookup_keys(self, small_config):
        payload = tenant_payload(_manifest(small_config))
        assert payload["seed"] == 42
        assert payload["orgSlug"] == "scale-seed"
        assert payload["status"] == "complete"

    def test_disk_round_trip(self, small_config, tmp_path):
        manifest = _manifest(small_config)
        path = write_manifest_to_disk(tmp_path, manifest)

        assert path.name == "seed-manifest-seed-42.json"
        assert read_manifest(tmp_path, 42) == manifest
        markdown = (tmp_path / "seed-manifest-seed-42.md").read_text()
        assert "| work_tasks | 120 |" in markdown

    def test_read_missing_or_corrupt(self, tmp_path):
        assert read_manifest(tmp_path, 7) is None
        (tmp_path / "seed-manifest-seed-7.json").write_text(json.dumps({"version": "x"}))
        assert read_manifest(tmp_path, 7) is None

    def test_write_to_org_without_column(self, small_config, staging, caplog):
        write_manifest_to_org(staging, "org", None, _manifest(small_config))
        assert "manifest stored on disk only" in caplog.text


class TestProgressTracker:
    """Tests for the checkpoint file."""

    def test_write_read_clear(self, tmp_path):
        tracker = ProgressTracker(tmp_path / "progress.json")
        state = ProgressState(command="seed", seed=1, scale=0.1, stage="generate")

        tracker.record_generator(state, "users", 12)
        loaded = tracker.read()

        assert loaded.stage == "generator_users"
        assert loaded.completed_generators[0].row_count == 12
        assert loaded.started_at
        tracker.clear()
        assert tracker.read() is None

    def test_started_at_preserved(self, tmp_path):
        tracker = ProgressTracker(tmp_path / "progress.json")
        state = ProgressState(command="bench", seed=1, scale=0.1, stage="iteration_1")
        tracker.write(state)
        started = state.started_at
        tracker.write(state)
        assert tracker.read().started_at == started

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "progress.json"
        path.write_text("{not json")
        assert ProgressTracker(path).read() is None

    def test_format(self):
        state = ProgressState(command="seed", seed=3, scale=0.5, stage="generator_tasks")
        state.completed_stages.append("generator_tasks")
        text = format_progress(state)
        assert "Seed:         3" in text
        assert "  - generator_tasks" in text


class TestReports:
    def test_scale_label(self):
        assert scale_label(0.1) == "0.1"
        assert scale_label(1.0) == "1"
        assert bench_basename(42, 0.25) == "bench-seed-42-scale-0.25"

    def test_write_ladder(self, tmp_path):
        result = LadderResult(
            seed=42,
            scales=[0.01, 0.05, 0.1],
            steps=[LadderStep(0.01, "ok", 100, 5000), LadderStep(0.05, "guardrail", error="drift")],
            stopped_reason="drift",
            created_at="2025-01-06T00:00:00+00:00",
        )
        summary, proof = write_ladder(tmp_path, result)

        assert summary.name == "ladder-seed-42.json"
        data = json.loads(proof.read_text())
        assert data["succeeded"] == [0.01]
        assert data["failed"] == [0.05]
        assert data["skipped"] == [0.1]
        assert data["stoppedReason"] == "drift"
