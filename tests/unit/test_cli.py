"""Tests for the command-line interface."""

import json
import logging
import sys

import psycopg
import pytest
from click.testing import CliRunner

from scaleseed.cli import cli, main
from scaleseed.models import ProgressState
from scaleseed.progress import ProgressTracker

SMALL_FLAGS = [
    "--workspaceCount=2",
    "--userCount=6",
    "--projectCount=3",
    "--taskCount=30",
    "--depCount=10",
    "--evProjectCount=1",
    "--evSnapshotWeeks=2",
    "--capacityDays=7",
    "--attachmentsCount=5",
    "--auditCount=10",
]


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    """Run from an empty directory and restore root logging afterwards."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def no_database(monkeypatch):
    """Fail the test if anything tries to connect."""

    def refuse(*args, **kwargs):
        raise AssertionError("unexpected database connection")

    monkeypatch.setattr(psycopg, "connect", refuse)


def _main(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["scaleseed", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


class TestGuardrails:
    """Tests for refusals that happen before any connection."""

    def test_bench_refuses_non_strict(self, monkeypatch, capsys, no_database):
        code = _main(monkeypatch, "bench", "--seed=42", "--strictSchema=false")
        assert code == 1
        assert "BENCH_GUARDRAIL" in capsys.readouterr().err

    def test_ladder_refuses_non_strict(self, monkeypatch, capsys, no_database):
        code = _main(monkeypatch, "ladder", "--seed=42", "--strictSchema=false")
        assert code == 1
        assert "not allowed for ladder" in capsys.readouterr().err

    def test_seed_requires_seed(self, monkeypatch, capsys, no_database):
        code = _main(monkeypatch, "seed", "--scale=0.1")
        assert code == 1
        assert "--seed=<number> is required" in capsys.readouterr().err

    def test_bad_scale(self, monkeypatch, capsys, no_database):
        code = _main(monkeypatch, "seed", "--seed=42", "--scale=abc")
        assert code == 1
        assert "--scale must be a number" in capsys.readouterr().err

    def test_unknown_backend(self, monkeypatch, no_database):
        assert _main(monkeypatch, "seed", "--seed=42", "--backend=mongo") == 1


class TestSeedCommand:
    def test_staging_backend(self, tmp_path, no_database):
        report_dir = tmp_path / "reports"
        result = CliRunner().invoke(
            cli,
            ["seed", "--seed=42", "--backend=staging", f"--reportDir={report_dir}", *SMALL_FLAGS],
        )

        assert result.exit_code == 0, result.output
        assert "Seeded" in result.output
        manifest = json.loads((report_dir / "seed-manifest-seed-42.json").read_text())
        assert manifest["counts"]["work_tasks"] == 30
        assert not (report_dir / ".scale-seed-progress.json").exists()

    def test_dry_run(self, tmp_path, no_database):
        report_dir = tmp_path / "reports"
        result = CliRunner().invoke(
            cli, ["seed", "--seed=42", "--dryRun=true", f"--reportDir={report_dir}"]
        )
        assert result.exit_code == 0, result.output
        assert not report_dir.exists()

    def test_bench_dry_run(self, tmp_path, no_database):
        result = CliRunner().invoke(
            cli, ["bench", "--seed=42", "--dryRun=true", f"--reportDir={tmp_path / 'reports'}"]
        )
        assert result.exit_code == 0, result.output


class TestProgressCommand:
    def test_nothing_in_progress(self, tmp_path):
        result = CliRunner().invoke(cli, ["progress", f"--reportDir={tmp_path}"])
        assert result.exit_code == 0
        assert "No run in progress" in result.output

    def test_shows_checkpoint(self, tmp_path):
        tracker = ProgressTracker(tmp_path / ".scale-seed-progress.json")
        tracker.record_generator(ProgressState(command="seed", seed=7, scale=0.1, stage="generate"), "users", 50)

        result = CliRunner().invoke(cli, ["progress", f"--reportDir={tmp_path}"])
        assert result.exit_code == 0
        assert "Seed:         7" in result.output
        assert "users: 50 rows" in result.output


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    for command in ("seed", "cleanup", "bench", "ladder", "progress"):
        assert command in result.output
