"""Tests for settings and run configuration."""

import pytest

from scaleseed.config import (
    BASE_COUNTS,
    LADDER_SCALES,
    BenchConfig,
    LadderConfig,
    ScaleSeedConfig,
    Settings,
    scale_count,
)
from scaleseed.exceptions import ConfigError, SchemaGuardrailError


class TestScaleCount:
    def test_floor(self):
        assert scale_count(100_000, 0.1) == 10_000
        assert scale_count(50, 0.05) == 2

    def test_never_below_one(self):
        assert scale_count(50, 0.001) == 1


class TestScaleSeedConfig:
    """Tests for ScaleSeedConfig.from_options()."""

    def test_defaults(self):
        cfg = ScaleSeedConfig.from_options(seed="42")

        assert cfg.seed == 42
        assert cfg.scale == 0.1
        assert cfg.org_slug == "scale-seed"
        assert cfg.batch == 5000
        assert cfg.strict_schema is False
        assert cfg.dry_run is False
        assert cfg.task_count == 10_000
        assert cfg.workspace_count == 5
        assert cfg.ev_snapshot_weeks == 12
        assert cfg.capacity_days == 28

    def test_scale_applies_to_every_base_count(self):
        cfg = ScaleSeedConfig.from_options(seed=1, scale="1")
        for name, base in BASE_COUNTS.items():
            assert getattr(cfg, name) == base

    def test_overrides(self):
        cfg = ScaleSeedConfig.from_options(seed=1, overrides={"taskCount": "77", "capacityDays": 3})
        assert cfg.task_count == 77
        assert cfg.capacity_days == 3

    def test_missing_seed(self):
        with pytest.raises(ConfigError, match="--seed=<number> is required"):
            ScaleSeedConfig.from_options()

    @pytest.mark.parametrize("seed", ["0", "-3", "abc", "1.5"])
    def test_bad_seed(self, seed):
        with pytest.raises(ConfigError):
            ScaleSeedConfig.from_options(seed=seed)

    @pytest.mark.parametrize("scale", ["0", "-1", "nan", "big"])
    def test_bad_scale(self, scale):
        with pytest.raises(ConfigError):
            ScaleSeedConfig.from_options(seed=1, scale=scale)

    def test_bad_batch(self):
        with pytest.raises(ConfigError):
            ScaleSeedConfig.from_options(seed=1, batch="0")

    def test_bad_boolean(self):
        with pytest.raises(ConfigError, match="strictSchema"):
            ScaleSeedConfig.from_options(seed=1, strict_schema="maybe")

    def test_bad_override(self):
        with pytest.raises(ConfigError):
            ScaleSeedConfig.from_options(seed=1, overrides={"taskCount": "0"})
        with pytest.raises(ConfigError, match="Unknown"):
            ScaleSeedConfig.from_options(seed=1, overrides={"widgetCount": "3"})

    def test_frozen(self):
        cfg = ScaleSeedConfig.from_options(seed=1)
        with pytest.raises(Exception):
            cfg.seed = 2

    def test_org_tag(self):
        assert ScaleSeedConfig.from_options(seed=9, org_slug="acme").org_tag == "9:acme"


class TestBenchConfig:
    """Tests for the bench guardrail and defaults."""

    def test_defaults(self):
        cfg = BenchConfig.from_options(seed=42)
        assert cfg.repeat == 3
        assert cfg.explain is True
        assert cfg.strict_schema is True

    def test_refuses_non_strict(self):
        with pytest.raises(SchemaGuardrailError, match="^BENCH_GUARDRAIL"):
            BenchConfig.from_options(seed=42, strict_schema="false")

    def test_guardrail_checked_before_seed(self):
        """Test the guardrail fires even when other flags are also bad."""
        with pytest.raises(SchemaGuardrailError):
            BenchConfig.from_options(strict_schema="false")

    def test_explicit_strict_true_allowed(self):
        assert BenchConfig.from_options(seed=1, strict_schema="true").strict_schema

    def test_seed_config_is_strict(self):
        seed_cfg = BenchConfig.from_options(seed=5, scale="0.05").seed_config()
        assert seed_cfg.strict_schema is True
        assert seed_cfg.scale == 0.05
        assert seed_cfg.seed == 5


class TestLadderConfig:
    def test_default_scales(self):
        cfg = LadderConfig.from_options(seed=1)
        assert cfg.scales == list(LADDER_SCALES)
        assert cfg.bench.repeat == 1

    def test_max_scale_truncates(self):
        cfg = LadderConfig.from_options(seed=1, max_scale="0.1")
        assert cfg.scales == [0.01, 0.05, 0.1]

    def test_max_scale_below_first_rung(self):
        with pytest.raises(ConfigError):
            LadderConfig.from_options(seed=1, max_scale="0.001")

    def test_refuses_non_strict(self):
        with pytest.raises(SchemaGuardrailError, match="ladder"):
            LadderConfig.from_options(seed=1, strict_schema="false")


class TestSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        settings = Settings.find_and_load(tmp_path)
        assert settings.database.db_schema == "public"
        assert str(settings.get_output_dir()) == "reports/scale-seed"
        assert settings.get_progress_path().name == ".scale-seed-progress.json"

    def test_from_toml(self, tmp_path):
        config = tmp_path / "scaleseed.toml"
        config.write_text(
            '[database]\nurl = "postgresql://db/bench"\n\n[reports]\noutput_dir = "out"\n'
        )
        settings = Settings.find_and_load(tmp_path)
        assert settings.database.url == "postgresql://db/bench"
        assert settings.reports.output_dir == "out"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SCALESEED_DATABASE__URL", "postgresql://env/db")
        assert Settings().database.url == "postgresql://env/db"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_toml(tmp_path / "nope.toml")
