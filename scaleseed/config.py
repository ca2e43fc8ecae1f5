"""
Configuration management for scaleseed.

Two layers:
- ``Settings``: where to connect and where to write reports, loaded from the
  environment (``SCALESEED_*``) and optionally from a scaleseed.toml file.
- ``ScaleSeedConfig`` / ``BenchConfig`` / ``LadderConfig``: one run's
  parameters, resolved from command-line flags and frozen once parsed.
"""

from __future__ import annotations

import math
import sys
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from scaleseed.exceptions import ConfigError, SchemaGuardrailError

CONFIG_FILENAME = "scaleseed.toml"


class DatabaseConfig(BaseSettings):
    """Database connection configuration."""

    url: str = Field(
        default="postgresql://localhost/scaleseed",
        description="PostgreSQL connection URL",
    )
    db_schema: str = Field(default="public", description="Schema holding the business tables")


class ReportsConfig(BaseSettings):
    """Where proof artifacts are written."""

    output_dir: str = Field(
        default="reports/scale-seed",
        description="Directory for manifests, bench reports, plans and proofs",
    )
    progress_file: str = Field(
        default=".scale-seed-progress.json",
        description="Checkpoint file name, relative to output_dir",
    )


class LoggingConfig(BaseSettings):
    level: str = Field(default="INFO", description="Root log level")


class Settings(BaseSettings):
    """Main settings for scaleseed."""

    model_config = SettingsConfigDict(env_prefix="SCALESEED_", env_nested_delimiter="__")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_toml(cls, path: Path | str) -> Settings:
        """
        Load settings from a TOML file.

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def find_and_load(cls, start_dir: Optional[Path] = None) -> Settings:
        """
        Load scaleseed.toml from ``start_dir`` or the nearest parent directory.

        Falls back to environment/default settings when no file exists.
        """
        current = Path(start_dir or Path.cwd()).resolve()

        while True:
            config_path = current / CONFIG_FILENAME
            if config_path.exists():
                return cls.from_toml(config_path)

            parent = current.parent
            if parent == current:
                break
            current = parent

        return cls()

    def get_output_dir(self) -> Path:
        return Path(self.reports.output_dir)

    def get_progress_path(self) -> Path:
        return self.get_output_dir() / self.reports.progress_file


# ─── Scale math ───────────────────────────────────────────────

# Row counts at scale=1.0
BASE_COUNTS: dict[str, int] = {
    "workspace_count": 50,
    "user_count": 500,
    "project_count": 1_000,
    "task_count": 100_000,
    "dep_count": 50_000,
    "ev_project_count": 200,
    "attachments_count": 20_000,
    "audit_count": 200_000,
}

# Calendar lengths, not scaled
UNSCALED_DEFAULTS: dict[str, int] = {
    "ev_snapshot_weeks": 12,
    "capacity_days": 28,
}

# Command-line flag name -> config field
COUNT_FLAGS: dict[str, str] = {
    "workspaceCount": "workspace_count",
    "userCount": "user_count",
    "projectCount": "project_count",
    "taskCount": "task_count",
    "depCount": "dep_count",
    "evProjectCount": "ev_project_count",
    "evSnapshotWeeks": "ev_snapshot_weeks",
    "capacityDays": "capacity_days",
    "attachmentsCount": "attachments_count",
    "auditCount": "audit_count",
}

DEFAULT_SCALE = 0.1
DEFAULT_ORG_SLUG = "scale-seed"
DEFAULT_BATCH = 5_000
DEFAULT_REPEAT = 3
LADDER_SCALES: tuple[float, ...] = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0)


def scale_count(base: int, scale: float) -> int:
    """Scale a base count, floor to integer, never below 1."""
    return max(1, math.floor(base * scale))


# ─── Flag parsing ─────────────────────────────────────────────


def _parse_int(name: str, raw: Any, *, positive: bool = True) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"--{name} must be an integer, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"--{name} must be an integer, got {raw!r}") from None
    if positive and value <= 0:
        raise ConfigError(f"--{name} must be a positive integer, got {value}")
    return value


def _parse_float(name: str, raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"--{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"--{name} must be a positive number, got {raw!r}")
    return value


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise ConfigError(f"--{name} must be true or false, got {raw!r}")


def _parse_count_overrides(overrides: dict[str, Any] | None) -> dict[str, int]:
    parsed: dict[str, int] = {}
    for flag, raw in (overrides or {}).items():
        if raw is None:
            continue
        field_name = COUNT_FLAGS.get(flag, flag)
        if field_name not in BASE_COUNTS and field_name not in UNSCALED_DEFAULTS:
            raise ConfigError(f"Unknown count override --{flag}")
        parsed[field_name] = _parse_int(flag, raw)
    return parsed


class ScaleSeedConfig(BaseModel):
    """Parameters of one seed run. Immutable once parsed."""

    model_config = ConfigDict(frozen=True)

    seed: int = Field(gt=0)
    scale: float = Field(default=DEFAULT_SCALE, gt=0)
    org_slug: str = DEFAULT_ORG_SLUG
    batch: int = Field(default=DEFAULT_BATCH, gt=0)
    strict_schema: bool = False
    dry_run: bool = False

    workspace_count: int = Field(gt=0)
    user_count: int = Field(gt=0)
    project_count: int = Field(gt=0)
    task_count: int = Field(gt=0)
    dep_count: int = Field(gt=0)
    ev_project_count: int = Field(gt=0)
    ev_snapshot_weeks: int = Field(gt=0)
    capacity_days: int = Field(gt=0)
    attachments_count: int = Field(gt=0)
    audit_count: int = Field(gt=0)

    @classmethod
    def from_options(
        cls,
        seed: Any = None,
        scale: Any = None,
        org_slug: Any = None,
        batch: Any = None,
        strict_schema: Any = None,
        dry_run: Any = None,
        overrides: dict[str, Any] | None = None,
    ) -> ScaleSeedConfig:
        """
        Resolve a config from raw flag values.

        Args:
            seed: Required positive integer
            scale: Multiplier for BASE_COUNTS (default 0.1)
            org_slug: Tenant slug prefix (default "scale-seed")
            batch: Requested rows per INSERT (default 5000)
            strict_schema: Fail on missing tables/indexes (default false)
            dry_run: Log targets only (default false)
            overrides: Count overrides keyed by flag name (e.g. "taskCount")

        Raises:
            ConfigError: On any missing or malformed value
        """
        if seed is None or seed == "":
            raise ConfigError("--seed=<number> is required")

        resolved_scale = DEFAULT_SCALE if scale is None else _parse_float("scale", scale)
        counts = {name: scale_count(base, resolved_scale) for name, base in BASE_COUNTS.items()}
        counts.update(UNSCALED_DEFAULTS)
        counts.update(_parse_count_overrides(overrides))

        try:
            return cls(
                seed=_parse_int("seed", seed),
                scale=resolved_scale,
                org_slug=str(org_slug) if org_slug else DEFAULT_ORG_SLUG,
                batch=DEFAULT_BATCH if batch is None else _parse_int("batch", batch),
                strict_schema=False if strict_schema is None else _parse_bool("strictSchema", strict_schema),
                dry_run=False if dry_run is None else _parse_bool("dryRun", dry_run),
                **counts,
            )
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid seed configuration: {e}") from None

    @property
    def org_tag(self) -> str:
        """Key used to derive the tenant id: '<seed>:<org_slug>'."""
        return f"{self.seed}:{self.org_slug}"

    def targets(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in (*BASE_COUNTS, *UNSCALED_DEFAULTS)}


def _refuse_non_strict(command: str, strict_schema: Any) -> None:
    if strict_schema is not None and not _parse_bool("strictSchema", strict_schema):
        raise SchemaGuardrailError(
            "BENCH_GUARDRAIL",
            f"--strictSchema=false is not allowed for {command}. Benchmarks must run "
            f"against a fully migrated database.",
            "1. Drop the --strictSchema flag (strict mode is always on)\n"
            "2. Use `scaleseed seed --strictSchema=false` for flexible seeding",
        )


class BenchConfig(BaseModel):
    """Parameters of a benchmark run. Strict schema is always on."""

    model_config = ConfigDict(frozen=True)

    seed: int = Field(gt=0)
    scale: float = Field(default=DEFAULT_SCALE, gt=0)
    org_slug: str = DEFAULT_ORG_SLUG
    repeat: int = Field(default=DEFAULT_REPEAT, gt=0)
    batch: int = Field(default=DEFAULT_BATCH, gt=0)
    explain: bool = True
    dry_run: bool = False
    strict_schema: bool = True
    overrides: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_options(
        cls,
        seed: Any = None,
        scale: Any = None,
        org_slug: Any = None,
        repeat: Any = None,
        batch: Any = None,
        explain: Any = None,
        dry_run: Any = None,
        strict_schema: Any = None,
        overrides: dict[str, Any] | None = None,
        command: str = "bench",
    ) -> BenchConfig:
        """
        Resolve a bench config from raw flag values.

        Raises:
            SchemaGuardrailError: If --strictSchema=false was passed (checked first,
                before anything touches the database)
            ConfigError: On any missing or malformed value
        """
        _refuse_non_strict(command, strict_schema)
        if seed is None or seed == "":
            raise ConfigError("--seed=<number> is required")

        try:
            return cls(
                seed=_parse_int("seed", seed),
                scale=DEFAULT_SCALE if scale is None else _parse_float("scale", scale),
                org_slug=str(org_slug) if org_slug else DEFAULT_ORG_SLUG,
                repeat=DEFAULT_REPEAT if repeat is None else _parse_int("repeat", repeat),
                batch=DEFAULT_BATCH if batch is None else _parse_int("batch", batch),
                explain=True if explain is None else _parse_bool("explain", explain),
                dry_run=False if dry_run is None else _parse_bool("dryRun", dry_run),
                overrides=_parse_count_overrides(overrides),
            )
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid bench configuration: {e}") from None

    def seed_config(self, scale: float | None = None) -> ScaleSeedConfig:
        """Seed config for one iteration, always strict."""
        return ScaleSeedConfig.from_options(
            seed=self.seed,
            scale=self.scale if scale is None else scale,
            org_slug=self.org_slug,
            batch=self.batch,
            strict_schema=True,
            overrides=self.overrides,
        )

    def at_scale(self, scale: float) -> BenchConfig:
        return self.model_copy(update={"scale": scale})


class LadderConfig(BaseModel):
    """Parameters of a scale-ladder sweep."""

    model_config = ConfigDict(frozen=True)

    bench: BenchConfig
    max_scale: float = Field(default=LADDER_SCALES[-1], gt=0)

    @classmethod
    def from_options(cls, max_scale: Any = None, **bench_options: Any) -> LadderConfig:
        if bench_options.get("repeat") is None:
            bench_options["repeat"] = 1
        bench = BenchConfig.from_options(command="ladder", **bench_options)
        resolved_max = LADDER_SCALES[-1] if max_scale is None else _parse_float("maxScale", max_scale)
        if resolved_max < LADDER_SCALES[0]:
            raise ConfigError(
                f"--maxScale must be at least {LADDER_SCALES[0]}, got {resolved_max}"
            )
        return cls(bench=bench, max_scale=resolved_max)

    @property
    def scales(self) -> list[float]:
        return [s for s in LADDER_SCALES if s <= self.max_scale]
