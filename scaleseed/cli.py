"""CLI commands for scaleseed."""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

import click
import psycopg

from scaleseed.backends import DirectBackend, StagingBackend
from scaleseed.bench import BenchRunner, run_ladder
from scaleseed.cleanup import run_cleanup
from scaleseed.config import COUNT_FLAGS, BenchConfig, LadderConfig, ScaleSeedConfig, Settings
from scaleseed.exceptions import ScaleSeedError
from scaleseed.introspection import SchemaIntrospector
from scaleseed.orchestrator import run_seed
from scaleseed.progress import ProgressTracker, format_progress
from scaleseed.reports import write_cleanup_proof

logger = logging.getLogger(__name__)


class ElapsedFormatter(logging.Formatter):
    """Prefix each record with seconds since the formatter was created."""

    def __init__(self) -> None:
        super().__init__("%(message)s")
        self.started = time.monotonic()

    def format(self, record: logging.LogRecord) -> str:
        elapsed = time.monotonic() - self.started
        prefix = f"[{elapsed:.1f}s]"
        if record.levelno >= logging.WARNING:
            prefix += f" {record.levelname}"
        return f"{prefix} {super().format(record)}"


def configure_logging(level: str) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ElapsedFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def load_settings(
    config_path: str | None,
    database_url: str | None,
    report_dir: str | None,
    log_level: str | None,
) -> Settings:
    settings = Settings.from_toml(config_path) if config_path else Settings.find_and_load()
    if database_url:
        settings.database.url = database_url
    if report_dir:
        settings.reports.output_dir = report_dir
    if log_level:
        settings.logging.level = log_level
    configure_logging(settings.logging.level)
    return settings


@contextmanager
def connect(settings: Settings) -> Iterator[psycopg.Connection]:
    """Autocommit connection: every batch commits on its own."""
    with psycopg.connect(settings.database.url, autocommit=True) as conn:
        yield conn


def common_options(func: Callable) -> Callable:
    """Options shared by every data command (all taken as raw strings, parsed by config)."""
    options = [
        click.option("--seed", help="Seed (required positive integer)"),
        click.option("--scale", help="Multiplier for base counts (default 0.1)"),
        click.option("--orgSlug", "org_slug", help="Tenant slug prefix (default scale-seed)"),
        click.option("--batch", help="Rows per INSERT (default 5000)"),
        click.option("--strictSchema", "strict_schema", help="true|false"),
        click.option(
            "--databaseUrl", "database_url", envvar="DATABASE_URL", help="PostgreSQL URL"
        ),
        click.option("--config", "config_path", type=click.Path(), help="Path to scaleseed.toml"),
        click.option("--reportDir", "report_dir", help="Directory for reports and proofs"),
        click.option("--logLevel", "log_level", help="DEBUG, INFO, WARNING or ERROR"),
    ]
    options += [click.option(f"--{flag}", flag, help=f"Override {name}") for flag, name in COUNT_FLAGS.items()]
    for option in reversed(options):
        func = option(func)
    return func


def _split_overrides(kwargs: dict[str, Any]) -> dict[str, Any]:
    return {flag: kwargs.pop(flag) for flag in COUNT_FLAGS}


@click.group()
@click.version_option(package_name="scaleseed")
def cli() -> None:
    """scaleseed - deterministic scale seeding, benchmarks and cleanup proofs."""
    pass


@cli.command()
@common_options
@click.option("--dryRun", "dry_run", help="true to log targets without writing")
@click.option(
    "--backend",
    type=click.Choice(["direct", "staging"]),
    default="direct",
    help="direct writes to PostgreSQL; staging seeds in memory (no database)",
)
def seed(backend: str, **kwargs: Any) -> None:
    """Seed one deterministic tenant."""
    overrides = _split_overrides(kwargs)
    settings = load_settings(
        kwargs["config_path"], kwargs["database_url"], kwargs["report_dir"], kwargs["log_level"]
    )
    cfg = ScaleSeedConfig.from_options(
        seed=kwargs["seed"],
        scale=kwargs["scale"],
        org_slug=kwargs["org_slug"],
        batch=kwargs["batch"],
        strict_schema=kwargs["strict_schema"],
        dry_run=kwargs["dry_run"],
        overrides=overrides,
    )
    output_dir = settings.get_output_dir()
    progress = ProgressTracker(settings.get_progress_path())

    if cfg.dry_run:
        run_seed(cfg, None, None, output_dir)
        return

    if backend == "staging":
        staging = StagingBackend()
        manifest = run_seed(cfg, staging, staging, output_dir, progress)
    else:
        schema = settings.database.db_schema
        with connect(settings) as conn:
            manifest = run_seed(
                cfg, DirectBackend(conn, schema), SchemaIntrospector(conn, schema), output_dir, progress
            )

    click.echo(f"Seeded {manifest.total_rows} rows for seed {cfg.seed} ({manifest.detected_schema_hash})")


@cli.command()
@click.option("--seed", help="Seed of the tenant to remove")
@click.option("--orgSlug", "org_slug", help="Tenant slug prefix (default scale-seed)")
@click.option("--databaseUrl", "database_url", envvar="DATABASE_URL", help="PostgreSQL URL")
@click.option("--config", "config_path", type=click.Path(), help="Path to scaleseed.toml")
@click.option("--reportDir", "report_dir", help="Directory for reports and proofs")
@click.option("--logLevel", "log_level", help="DEBUG, INFO, WARNING or ERROR")
def cleanup(
    seed: str | None,
    org_slug: str | None,
    database_url: str | None,
    config_path: str | None,
    report_dir: str | None,
    log_level: str | None,
) -> None:
    """Delete a seeded tenant and write the zero-residue proof."""
    settings = load_settings(config_path, database_url, report_dir, log_level)
    cfg = ScaleSeedConfig.from_options(seed=seed, org_slug=org_slug)

    with connect(settings) as conn:
        proof = run_cleanup(conn, cfg.seed, cfg.org_slug, settings.database.db_schema)
    path = write_cleanup_proof(settings.get_output_dir(), proof)
    click.echo(f"Cleanup proof written to {path}")

    if proof.has_residue:
        click.echo("Error: residue remains after cleanup", err=True)
        sys.exit(1)


def _bench_options(kwargs: dict[str, Any]) -> dict[str, Any]:
    overrides = _split_overrides(kwargs)
    return {
        "seed": kwargs["seed"],
        "scale": kwargs["scale"],
        "org_slug": kwargs["org_slug"],
        "repeat": kwargs["repeat"],
        "batch": kwargs["batch"],
        "explain": kwargs["explain"],
        "dry_run": kwargs["dry_run"],
        "strict_schema": kwargs["strict_schema"],
        "overrides": overrides,
    }


def bench_options(func: Callable) -> Callable:
    func = click.option("--dryRun", "dry_run", help="true to log the plan without connecting")(func)
    func = click.option("--explain", help="Capture EXPLAIN ANALYZE plans (default true)")(func)
    func = click.option("--repeat", help="Iterations per scale")(func)
    return common_options(func)


@cli.command()
@bench_options
def bench(**kwargs: Any) -> None:
    """Benchmark seed runs against a fully migrated database."""
    bench_kwargs = _bench_options(kwargs)
    cfg = BenchConfig.from_options(**bench_kwargs)
    settings = load_settings(
        kwargs["config_path"], kwargs["database_url"], kwargs["report_dir"], kwargs["log_level"]
    )
    output_dir = settings.get_output_dir()
    progress = ProgressTracker(settings.get_progress_path())

    if cfg.dry_run:
        BenchRunner(None, output_dir, progress).run(cfg)
        return

    with connect(settings) as conn:
        result = BenchRunner(conn, output_dir, progress, settings.database.db_schema).run(cfg)
    click.echo(
        f"Bench complete: avg {result.avg_runtime_ms}ms, {result.avg_insert_rate} rows/sec"
    )


@cli.command()
@bench_options
@click.option("--maxScale", "max_scale", help="Highest ladder scale to run (default 1.0)")
def ladder(max_scale: str | None, **kwargs: Any) -> None:
    """Run the bench at increasing scales."""
    bench_kwargs = _bench_options(kwargs)
    cfg = LadderConfig.from_options(max_scale=max_scale, **bench_kwargs)
    settings = load_settings(
        kwargs["config_path"], kwargs["database_url"], kwargs["report_dir"], kwargs["log_level"]
    )
    output_dir = settings.get_output_dir()
    progress = ProgressTracker(settings.get_progress_path())

    if cfg.bench.dry_run:
        result = run_ladder(cfg, BenchRunner(None, output_dir, progress), output_dir)
    else:
        with connect(settings) as conn:
            runner = BenchRunner(conn, output_dir, progress, settings.database.db_schema)
            result = run_ladder(cfg, runner, output_dir)

    if result.stopped_reason:
        click.echo(f"Error: ladder stopped: {result.stopped_reason}", err=True)
        sys.exit(1)
    if result.failed:
        click.echo(f"Error: scales failed: {result.failed}", err=True)
        sys.exit(1)
    click.echo(f"Ladder complete: {result.succeeded}")


@cli.command()
@click.option("--config", "config_path", type=click.Path(), help="Path to scaleseed.toml")
@click.option("--reportDir", "report_dir", help="Directory for reports and proofs")
def progress(config_path: str | None, report_dir: str | None) -> None:
    """Show the checkpoint left by a running or failed seed/bench."""
    settings = load_settings(config_path, None, report_dir, None)
    state = ProgressTracker(settings.get_progress_path()).read()
    if state is None:
        click.echo("No run in progress")
        return
    click.echo(format_progress(state))


def main() -> None:
    """Entry point: every error exits 1 with the message on stderr."""
    try:
        cli(standalone_mode=False)
    except click.exceptions.Abort:
        click.echo("Aborted", err=True)
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except (ScaleSeedError, psycopg.Error, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
