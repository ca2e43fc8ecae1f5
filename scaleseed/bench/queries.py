"""EXPLAIN ANALYZE proof for the hot read paths the required indexes serve."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from psycopg import Connection, sql

from scaleseed.models import ExplainResult
from scaleseed.reports import scale_label

logger = logging.getLogger(__name__)

_PLANNING = re.compile(r"Planning Time:\s*([\d.]+)\s*ms")
_EXECUTION = re.compile(r"Execution Time:\s*([\d.]+)\s*ms")
_ROWS = re.compile(r"rows=(\d+)")
_INDEX_SCAN = re.compile(r"\b(Index Scan|Index Only Scan|Bitmap Index Scan)\b")

QueryBuilder = Callable[[str, str, str], sql.Composed]


@dataclass(frozen=True)
class BenchQuery:
    """
    One representative read query.

    ``build(schema, org_id, project_id)`` returns the statement with literal
    values inlined, so the planner sees real constants.
    """

    name: str
    table: str
    expected_index: str
    build: QueryBuilder


def _table(schema: str, table: str) -> sql.Identifier:
    return sql.Identifier(schema, table)


BENCH_QUERIES: tuple[BenchQuery, ...] = (
    BenchQuery(
        "board_column",
        "work_tasks",
        "work_tasks(project_id,status,rank)",
        lambda schema, org_id, project_id: sql.SQL(
            "SELECT id, title, rank FROM {} WHERE project_id = {} AND status = 'IN_PROGRESS' "
            "ORDER BY rank LIMIT 50"
        ).format(_table(schema, "work_tasks"), sql.Literal(project_id)),
    ),
    BenchQuery(
        "project_task_list",
        "work_tasks",
        "work_tasks(project_id,status,rank)",
        lambda schema, org_id, project_id: sql.SQL(
            "SELECT id, title, status, rank FROM {} WHERE project_id = {} "
            "ORDER BY status, rank LIMIT 200"
        ).format(_table(schema, "work_tasks"), sql.Literal(project_id)),
    ),
    BenchQuery(
        "dependency_list",
        "work_task_dependencies",
        "work_task_dependencies(organization_id,project_id)",
        lambda schema, org_id, project_id: sql.SQL(
            "SELECT id, predecessor_task_id, successor_task_id, type FROM {} "
            "WHERE organization_id = {} AND project_id = {}"
        ).format(
            _table(schema, "work_task_dependencies"), sql.Literal(org_id), sql.Literal(project_id)
        ),
    ),
    BenchQuery(
        "audit_log_page",
        "audit_events",
        "audit_events(organization_id,created_at)",
        lambda schema, org_id, project_id: sql.SQL(
            "SELECT id, action, entity_type, entity_id, created_at FROM {} "
            "WHERE organization_id = {} ORDER BY created_at DESC LIMIT 50"
        ).format(_table(schema, "audit_events"), sql.Literal(org_id)),
    ),
    BenchQuery(
        "project_list",
        "projects",
        "projects(organization_id,created_at)",
        lambda schema, org_id, project_id: sql.SQL(
            "SELECT id, name, status FROM {} WHERE organization_id = {} "
            "ORDER BY created_at DESC LIMIT 50"
        ).format(_table(schema, "projects"), sql.Literal(org_id)),
    ),
)


def parse_explain(plan_text: str) -> tuple[float | None, float | None, int | None, bool]:
    """
    Pull the headline numbers out of ``EXPLAIN (ANALYZE, FORMAT TEXT)`` output.

    Returns:
        (planning ms, execution ms, estimated rows of the top node, index scan used)
    """
    planning = _PLANNING.search(plan_text)
    execution = _EXECUTION.search(plan_text)
    rows = _ROWS.search(plan_text)
    return (
        float(planning.group(1)) if planning else None,
        float(execution.group(1)) if execution else None,
        int(rows.group(1)) if rows else None,
        bool(_INDEX_SCAN.search(plan_text)),
    )


def run_explain_analyze(
    conn: Connection,
    org_id: str,
    project_id: str,
    schema: str = "public",
    present_tables: set[str] | None = None,
) -> list[ExplainResult]:
    """
    ANALYZE the queried tables, then EXPLAIN ANALYZE every catalog query.

    Queries against a table outside ``present_tables`` are skipped.
    """
    queries = [
        q for q in BENCH_QUERIES if present_tables is None or q.table in present_tables
    ]
    for skipped in (q for q in BENCH_QUERIES if q not in queries):
        logger.info(f"  SKIP {skipped.name}: {skipped.table} not in DB")

    with conn.cursor() as cur:
        for table in sorted({q.table for q in queries}):
            cur.execute(sql.SQL("ANALYZE {}").format(_table(schema, table)))

    results = []
    for query in queries:
        statement = sql.SQL("EXPLAIN (ANALYZE, BUFFERS, FORMAT TEXT) {}").format(
            query.build(schema, org_id, project_id)
        )
        with conn.cursor() as cur:
            cur.execute(statement)
            plan_text = "\n".join(row[0] for row in cur.fetchall())

        planning, execution, rows, uses_index = parse_explain(plan_text)
        results.append(
            ExplainResult(
                name=query.name,
                table=query.table,
                expected_index=query.expected_index,
                planning_time_ms=planning,
                execution_time_ms=execution,
                rows=rows,
                uses_index=uses_index,
                plan_text=plan_text,
            )
        )
        logger.info(
            f"  {query.name}: planning={planning}ms execution={execution}ms "
            f"rows={rows} index={'yes' if uses_index else 'no'}"
        )
        if not uses_index:
            logger.warning(f"  {query.name}: no index scan (expected {query.expected_index})")

    return results


def explain_dir(output_dir: Path, seed: int, scale: float) -> Path:
    return output_dir / "explain" / f"seed-{seed}-scale-{scale_label(scale)}"


def write_explain_plans(
    output_dir: Path, results: list[ExplainResult], seed: int, scale: float
) -> Path:
    directory = explain_dir(output_dir, seed, scale)
    directory.mkdir(parents=True, exist_ok=True)
    for result in results:
        header = f"-- {result.name} (expected index: {result.expected_index})\n"
        (directory / f"{result.name}.txt").write_text(header + result.plan_text + "\n")
    return directory
