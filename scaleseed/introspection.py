"""Schema introspection: tables, columns, indexes and the schema hash."""

import hashlib
import logging
import re
from typing import Iterable, Mapping, Sequence

from psycopg import Connection

from scaleseed.models import CapabilitySnapshot, IndexSignature, RequiredIndex

logger = logging.getLogger(__name__)

# Composite indexes a benchmark depends on. Missing any of them under strict
# mode is fatal for seed/bench/ladder.
REQUIRED_BENCH_INDEXES: tuple[RequiredIndex, ...] = (
    RequiredIndex(
        "audit_events",
        ("organization_id", "created_at"),
        "Admin audit viewer: ORDER BY created_at DESC",
    ),
    RequiredIndex("work_tasks", ("project_id", "status", "rank"), "Board column query"),
    RequiredIndex(
        "work_task_dependencies",
        ("organization_id", "project_id"),
        "Gantt dependencies by project",
    ),
    RequiredIndex("projects", ("organization_id", "created_at"), "Project list by org"),
)

_USING_COLUMNS = re.compile(r"USING\s+\w+\s+\(([^)]+)\)", re.IGNORECASE)
_SORT_SUFFIX = re.compile(r"\s+(ASC|DESC)(\s+NULLS\s+(FIRST|LAST))?$", re.IGNORECASE)
_WHERE = re.compile(r"\bWHERE\s+(.+)$", re.IGNORECASE)
_UNIQUE = re.compile(r"UNIQUE\s+INDEX", re.IGNORECASE)


def parse_index_def(name: str, table: str, index_def: str) -> IndexSignature:
    """
    Parse a ``pg_indexes.indexdef`` string.

    Example:
        >>> sig = parse_index_def(
        ...     "idx", "audit_events",
        ...     'CREATE INDEX idx ON public.audit_events USING btree '
        ...     '(organization_id, created_at DESC)',
        ... )
        >>> sig.columns
        ['organization_id', 'created_at']
    """
    match = _USING_COLUMNS.search(index_def)
    raw_columns = match.group(1) if match else ""

    columns = []
    for raw in raw_columns.split(","):
        column = _SORT_SUFFIX.sub("", raw.strip())
        column = column.strip('"')
        if column:
            columns.append(column)

    where = _WHERE.search(index_def)
    return IndexSignature(
        name=name,
        table=table,
        columns=columns,
        is_unique=bool(_UNIQUE.search(index_def)),
        where_clause=where.group(1) if where else None,
    )


def index_covers_columns(
    indexes: Iterable[IndexSignature], required_cols: Sequence[str]
) -> bool:
    """True if some index has ``required_cols`` as its exact ordered leading prefix."""
    required = list(required_cols)
    for idx in indexes:
        if len(idx.columns) < len(required):
            continue
        if idx.columns[: len(required)] == required:
            return True
    return False


def compute_schema_hash(table_columns: Mapping[str, Iterable[str]]) -> str:
    """
    Hash table names and column sets, independent of iteration order.

    Returns:
        First 16 hex chars of SHA-1 over sorted ``table:col1,col2`` lines
    """
    lines = [
        f"{table}:{','.join(sorted(table_columns[table]))}"
        for table in sorted(table_columns)
    ]
    return hashlib.sha1("\n".join(lines).encode()).hexdigest()[:16]


class SchemaIntrospector:
    """Introspect a PostgreSQL schema with caching."""

    def __init__(self, conn: Connection, schema: str = "public"):
        self.conn = conn
        self.schema = schema
        self._column_cache: dict[str, set[str]] = {}
        self._index_cache: dict[str, list[IndexSignature]] = {}

    def table_exists(self, table: str) -> bool:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS(
                    SELECT 1 FROM information_schema.tables
                    WHERE table_schema = %s AND table_name = %s
                )
                """,
                (self.schema, table),
            )
            return bool(cur.fetchone()[0])

    def get_column_names(self, table: str) -> set[str]:
        """Get the column-name set for a table (cached)."""
        if table in self._column_cache:
            return self._column_cache[table]

        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT column_name
                FROM information_schema.columns
                WHERE table_schema = %s AND table_name = %s
                """,
                (self.schema, table),
            )
            columns = {row[0] for row in cur.fetchall()}

        self._column_cache[table] = columns
        return columns

    def get_indexes(self, table: str) -> list[IndexSignature]:
        """Get parsed index signatures for a table (cached)."""
        if table in self._index_cache:
            return self._index_cache[table]

        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT indexname, indexdef
                FROM pg_indexes
                WHERE schemaname = %s AND tablename = %s
                ORDER BY indexname
                """,
                (self.schema, table),
            )
            rows = cur.fetchall()

        indexes = [parse_index_def(row[0], table, row[1]) for row in rows]
        self._index_cache[table] = indexes
        return indexes

    def check_required_indexes(
        self, required: Sequence[RequiredIndex] = REQUIRED_BENCH_INDEXES
    ) -> tuple[list[RequiredIndex], list[RequiredIndex], dict[str, list[IndexSignature]]]:
        """
        Evaluate required indexes against live indexes.

        Returns:
            (present, missing, indexes_by_table). A requirement on an absent
            table is reported missing rather than raising.
        """
        present: list[RequiredIndex] = []
        missing: list[RequiredIndex] = []
        indexes_by_table: dict[str, list[IndexSignature]] = {}

        for req in required:
            if not self.table_exists(req.table):
                missing.append(req)
                continue
            if req.table not in indexes_by_table:
                indexes_by_table[req.table] = self.get_indexes(req.table)
            if index_covers_columns(indexes_by_table[req.table], req.columns):
                present.append(req)
            else:
                missing.append(req)

        return present, missing, indexes_by_table

    def snapshot(self, tables: Sequence[str]) -> CapabilitySnapshot:
        """Build the capability snapshot for the given seed tables."""
        table_columns: dict[str, frozenset[str]] = {}
        missing_tables: list[str] = []
        for table in tables:
            if self.table_exists(table):
                table_columns[table] = frozenset(self.get_column_names(table))
            else:
                missing_tables.append(table)

        present, missing, indexes_by_table = self.check_required_indexes()
        return CapabilitySnapshot(
            table_columns=table_columns,
            missing_tables=missing_tables,
            schema_hash=compute_schema_hash(table_columns),
            indexes_present=[r.label for r in present],
            indexes_missing=[r.label for r in missing],
            indexes_by_table=indexes_by_table,
        )

    def clear_cache(self) -> None:
        """Clear cached introspection data."""
        self._column_cache.clear()
        self._index_cache.clear()
