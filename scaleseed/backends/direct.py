"""Direct INSERT backend - builds and executes SQL against PostgreSQL."""

import logging
from typing import Any, Sequence

import psycopg
from psycopg import Connection
from psycopg.types.json import Jsonb

from scaleseed.exceptions import DatabaseError
from scaleseed.models import BatchResult

logger = logging.getLogger(__name__)

# PostgreSQL's bind-parameter ceiling is 65535; keep a margin below it.
MAX_BIND_PARAMS = 65_000

# Log insert progress every N batches
LOG_EVERY_BATCHES = 10


def quote_ident(name: str) -> str:
    """Double-quote an identifier (keeps camelCase columns intact)."""
    return '"' + name.replace('"', '""') + '"'


def effective_batch_size(batch_size: int, column_count: int) -> int:
    """Cap rows per statement so ``rows * columns`` stays under MAX_BIND_PARAMS."""
    max_rows = max(1, MAX_BIND_PARAMS // max(1, column_count))
    return max(1, min(batch_size, max_rows))


def bulk_insert_sql(
    table: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    conflict_target: str | Sequence[str] | None = None,
    returning: str | None = None,
) -> tuple[str, list[Any]]:
    """
    Build one multi-row ``INSERT ... ON CONFLICT (...) DO NOTHING``.

    Args:
        table: Table expression, used verbatim
        columns: Column names, in row order
        rows: Row tuples matching ``columns``
        conflict_target: Column(s) for idempotent replay
        returning: Column to return for rows actually inserted

    Returns:
        (sql, params); ("", []) when there are no rows
    """
    if not rows:
        return "", []

    params: list[Any] = []
    single_placeholder = f"({', '.join(['%s'] * len(columns))})"
    for row in rows:
        params.extend(row)
    placeholders = ", ".join([single_placeholder] * len(rows))

    column_list = ", ".join(quote_ident(c) for c in columns)
    sql = f"INSERT INTO {table} ({column_list}) VALUES {placeholders}"

    if conflict_target:
        targets = [conflict_target] if isinstance(conflict_target, str) else list(conflict_target)
        sql += f" ON CONFLICT ({', '.join(quote_ident(t) for t in targets)}) DO NOTHING"

    if returning:
        sql += f" RETURNING {quote_ident(returning)}"

    return sql, params


def increment_upsert_sql(
    table: str,
    key_columns: Sequence[str],
    value_columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
) -> tuple[str, list[Any]]:
    """
    Build an additive upsert: new rows insert, existing rows get the incoming
    values added to their current counters.
    """
    if not rows:
        return "", []

    sql, params = bulk_insert_sql(table, [*key_columns, *value_columns], rows)
    keys = ", ".join(quote_ident(c) for c in key_columns)
    updates = ", ".join(
        f"{quote_ident(c)} = {table}.{quote_ident(c)} + EXCLUDED.{quote_ident(c)}"
        for c in value_columns
    )
    return f"{sql} ON CONFLICT ({keys}) DO UPDATE SET {updates}", params


def _adapt(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


class DirectBackend:
    """
    Execute seed writes using direct multi-row statements.

    Expects an autocommit connection: each statement is its own transaction,
    so a mid-run failure leaves every earlier batch in place.
    """

    def __init__(self, conn: Connection, schema: str = "public"):
        """
        Initialize backend.

        Args:
            conn: PostgreSQL connection (autocommit)
            schema: Schema name for qualified table names
        """
        self.conn = conn
        self.schema = schema

    def qualified(self, table: str) -> str:
        return f"{quote_ident(self.schema)}.{quote_ident(table)}"

    def batch_insert(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        batch_size: int,
        conflict_target: str | Sequence[str] | None = None,
        returning: str | None = None,
    ) -> BatchResult:
        """
        Insert rows in parameter-limit-safe chunks.

        Raises:
            DatabaseError: If any statement fails
        """
        result = BatchResult()
        if not rows or not columns:
            return result

        chunk_size = effective_batch_size(batch_size, len(columns))
        if chunk_size < batch_size:
            logger.debug(
                f"{table}: batch size capped at {chunk_size} rows ({len(columns)} columns)"
            )

        qualified = self.qualified(table)
        for batch_no, offset in enumerate(range(0, len(rows), chunk_size), start=1):
            chunk = [tuple(_adapt(v) for v in row) for row in rows[offset : offset + chunk_size]]
            sql, params = bulk_insert_sql(qualified, columns, chunk, conflict_target, returning)

            try:
                with self.conn.cursor() as cur:
                    cur.execute(sql, params)
                    if returning:
                        returned = [r[0] for r in cur.fetchall()]
                        result.returned.extend(returned)
                        result.inserted += len(returned)
                    else:
                        result.inserted += max(cur.rowcount, 0)
            except psycopg.Error as e:
                raise DatabaseError(table, e) from e

            result.attempted += len(chunk)
            if batch_no % LOG_EVERY_BATCHES == 0:
                logger.info(f"  {table}: {result.attempted}/{len(rows)} rows")

        return result

    def increment_upsert(
        self,
        table: str,
        key_columns: Sequence[str],
        value_columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        """Apply additive counter upserts; returns the number of rows touched."""
        sql, params = increment_upsert_sql(self.qualified(table), key_columns, value_columns, rows)
        if not sql:
            return 0
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                return max(cur.rowcount, 0)
        except psycopg.Error as e:
            raise DatabaseError(table, e) from e

    def merge_json(
        self, table: str, row_id: str, column: str, key: str, payload: dict[str, Any]
    ) -> None:
        """Merge ``{key: payload}`` into a jsonb column of one row."""
        col = quote_ident(column)
        sql = (
            f"UPDATE {self.qualified(table)} "
            f"SET {col} = COALESCE({col}, '{{}}'::jsonb) || jsonb_build_object(%s::text, %s::jsonb) "
            f'WHERE "id" = %s'
        )
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, (key, Jsonb(payload), row_id))
        except psycopg.Error as e:
            raise DatabaseError(table, e) from e
