"""Tests for the direct INSERT backend."""

import psycopg
import pytest
from psycopg.types.json import Jsonb

from scaleseed.backends.direct import (
    MAX_BIND_PARAMS,
    DirectBackend,
    bulk_insert_sql,
    effective_batch_size,
    increment_upsert_sql,
    quote_ident,
)
from scaleseed.exceptions import DatabaseError


def test_quote_ident():
    assert quote_ident("createdAt") == '"createdAt"'
    assert quote_ident('we"ird') == '"we""ird"'


class TestEffectiveBatchSize:
    def test_small_batch_unchanged(self):
        assert effective_batch_size(5000, 10) == 5000

    def test_capped_by_bind_params(self):
        """Test rows * columns never exceeds the bind-parameter ceiling."""
        size = effective_batch_size(50_000, 18)
        assert size == MAX_BIND_PARAMS // 18
        assert size * 18 <= MAX_BIND_PARAMS

    def test_never_zero(self):
        assert effective_batch_size(1, 100_000) == 1


class TestBulkInsertSql:
    """Tests for bulk_insert_sql()."""

    def test_basic(self):
        sql, params = bulk_insert_sql('"public"."users"', ["id", "email"], [(1, "a"), (2, "b")])

        assert sql == 'INSERT INTO "public"."users" ("id", "email") VALUES (%s, %s), (%s, %s)'
        assert params == [1, "a", 2, "b"]

    def test_conflict_and_returning(self):
        sql, _ = bulk_insert_sql("t", ["id"], [(1,)], conflict_target="id", returning="id")
        assert sql.endswith(' ON CONFLICT ("id") DO NOTHING RETURNING "id"')

    def test_composite_conflict_target(self):
        sql, _ = bulk_insert_sql("t", ["a", "b"], [(1, 2)], conflict_target=["a", "b"])
        assert 'ON CONFLICT ("a", "b") DO NOTHING' in sql

    def test_empty(self):
        assert bulk_insert_sql("t", ["id"], []) == ("", [])


def test_increment_upsert_sql():
    sql, params = increment_upsert_sql(
        "usage", ["organization_id", "workspace_id"], ["used_bytes"], [("o", "w", 10)]
    )
    assert 'ON CONFLICT ("organization_id", "workspace_id") DO UPDATE SET' in sql
    assert '"used_bytes" = usage."used_bytes" + EXCLUDED."used_bytes"' in sql
    assert params == ["o", "w", 10]


class TestDirectBackend:
    """Tests for DirectBackend against a recording connection."""

    def test_chunks_by_batch_size(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: len(params) // 2)
        backend = DirectBackend(conn)
        rows = [(i, f"t{i}") for i in range(25)]

        result = backend.batch_insert("tasks", ["id", "title"], rows, batch_size=10, conflict_target="id")

        assert len(conn.executed) == 3
        assert result.attempted == 25
        assert result.inserted == 25
        assert conn.executed[0][0].startswith('INSERT INTO "public"."tasks"')

    def test_conflicting_rows_not_counted(self, fake_conn_factory):
        """Test inserted reflects rowcount, so replayed rows count zero."""
        conn = fake_conn_factory(lambda sql, params: 0)
        result = DirectBackend(conn).batch_insert("tasks", ["id"], [(1,), (2,)], 100, conflict_target="id")
        assert result.attempted == 2
        assert result.inserted == 0

    def test_returning_collects_values(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: [("a",)])
        result = DirectBackend(conn).batch_insert(
            "attachments", ["id"], [("a",), ("b",)], 100, conflict_target="id", returning="id"
        )
        assert result.returned == ["a"]
        assert result.inserted == 1

    def test_json_values_wrapped(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: 1)
        DirectBackend(conn).batch_insert("audit_events", ["id", "metadata_json"], [(1, {"k": 1})], 100)
        assert isinstance(conn.executed[0][1][1], Jsonb)

    def test_schema_qualified(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: 1)
        DirectBackend(conn, schema="bench").batch_insert("users", ["id"], [(1,)], 100)
        assert 'INTO "bench"."users"' in conn.executed[0][0]

    def test_database_error_wrapped(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: psycopg.errors.UndefinedColumn("no column"))
        with pytest.raises(DatabaseError, match="Query against 'tasks' failed") as exc_info:
            DirectBackend(conn).batch_insert("tasks", ["id"], [(1,)], 100)
        assert exc_info.value.table == "tasks"

    def test_no_rows_no_statement(self, fake_conn_factory):
        conn = fake_conn_factory()
        result = DirectBackend(conn).batch_insert("tasks", ["id"], [], 100)
        assert result.attempted == 0
        assert conn.executed == []

    def test_increment_upsert(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: 2)
        touched = DirectBackend(conn).increment_upsert(
            "workspace_storage_usage",
            ["organization_id", "workspace_id"],
            ["used_bytes", "reserved_bytes"],
            [("o", "w1", 5, 0), ("o", "w2", 0, 7)],
        )
        assert touched == 2
        assert "DO UPDATE SET" in conn.executed[0][0]

    def test_merge_json(self, fake_conn_factory):
        conn = fake_conn_factory(lambda sql, params: 1)
        DirectBackend(conn).merge_json("organizations", "org-1", "settings", "scaleSeed", {"seed": 1})

        sql, params = conn.executed[0]
        assert 'UPDATE "public"."organizations"' in sql
        assert "jsonb_build_object" in sql
        assert params[0] == "scaleSeed"
        assert params[2] == "org-1"
