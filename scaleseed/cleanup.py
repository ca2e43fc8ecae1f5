"""Tenant cleanup with a zero-residue proof."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

import psycopg
from psycopg import Connection

from scaleseed.backends.direct import quote_ident
from scaleseed.dates import utc_now_iso
from scaleseed.generators.organization import METADATA_COLUMNS, TAG_KEY, org_id_for
from scaleseed.generators.users import user_email_pattern
from scaleseed.introspection import SchemaIntrospector
from scaleseed.models import QUERY_FAILED, TABLE_NOT_FOUND, CleanupProof

logger = logging.getLogger(__name__)

# Children before parents
CLEANUP_ORDER: tuple[str, ...] = (
    "audit_events",
    "workspace_storage_usage",
    "attachments",
    "workspace_member_capacity",
    "earned_value_snapshots",
    "schedule_baseline_items",
    "schedule_baselines",
    "work_task_dependencies",
    "work_tasks",
    "projects",
    "workspace_members",
    "workspaces",
    "user_organizations",
    "users",
    "organizations",
)

ORG_COLUMNS = ("organization_id", "organizationId")
LEGACY_TAG_KEY = "scaleSeedSeed"
USER_COLUMNS = ("user_id", "userId")

LOOKUP_TAG = "metadata_tag"
LOOKUP_LEGACY = "legacy_tag"
LOOKUP_DETERMINISTIC = "deterministic_id"


@dataclass
class Tenant:
    """The seeded tenant a cleanup run is scoped to."""

    org_id: str
    seed: int
    org_slug: str
    user_ids: list[str] = field(default_factory=list)


def compute_has_residue(residue: dict[str, int | str]) -> bool:
    """True if any table still has rows or could not be counted."""
    for value in residue.values():
        if value == QUERY_FAILED:
            return True
        if isinstance(value, int) and value > 0:
            return True
    return False


class CleanupRunner:
    """
    Delete one seeded tenant in reverse-FK order, then recount.

    Each statement runs on an autocommit connection, so a failure in one table
    is logged and the remaining tables are still processed.
    """

    def __init__(self, conn: Connection, schema: str = "public"):
        self.conn = conn
        self.schema = schema
        self.introspector = SchemaIntrospector(conn, schema)

    def qualified(self, table: str) -> str:
        return f"{quote_ident(self.schema)}.{quote_ident(table)}"

    def find_org(self, seed: int, org_slug: str) -> tuple[str, str]:
        """
        Locate the tenant id.

        Precedence: the ``scaleSeed`` tag (seed + orgSlug) in the metadata
        column; the legacy top-level ``scaleSeedSeed`` key only when no row
        carries that tag; otherwise the deterministic id for (seed, slug).

        Returns:
            (org_id, lookup method)
        """
        if self.introspector.table_exists("organizations"):
            columns = self.introspector.get_column_names("organizations")
            for column in (c for c in METADATA_COLUMNS if c in columns):
                col = quote_ident(column)
                ids = self._fetch_ids(
                    f"SELECT id FROM {self.qualified('organizations')} "
                    f"WHERE {col}->'{TAG_KEY}'->>'seed' = %s "
                    f"AND {col}->'{TAG_KEY}'->>'orgSlug' = %s ORDER BY id",
                    (str(seed), org_slug),
                )
                if ids:
                    if len(ids) > 1:
                        logger.warning(f"{len(ids)} organizations tagged with seed {seed}; using the first")
                    return ids[0], LOOKUP_TAG

            for column in (c for c in METADATA_COLUMNS if c in columns):
                ids = self._fetch_ids(
                    f"SELECT id FROM {self.qualified('organizations')} "
                    f"WHERE {quote_ident(column)}->>'{LEGACY_TAG_KEY}' = %s",
                    (str(seed),),
                )
                if ids:
                    return ids[0], LOOKUP_LEGACY

        return org_id_for(seed, org_slug), LOOKUP_DETERMINISTIC

    def _fetch_ids(self, sql: str, params: Sequence[Any]) -> list[str]:
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            return [str(row[0]) for row in cur.fetchall()]

    def org_column(self, table: str) -> str | None:
        columns = self.introspector.get_column_names(table)
        return next((c for c in ORG_COLUMNS if c in columns), None)

    def collect_user_ids(self, tenant: Tenant) -> list[str]:
        """
        User ids reachable through the tenant's membership rows.

        Only used to scope ``users`` when the table has no email column;
        otherwise users are matched by the seed's email pattern.
        """
        user_ids: set[str] = set()
        for table in ("user_organizations", "workspace_members"):
            if not self.introspector.table_exists(table):
                continue
            columns = self.introspector.get_column_names(table)
            user_column = next((c for c in USER_COLUMNS if c in columns), None)
            scope = self.scope(table, tenant)
            if scope is None or user_column is None:
                continue
            where, params = scope
            try:
                user_ids.update(
                    self._fetch_ids(
                        f"SELECT DISTINCT {quote_ident(user_column)} FROM {self.qualified(table)} WHERE {where}",
                        params,
                    )
                )
            except psycopg.Error as e:
                logger.warning(f"Could not collect users from {table}: {e}")
        return sorted(user_ids)

    def _parent_scope(self, fk: str, parent: str, tenant: Tenant) -> tuple[str, list[Any]] | None:
        org_column = self.org_column(parent)
        if org_column is None:
            return None
        return (
            f"{quote_ident(fk)} IN (SELECT id FROM {self.qualified(parent)} "
            f"WHERE {quote_ident(org_column)} = %s)",
            [tenant.org_id],
        )

    def scope(self, table: str, tenant: Tenant) -> tuple[str, list[Any]] | None:
        """WHERE clause and params selecting the tenant's rows in ``table``."""
        if table == "organizations":
            return "id = %s", [tenant.org_id]
        if table == "users":
            if "email" in self.introspector.get_column_names("users"):
                return "email LIKE %s", [user_email_pattern(tenant.seed, tenant.org_slug)]
            return "id::text = ANY(%s::text[])", [tenant.user_ids]
        if table == "schedule_baseline_items":
            return self._parent_scope("baseline_id", "schedule_baselines", tenant)
        if table == "workspace_members":
            return self._parent_scope("workspace_id", "workspaces", tenant)

        org_column = self.org_column(table)
        if org_column is None:
            return None
        return f"{quote_ident(org_column)} = %s", [tenant.org_id]

    def delete_table(self, table: str, tenant: Tenant) -> int | str:
        if not self.introspector.table_exists(table):
            return TABLE_NOT_FOUND
        scope = self.scope(table, tenant)
        if scope is None:
            logger.warning(f"{table}: no organization column, cannot scope delete")
            return QUERY_FAILED
        where, params = scope
        try:
            with self.conn.cursor() as cur:
                cur.execute(f"DELETE FROM {self.qualified(table)} WHERE {where}", params)
                return max(cur.rowcount, 0)
        except psycopg.Error as e:
            logger.error(f"Delete from {table} failed: {e}")
            return QUERY_FAILED

    def count_table(self, table: str, tenant: Tenant) -> int | str:
        if not self.introspector.table_exists(table):
            return TABLE_NOT_FOUND
        scope = self.scope(table, tenant)
        if scope is None:
            return QUERY_FAILED
        where, params = scope
        try:
            with self.conn.cursor() as cur:
                cur.execute(f"SELECT COUNT(*) FROM {self.qualified(table)} WHERE {where}", params)
                return int(cur.fetchone()[0])
        except psycopg.Error as e:
            logger.error(f"Residue count on {table} failed: {e}")
            return QUERY_FAILED

    def run(self, seed: int, org_slug: str) -> CleanupProof:
        started = time.perf_counter()
        org_id, lookup = self.find_org(seed, org_slug)
        logger.info(f"Cleanup seed={seed} org={org_id} (found by {lookup})")

        tenant = Tenant(org_id, seed, org_slug)
        tenant.user_ids.extend(self.collect_user_ids(tenant))
        deleted: dict[str, int | str] = {}
        for table in CLEANUP_ORDER:
            deleted[table] = self.delete_table(table, tenant)
            logger.info(f"  {table}: {deleted[table]}")

        residue = {table: self.count_table(table, tenant) for table in CLEANUP_ORDER}
        has_residue = compute_has_residue(residue)
        if has_residue:
            leftovers = {t: v for t, v in residue.items() if v not in (0, TABLE_NOT_FOUND)}
            logger.error(f"Residue after cleanup: {leftovers}")
        else:
            logger.info("Zero residue")

        return CleanupProof(
            seed=seed,
            org_slug=org_slug,
            org_id=org_id,
            lookup=lookup,
            deleted=deleted,
            residue=residue,
            has_residue=has_residue,
            runtime_ms=int((time.perf_counter() - started) * 1000),
            created_at=utc_now_iso(),
        )


def run_cleanup(conn: Connection, seed: int, org_slug: str, schema: str = "public") -> CleanupProof:
    return CleanupRunner(conn, schema).run(seed, org_slug)
