"""Staging backend - in-memory backend for seeding without a database."""

from typing import Any, Sequence

from scaleseed.introspection import (
    REQUIRED_BENCH_INDEXES,
    compute_schema_hash,
    index_covers_columns,
)
from scaleseed.models import BatchResult, CapabilitySnapshot, IndexSignature

# Column layout of a fully migrated target schema.
REFERENCE_LAYOUT: dict[str, list[str]] = {
    "organizations": ["id", "name", "slug", "settings", "created_at", "updated_at"],
    "users": [
        "id", "email", "first_name", "last_name", "password", "role",
        "is_email_verified", "created_at", "updated_at",
    ],
    "user_organizations": ["id", "user_id", "organization_id", "role", "is_active", "joined_at", "created_at"],
    "workspaces": ["id", "organization_id", "name", "slug", "description", "created_by", "created_at", "updated_at"],
    "workspace_members": ["id", "workspace_id", "user_id", "role", "created_at"],
    "projects": [
        "id", "organization_id", "workspace_id", "name", "description", "status",
        "start_date", "end_date", "budget", "created_by_id", "created_at", "updated_at",
    ],
    "work_tasks": [
        "id", "organization_id", "workspace_id", "project_id", "title", "description",
        "status", "type", "priority", "assignee_user_id", "reporter_user_id",
        "start_date", "due_date", "completed_at", "rank", "estimate_hours",
        "created_at", "updated_at",
    ],
    "work_task_dependencies": [
        "id", "organization_id", "workspace_id", "project_id", "predecessor_task_id",
        "successor_task_id", "type", "created_by_user_id", "created_at",
    ],
    "schedule_baselines": ["id", "organization_id", "project_id", "name", "is_active", "created_by", "created_at"],
    "schedule_baseline_items": [
        "id", "baseline_id", "task_id", "planned_start_at", "planned_end_at", "duration_days", "created_at",
    ],
    "earned_value_snapshots": [
        "id", "organization_id", "project_id", "snapshot_date", "bac", "pv", "ev", "ac",
        "cpi", "spi", "eac", "etc", "vac", "created_at",
    ],
    "workspace_member_capacity": [
        "id", "organization_id", "workspace_id", "user_id", "date", "capacity_hours", "created_at",
    ],
    "attachments": [
        "id", "organization_id", "workspace_id", "parent_type", "parent_id", "file_name",
        "mime_type", "size_bytes", "storage_key", "status", "uploader_user_id", "created_at",
    ],
    "workspace_storage_usage": ["organization_id", "workspace_id", "used_bytes", "reserved_bytes", "updated_at"],
    "audit_events": [
        "id", "organization_id", "workspace_id", "actor_user_id", "entity_type",
        "entity_id", "action", "metadata_json", "created_at",
    ],
}


def reference_indexes() -> dict[str, list[IndexSignature]]:
    """Indexes covering every required benchmark index."""
    indexes: dict[str, list[IndexSignature]] = {}
    for req in REQUIRED_BENCH_INDEXES:
        name = f"idx_{req.table}_{'_'.join(req.columns)}"
        indexes.setdefault(req.table, []).append(
            IndexSignature(name=name, table=req.table, columns=list(req.columns))
        )
    return indexes


class StagingBackend:
    """
    In-memory backend for seeding without a database.

    Simulates the database behaviour the generators rely on:
    - ``ON CONFLICT DO NOTHING`` for the given conflict target
    - additive counter upserts
    - jsonb merges into a metadata column

    Use case: fast unit tests, offline dry runs of the generators.
    """

    def __init__(
        self,
        layout: dict[str, list[str]] | None = None,
        indexes: dict[str, list[IndexSignature]] | None = None,
    ):
        """
        Initialize staging backend with an empty store.

        Args:
            layout: table -> columns of the simulated schema (default: REFERENCE_LAYOUT)
            indexes: table -> index signatures (default: reference_indexes())
        """
        self.layout = dict(REFERENCE_LAYOUT if layout is None else layout)
        self.indexes = reference_indexes() if indexes is None else indexes
        self._data: dict[str, list[dict[str, Any]]] = {}
        self._keys: dict[tuple[str, tuple[str, ...]], set[tuple[Any, ...]]] = {}

    def snapshot(self, tables: Sequence[str]) -> CapabilitySnapshot:
        """Capability snapshot of the simulated schema."""
        table_columns = {t: frozenset(self.layout[t]) for t in tables if t in self.layout}
        missing_tables = [t for t in tables if t not in self.layout]

        present, missing = [], []
        indexes_by_table: dict[str, list[IndexSignature]] = {}
        for req in REQUIRED_BENCH_INDEXES:
            table_indexes = self.indexes.get(req.table, []) if req.table in self.layout else []
            if req.table in self.layout:
                indexes_by_table[req.table] = table_indexes
            if index_covers_columns(table_indexes, req.columns):
                present.append(req.label)
            else:
                missing.append(req.label)

        return CapabilitySnapshot(
            table_columns=table_columns,
            missing_tables=missing_tables,
            schema_hash=compute_schema_hash(table_columns),
            indexes_present=present,
            indexes_missing=missing,
            indexes_by_table=indexes_by_table,
        )

    def batch_insert(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        batch_size: int,
        conflict_target: str | Sequence[str] | None = None,
        returning: str | None = None,
    ) -> BatchResult:
        """Store rows in memory, skipping rows whose conflict key already exists."""
        result = BatchResult(attempted=len(rows))
        if not rows:
            return result

        targets: tuple[str, ...] = ()
        if conflict_target:
            targets = (conflict_target,) if isinstance(conflict_target, str) else tuple(conflict_target)
        seen = self._keys.setdefault((table, targets), set())
        stored = self._data.setdefault(table, [])

        for row in rows:
            record = dict(zip(columns, row))
            if targets:
                key = tuple(record.get(t) for t in targets)
                if key in seen:
                    continue
                seen.add(key)
            stored.append(record)
            result.inserted += 1
            if returning:
                result.returned.append(record.get(returning))

        return result

    def increment_upsert(
        self,
        table: str,
        key_columns: Sequence[str],
        value_columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        stored = self._data.setdefault(table, [])
        by_key = {tuple(r[k] for k in key_columns): r for r in stored}
        for row in rows:
            key = tuple(row[: len(key_columns)])
            values = row[len(key_columns) :]
            existing = by_key.get(key)
            if existing is None:
                record = dict(zip([*key_columns, *value_columns], row))
                stored.append(record)
                by_key[key] = record
            else:
                for column, value in zip(value_columns, values):
                    existing[column] = existing.get(column, 0) + value
        return len(rows)

    def merge_json(
        self, table: str, row_id: str, column: str, key: str, payload: dict[str, Any]
    ) -> None:
        for record in self._data.get(table, []):
            if record.get("id") == row_id:
                merged = dict(record.get(column) or {})
                merged[key] = payload
                record[column] = merged

    def get_data(self, table: str) -> list[dict[str, Any]]:
        """
        Get in-memory rows for inspection.

        Args:
            table: Table name

        Returns:
            List of row dicts for the table
        """
        return self._data.get(table, [])

    def clear(self) -> None:
        """Clear all in-memory data and conflict keys."""
        self._data.clear()
        self._keys.clear()
