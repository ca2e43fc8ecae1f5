"""Data models and type definitions."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class IndexSignature:
    """
    Parsed index definition.

    Attributes:
        name: Index name
        table: Table the index belongs to
        columns: Ordered key columns (quotes and ASC/DESC stripped)
        is_unique: Whether this is a UNIQUE index
        where_clause: Partial-index predicate, if any
    """

    name: str
    table: str
    columns: list[str]
    is_unique: bool = False
    where_clause: str | None = None


@dataclass(frozen=True)
class RequiredIndex:
    """A (table, leading columns) pair a benchmark run depends on."""

    table: str
    columns: tuple[str, ...]
    description: str

    @property
    def label(self) -> str:
        return f"{self.table}({','.join(self.columns)})"


@dataclass
class CapabilitySnapshot:
    """
    Point-in-time record of which seed tables, columns and indexes exist.

    Built once per run and passed down to every generator, so adaptive
    behaviour is plain data rather than repeated catalog queries.
    """

    table_columns: dict[str, frozenset[str]]
    missing_tables: list[str]
    schema_hash: str
    indexes_present: list[str] = field(default_factory=list)
    indexes_missing: list[str] = field(default_factory=list)
    indexes_by_table: dict[str, list[IndexSignature]] = field(default_factory=dict)

    @property
    def present_tables(self) -> list[str]:
        return list(self.table_columns)

    def has_table(self, table: str) -> bool:
        return table in self.table_columns

    def has_column(self, table: str, column: str) -> bool:
        return column in self.table_columns.get(table, frozenset())

    def resolve_column(self, table: str, *candidates: str) -> str | None:
        """Return the first candidate column present on ``table``."""
        columns = self.table_columns.get(table, frozenset())
        for candidate in candidates:
            if candidate in columns:
                return candidate
        return None

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "action": "scale_seed_capabilities",
            "presentTables": self.present_tables,
            "missingTables": self.missing_tables,
            "tableColumns": {t: sorted(c) for t, c in self.table_columns.items()},
            "detectedSchemaHash": self.schema_hash,
            "requiredIndexesPresent": self.indexes_present,
            "missingIndexes": self.indexes_missing,
            "indexesByTable": {
                t: [{"name": i.name, "columns": i.columns, "unique": i.is_unique} for i in idxs]
                for t, idxs in self.indexes_by_table.items()
            },
        }


@dataclass
class BatchResult:
    """
    Outcome of a chunked bulk insert.

    Attributes:
        attempted: Rows sent to the database
        inserted: Rows actually written (conflicting rows are skipped)
        returned: Values of the RETURNING column for rows actually written
    """

    attempted: int = 0
    inserted: int = 0
    returned: list[Any] = field(default_factory=list)


@dataclass
class GeneratorOutput:
    """Per-table row counts plus index maps published for later generators."""

    counts: dict[str, int] = field(default_factory=dict)
    maps: dict[str, Any] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.counts.values())


@dataclass
class GeneratorProgress:
    name: str
    row_count: int
    completed_at: str


@dataclass
class ProgressState:
    """Single checkpoint record, overwritten at every stage boundary."""

    command: str
    seed: int
    scale: float
    stage: str
    completed_stages: list[str] = field(default_factory=list)
    completed_generators: list[GeneratorProgress] = field(default_factory=list)
    started_at: str = ""
    last_updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressState":
        generators = [GeneratorProgress(**g) for g in data.get("completed_generators", [])]
        return cls(**{**data, "completed_generators": generators})


@dataclass
class Manifest:
    """Summary of one successful seed run."""

    version: str
    seed: int
    scale: float
    org_slug: str
    counts: dict[str, int]
    runtime_ms: int
    skipped_tables: list[str]
    detected_schema_hash: str
    required_indexes_present: list[str]
    missing_indexes: list[str]
    created_at: str

    @property
    def total_rows(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys stored in tenant metadata."""
        return {
            "version": self.version,
            "seed": self.seed,
            "scale": self.scale,
            "orgSlug": self.org_slug,
            "counts": dict(self.counts),
            "runtimeMs": self.runtime_ms,
            "skippedTables": list(self.skipped_tables),
            "detectedSchemaHash": self.detected_schema_hash,
            "requiredIndexesPresent": list(self.required_indexes_present),
            "missingIndexes": list(self.missing_indexes),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        return cls(
            version=data.get("version", ""),
            seed=data["seed"],
            scale=data["scale"],
            org_slug=data.get("orgSlug", ""),
            counts=data.get("counts", {}),
            runtime_ms=data.get("runtimeMs", 0),
            skipped_tables=data.get("skippedTables", []),
            detected_schema_hash=data.get("detectedSchemaHash", ""),
            required_indexes_present=data.get("requiredIndexesPresent", []),
            missing_indexes=data.get("missingIndexes", []),
            created_at=data.get("createdAt", ""),
        )


TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
QUERY_FAILED = "QUERY_FAILED"


@dataclass
class CleanupProof:
    """Zero-residue proof for one seeded tenant."""

    seed: int
    org_slug: str
    org_id: str | None
    lookup: str
    deleted: dict[str, int | str]
    residue: dict[str, int | str]
    has_residue: bool
    runtime_ms: int
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "orgSlug": self.org_slug,
            "orgId": self.org_id,
            "lookup": self.lookup,
            "deleted": self.deleted,
            "residue": self.residue,
            "hasResidue": self.has_residue,
            "runtimeMs": self.runtime_ms,
            "createdAt": self.created_at,
        }


@dataclass
class ExplainResult:
    name: str
    table: str
    expected_index: str
    planning_time_ms: float | None
    execution_time_ms: float | None
    rows: int | None
    uses_index: bool
    plan_text: str

    def to_dict(self, include_plan: bool = False) -> dict[str, Any]:
        data = {
            "name": self.name,
            "table": self.table,
            "expectedIndex": self.expected_index,
            "planningTimeMs": self.planning_time_ms,
            "executionTimeMs": self.execution_time_ms,
            "rows": self.rows,
            "usesIndex": self.uses_index,
        }
        if include_plan:
            data["plan"] = self.plan_text
        return data


@dataclass
class BenchRunResult:
    iteration: int
    runtime_ms: int
    memory_rss_mb: float
    heap_peak_mb: float
    insert_rate_rows_per_sec: int
    counts: dict[str, int]
    detected_schema_hash: str
    skipped_tables: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "runtimeMs": self.runtime_ms,
            "memoryRssMb": self.memory_rss_mb,
            "heapPeakMb": self.heap_peak_mb,
            "insertRateRowsPerSec": self.insert_rate_rows_per_sec,
            "counts": self.counts,
            "detectedSchemaHash": self.detected_schema_hash,
            "skippedTables": self.skipped_tables,
        }


@dataclass
class BenchResult:
    seed: int
    scale: float
    repeat: int
    runs: list[BenchRunResult]
    explain_plans: list[ExplainResult]
    avg_runtime_ms: int
    avg_insert_rate: int
    avg_memory_rss_mb: float
    avg_heap_peak_mb: float
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "scale": self.scale,
            "repeat": self.repeat,
            "runs": [r.to_dict() for r in self.runs],
            "explainPlans": [p.to_dict() for p in self.explain_plans],
            "summary": {
                "avgRuntimeMs": self.avg_runtime_ms,
                "avgInsertRate": self.avg_insert_rate,
                "avgMemoryRssMb": self.avg_memory_rss_mb,
                "avgHeapPeakMb": self.avg_heap_peak_mb,
            },
            "createdAt": self.created_at,
        }


@dataclass
class LadderStep:
    scale: float
    status: str
    avg_runtime_ms: int | None = None
    avg_insert_rate: int | None = None
    error: str | None = None


@dataclass
class LadderResult:
    seed: int
    scales: list[float]
    steps: list[LadderStep]
    stopped_reason: str | None
    created_at: str

    @property
    def attempted(self) -> list[float]:
        return [s.scale for s in self.steps]

    @property
    def succeeded(self) -> list[float]:
        return [s.scale for s in self.steps if s.status == "ok"]

    @property
    def failed(self) -> list[float]:
        return [s.scale for s in self.steps if s.status in ("failed", "guardrail")]

    @property
    def skipped(self) -> list[float]:
        attempted = set(self.attempted)
        return [s for s in self.scales if s not in attempted]

    def resume_proof(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "scales": self.scales,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "stoppedReason": self.stopped_reason,
            "createdAt": self.created_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "scales": self.scales,
            "steps": [asdict(s) for s in self.steps],
            "stoppedReason": self.stopped_reason,
            "createdAt": self.created_at,
        }
