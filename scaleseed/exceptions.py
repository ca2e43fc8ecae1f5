"""Custom exceptions with helpful error messages."""


class ScaleSeedError(Exception):
    """Base exception for scaleseed errors."""

    pass


class ConfigError(ScaleSeedError):
    """Bad or missing command-line / configuration value."""

    def __init__(self, message: str):
        super().__init__(
            f"{message}\n\n"
            f"Suggestions:\n"
            f"1. Pass the seed explicitly: --seed=42\n"
            f"2. Numeric flags use the --name=value form: --scale=0.1 --batch=5000\n"
            f"3. Boolean flags accept true/false: --strictSchema=true"
        )


class SchemaGuardrailError(ScaleSeedError):
    """Schema gap that a guarded run refuses to degrade around.

    The message always starts with a stable tag (``STRICT_SCHEMA_VIOLATION``,
    ``BENCH_GUARDRAIL``, ``SCHEMA_MISSING_CORE_TABLE``) so callers can branch.
    """

    def __init__(self, tag: str, detail: str, hint: str | None = None):
        self.tag = tag
        message = f"{tag}: {detail}"
        if hint:
            message += f"\n\nSuggestions:\n{hint}"
        super().__init__(message)

    @classmethod
    def missing_tables(cls, tables: list[str]) -> "SchemaGuardrailError":
        return cls(
            "STRICT_SCHEMA_VIOLATION",
            f"Missing required tables: {', '.join(tables)}.",
            "1. Run pending migrations against the target database\n"
            "2. Use --strictSchema=false for dev convenience (seed only)",
        )

    @classmethod
    def missing_indexes(cls, labels: list[str]) -> "SchemaGuardrailError":
        return cls(
            "STRICT_SCHEMA_VIOLATION",
            f"Missing required indexes: {', '.join(labels)}.",
            "1. Apply the benchmark performance index migration\n"
            "2. Use --strictSchema=false for dev convenience (seed only)",
        )

    @classmethod
    def missing_core_table(cls, generator: str, tables: list[str]) -> "SchemaGuardrailError":
        return cls(
            "SCHEMA_MISSING_CORE_TABLE",
            f"Generator '{generator}' needs tables that do not exist: {', '.join(tables)}.",
            "1. Check the database URL and schema name\n"
            "2. Core tables cannot be skipped, even with --strictSchema=false",
        )


class SchemaDriftError(SchemaGuardrailError):
    """Current schema hash differs from the hash recorded in the last manifest."""

    def __init__(self, seed: int, current_hash: str, previous_hash: str):
        self.current_hash = current_hash
        self.previous_hash = previous_hash
        super().__init__(
            "SCHEMA_DRIFT",
            f"Current schema hash {current_hash} differs from previous manifest hash "
            f"{previous_hash} for seed {seed}. The database schema has changed since "
            f"the last seed run.",
            "1. Investigate the schema change before benchmarking\n"
            "2. Re-run `scaleseed seed` to record a fresh manifest once the change is intended",
        )


class ValidationError(ScaleSeedError):
    """Generation input violates a distributional invariant."""

    pass


class DatabaseError(ScaleSeedError):
    """Unclassified query failure."""

    def __init__(self, table: str, cause: Exception):
        self.table = table
        self.cause = cause
        super().__init__(
            f"Query against '{table}' failed: {cause}\n\n"
            f"Suggestions:\n"
            f"1. Inspect the progress checkpoint: scaleseed progress\n"
            f"2. Clean up the partial tenant: scaleseed cleanup --seed=<seed>\n"
            f"3. Re-run the seed once the cause is fixed"
        )
