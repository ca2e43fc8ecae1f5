"""Shared generator contract: context, descriptors and column adaptation."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, NamedTuple, Sequence

from faker import Faker

from scaleseed.config import ScaleSeedConfig
from scaleseed.models import BatchResult, CapabilitySnapshot, GeneratorOutput
from scaleseed.rng import SeededRng, seeded_rng

logger = logging.getLogger(__name__)

Aliases = Mapping[str, Sequence[str]]


class ProjectRef(NamedTuple):
    id: str
    workspace_index: int
    start_date: Any
    budget: float
    created_by: str


class TaskRef(NamedTuple):
    id: str
    project_index: int
    start_date: Any
    due_date: Any


class SeedState:
    """
    Index maps published by generators for their successors.

    Each key is written by exactly one generator; publishing a key twice is a
    programming error.
    """

    def __init__(self) -> None:
        self._maps: dict[str, Any] = {}

    def publish(self, maps: Mapping[str, Any]) -> None:
        for key, value in maps.items():
            if key in self._maps:
                raise RuntimeError(f"Seed state key '{key}' already published")
            self._maps[key] = value

    def __getitem__(self, key: str) -> Any:
        return self._maps[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self._maps.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._maps


def adapt_rows(
    available: frozenset[str] | set[str],
    rows: Sequence[Mapping[str, Any]],
    aliases: Aliases | None = None,
) -> tuple[list[str], list[tuple[Any, ...]], dict[str, str]]:
    """
    Map logical row fields onto the columns a table actually has.

    Each logical field resolves to itself or the first alias present in
    ``available``; fields with no physical column are dropped.

    Returns:
        (physical columns, row tuples, logical -> physical mapping)
    """
    if not rows:
        return [], [], {}

    aliases = aliases or {}
    mapping: dict[str, str] = {}
    for field_name in rows[0]:
        for candidate in (field_name, *aliases.get(field_name, ())):
            if candidate in available and candidate not in mapping.values():
                mapping[field_name] = candidate
                break

    logical = list(mapping)
    columns = [mapping[f] for f in logical]
    values = [tuple(row.get(f) for f in logical) for row in rows]
    return columns, values, mapping


class GenerationContext:
    """Everything a generator may read: config, capabilities, backend, upstream maps."""

    def __init__(
        self,
        cfg: ScaleSeedConfig,
        caps: CapabilitySnapshot,
        backend: Any,
        state: SeedState | None = None,
    ):
        self.cfg = cfg
        self.caps = caps
        self.backend = backend
        self.state = state or SeedState()

    def key(self, *parts: Any) -> str:
        """Seed-scoped key for stable_id: '<seed>:<part>:<part>'."""
        return ":".join(str(p) for p in (self.cfg.seed, *parts))

    def faker(self, rng: SeededRng) -> Faker:
        """Faker instance seeded from the generator's stream seed."""
        fake = Faker()
        fake.seed_instance(rng.seed)
        return fake

    def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        conflict_target: str | Sequence[str] | None = "id",
        aliases: Aliases | None = None,
        returning: str | None = None,
    ) -> BatchResult:
        """Adapt rows to the live column set and bulk insert them."""
        available = self.caps.table_columns.get(table, frozenset())
        columns, values, mapping = adapt_rows(available, rows, aliases)
        if not columns:
            return BatchResult()

        dropped = [f for f in rows[0] if f not in mapping]
        if dropped:
            logger.debug(f"{table}: no column for {', '.join(dropped)}, omitted")

        target = _physical_target(conflict_target, mapping)
        if conflict_target and target is None:
            logger.warning(f"{table}: conflict target {conflict_target} not present, inserting without it")

        return self.backend.batch_insert(
            table,
            columns,
            values,
            self.cfg.batch,
            conflict_target=target,
            returning=mapping.get(returning) if returning else None,
        )


def _physical_target(
    conflict_target: str | Sequence[str] | None, mapping: Mapping[str, str]
) -> str | list[str] | None:
    if not conflict_target:
        return None
    targets = [conflict_target] if isinstance(conflict_target, str) else list(conflict_target)
    if any(t not in mapping for t in targets):
        return None
    physical = [mapping[t] for t in targets]
    return physical[0] if isinstance(conflict_target, str) else physical


GeneratorFunc = Callable[[GenerationContext, SeededRng], GeneratorOutput]


@dataclass(frozen=True)
class GeneratorSpec:
    """
    Registry entry for one generator.

    Attributes:
        name: Stage name used in logs and checkpoints
        func: Generator function
        tables: Tables that must exist for the generator to run
        optional: Skip (instead of fail) when a table is absent in non-strict mode
        rng_offset: Added to the seed to give the generator its own stream
    """

    name: str
    func: GeneratorFunc
    tables: tuple[str, ...]
    optional: bool = False
    rng_offset: int = 0

    def missing_tables(self, caps: CapabilitySnapshot) -> list[str]:
        return [t for t in self.tables if not caps.has_table(t)]

    def run(self, ctx: GenerationContext) -> GeneratorOutput:
        return self.func(ctx, seeded_rng(ctx.cfg.seed + self.rng_offset))
