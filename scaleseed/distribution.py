"""Percentage-bucket allocation and deterministic per-index picks."""

from typing import Any, NamedTuple, Sequence

from scaleseed.exceptions import ValidationError

PCT_TOLERANCE = 0.01


class DistributionEntry(NamedTuple):
    """A categorical value and its share of the total, in percent."""

    value: Any
    pct: float


class Allocation(NamedTuple):
    """A categorical value and the exact number of rows it receives."""

    value: Any
    count: int


def distribute(total: int, entries: Sequence[DistributionEntry]) -> list[Allocation]:
    """
    Split ``total`` items across buckets by percentage.

    Each bucket gets ``floor(total * pct / 100)``; the remainder is handed out
    round-robin starting from bucket 0, so counts always sum to ``total`` and
    bucket order is preserved.

    Raises:
        ValidationError: If percentages do not sum to 100 (+/- 0.01)
    """
    pct_sum = sum(e.pct for e in entries)
    if not entries or abs(pct_sum - 100) > PCT_TOLERANCE:
        raise ValidationError(
            f"Distribution percentages sum to {pct_sum}, expected 100"
        )

    counts = [int(total * e.pct // 100) for e in entries]
    assigned = sum(counts)
    i = 0
    while assigned < total:
        counts[i % len(counts)] += 1
        assigned += 1
        i += 1

    return [Allocation(e.value, c) for e, c in zip(entries, counts)]


def pick_from_distribution(
    index: int, total: int, entries: Sequence[DistributionEntry]
) -> Any:
    """
    Map row ``index`` (0-based, out of ``total``) to the bucket ``distribute``
    places it in. Same index always returns the same value, and stamping every
    index in ``range(total)`` reproduces the exact aggregate proportions.
    """
    cumulative = 0
    allocations = distribute(total, entries)
    for alloc in allocations:
        cumulative += alloc.count
        if index < cumulative:
            return alloc.value
    return allocations[-1].value


def expand(total: int, entries: Sequence[DistributionEntry]) -> list[Any]:
    """Values for every index in ``range(total)``, same as pick_from_distribution."""
    values: list[Any] = []
    for alloc in distribute(total, entries):
        values.extend([alloc.value] * alloc.count)
    return values


def _dist(*pairs: tuple[Any, float]) -> tuple[DistributionEntry, ...]:
    return tuple(DistributionEntry(value, pct) for value, pct in pairs)


TASK_STATUS = _dist(
    ("BACKLOG", 15), ("TODO", 25), ("IN_PROGRESS", 30), ("IN_REVIEW", 10), ("DONE", 20)
)
TASK_PRIORITY = _dist(("LOW", 30), ("MEDIUM", 40), ("HIGH", 20), ("CRITICAL", 10))
TASK_TYPE = _dist(("TASK", 80), ("BUG", 10), ("EPIC", 5), ("MILESTONE", 5))
DEPENDENCY_TYPE = _dist(
    ("FINISH_TO_START", 70),
    ("START_TO_START", 15),
    ("FINISH_TO_FINISH", 10),
    ("START_TO_FINISH", 5),
)
ATTACHMENT_STATUS = _dist(("uploaded", 80), ("pending", 10), ("deleted", 10))
PROJECT_STATUS = _dist(("ACTIVE", 60), ("PLANNING", 20), ("ON_HOLD", 10), ("COMPLETED", 10))
AUDIT_ACTION = _dist(("create", 40), ("update", 45), ("delete", 5), ("status_change", 10))
MEMBER_ROLE = _dist(("member", 70), ("admin", 15), ("viewer", 15))
