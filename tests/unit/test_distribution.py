"""Tests for distribute / pick_from_distribution."""

from collections import Counter

import pytest

from scaleseed.distribution import (
    AUDIT_ACTION,
    DEPENDENCY_TYPE,
    TASK_PRIORITY,
    TASK_STATUS,
    TASK_TYPE,
    DistributionEntry,
    distribute,
    expand,
    pick_from_distribution,
)
from scaleseed.exceptions import ValidationError


class TestDistribute:
    """Tests for distribute()."""

    def test_exact_split(self):
        allocations = distribute(100, TASK_STATUS)
        assert [a.count for a in allocations] == [15, 25, 30, 10, 20]

    def test_counts_sum_to_total(self):
        """Test counts always sum to total, for awkward totals too."""
        for total in (0, 1, 7, 99, 101, 1234, 100_003):
            for entries in (TASK_STATUS, TASK_PRIORITY, TASK_TYPE, DEPENDENCY_TYPE):
                assert sum(a.count for a in distribute(total, entries)) == total

    def test_remainder_round_robin_from_first_bucket(self):
        """Test floor shares first, then one extra per bucket from bucket 0."""
        entries = [DistributionEntry("a", 33.34), DistributionEntry("b", 33.33), DistributionEntry("c", 33.33)]
        allocations = distribute(10, entries)
        # floors: 3, 3, 3 -> one left over goes to "a"
        assert [a.count for a in allocations] == [4, 3, 3]

    def test_order_preserved(self):
        assert [a.value for a in distribute(10, TASK_TYPE)] == ["TASK", "BUG", "EPIC", "MILESTONE"]

    def test_bad_percentages_rejected(self):
        with pytest.raises(ValidationError, match="expected 100"):
            distribute(10, [DistributionEntry("a", 50), DistributionEntry("b", 40)])

    def test_empty_entries_rejected(self):
        with pytest.raises(ValidationError):
            distribute(10, [])

    def test_tolerance(self):
        """Test sums within 0.01 of 100 are accepted."""
        entries = [DistributionEntry("a", 33.333), DistributionEntry("b", 33.333), DistributionEntry("c", 33.333)]
        assert sum(a.count for a in distribute(9, entries)) == 9


class TestPickFromDistribution:
    """Tests for pick_from_distribution()."""

    def test_deterministic(self):
        assert pick_from_distribution(17, 100, TASK_STATUS) == pick_from_distribution(17, 100, TASK_STATUS)

    def test_boundaries(self):
        assert pick_from_distribution(0, 100, TASK_STATUS) == "BACKLOG"
        assert pick_from_distribution(14, 100, TASK_STATUS) == "BACKLOG"
        assert pick_from_distribution(15, 100, TASK_STATUS) == "TODO"
        assert pick_from_distribution(99, 100, TASK_STATUS) == "DONE"

    def test_stamping_reproduces_proportions(self):
        """Test stamping every index reproduces distribute() exactly."""
        total = 1234
        stamped = Counter(pick_from_distribution(i, total, AUDIT_ACTION) for i in range(total))
        expected = {a.value: a.count for a in distribute(total, AUDIT_ACTION)}
        assert dict(stamped) == {k: v for k, v in expected.items() if v}

    def test_expand_matches_pick(self):
        total = 57
        assert expand(total, TASK_PRIORITY) == [
            pick_from_distribution(i, total, TASK_PRIORITY) for i in range(total)
        ]
