"""Tests for budgeted offset range allocation."""

import random

import pytest

from logingest.offset import OffsetRange, PartitionKey
from logingest.offset.allocator import (
    OffsetRangeAllocator,
    clamp_to_retained,
    compute_offset_ranges,
    total_events,
)

TOPIC = "topic"


def tp(partition):
    return PartitionKey(TOPIC, partition)


def by_partition(ranges):
    return {r.partition_index: (r.from_offset, r.until_offset) for r in ranges}


class TestComputeOffsetRanges:
    """Test compute_offset_ranges."""

    def test_skewed_partitions(self):
        """Test unused share of a quiet partition flows to a busy one."""
        ranges = compute_offset_ranges(
            {tp(0): 0, tp(1): 0},
            {tp(0): 100, tp(1): 10},
            50,
        )

        assert by_partition(ranges) == {0: (0, 40), 1: (0, 10)}
        assert total_events(ranges) == 50

    def test_full_catch_up(self):
        """Test budget covering all backlog reads up to every head."""
        ranges = compute_offset_ranges(
            {tp(0): 5, tp(1): 0, tp(2): 30},
            {tp(0): 20, tp(1): 7, tp(2): 31},
            1000,
        )

        assert by_partition(ranges) == {0: (5, 20), 1: (0, 7), 2: (30, 31)}
        assert total_events(ranges) == 23

    def test_caught_up_partition_unchanged(self):
        """Test partition already at its head gets an empty range."""
        ranges = compute_offset_ranges({tp(0): 10}, {tp(0): 10}, 100)

        assert ranges == [OffsetRange(tp(0), 10, 10)]
        assert total_events(ranges) == 0

    def test_new_partition_starts_at_zero(self):
        """Test partition missing from checkpoint is read from offset 0."""
        ranges = compute_offset_ranges(
            {tp(0): 50},
            {tp(0): 60, tp(1): 8},
            1000,
        )

        assert by_partition(ranges) == {0: (50, 60), 1: (0, 8)}

    def test_vanished_partition_dropped(self):
        """Test output domain is the set of current partitions."""
        ranges = compute_offset_ranges(
            {tp(0): 5, tp(1): 5},
            {tp(0): 10},
            100,
        )

        assert by_partition(ranges) == {0: (5, 10)}

    def test_sorted_by_partition(self):
        """Test ranges are ordered by partition index."""
        to_offsets = {tp(3): 1, tp(0): 1, tp(2): 1, tp(1): 1}

        ranges = compute_offset_ranges({}, to_offsets, 10)

        assert [r.partition_index for r in ranges] == [0, 1, 2, 3]

    def test_ceiling_share_never_exceeds_budget(self):
        """Test rounded-up shares are capped by the remaining budget."""
        ranges = compute_offset_ranges(
            {},
            {tp(0): 100, tp(1): 100},
            5,
        )

        assert by_partition(ranges) == {0: (0, 3), 1: (0, 2)}
        assert total_events(ranges) == 5

    def test_budget_smaller_than_partition_count(self):
        """Test tiny budget over many partitions."""
        to_offsets = {tp(i): 10 for i in range(5)}

        ranges = compute_offset_ranges({}, to_offsets, 3)

        assert total_events(ranges) == 3
        assert [r.count() for r in ranges] == [1, 1, 1, 0, 0]

    def test_zero_budget(self):
        """Test zero budget allocates nothing."""
        ranges = compute_offset_ranges({tp(0): 2}, {tp(0): 10}, 0)

        assert ranges == [OffsetRange(tp(0), 2, 2)]

    def test_negative_budget(self):
        """Test negative budget is rejected."""
        with pytest.raises(ValueError):
            compute_offset_ranges({}, {tp(0): 10}, -1)

    def test_negative_head(self):
        """Test negative head offset is rejected."""
        with pytest.raises(ValueError):
            compute_offset_ranges({}, {tp(0): -1}, 10)

    def test_truncated_partition_clamped_to_head(self):
        """Test checkpoint past the head never reads past the head."""
        ranges = compute_offset_ranges(
            {tp(0): 500, tp(1): 0},
            {tp(0): 100, tp(1): 10},
            50,
        )

        assert by_partition(ranges) == {0: (100, 100), 1: (0, 10)}

    def test_no_partitions(self):
        """Test empty partition set yields no ranges."""
        assert compute_offset_ranges({}, {}, 100) == []

    def test_idempotent(self):
        """Test identical inputs give identical output."""
        from_offsets = {tp(0): 3, tp(1): 9}
        to_offsets = {tp(0): 80, tp(1): 40, tp(2): 12}

        first = compute_offset_ranges(from_offsets, to_offsets, 37)
        second = compute_offset_ranges(from_offsets, to_offsets, 37)

        assert first == second

    def test_inputs_not_mutated(self):
        """Test caller mappings are left untouched."""
        from_offsets = {tp(0): 3}
        to_offsets = {tp(0): 80, tp(1): 5}

        compute_offset_ranges(from_offsets, to_offsets, 20)

        assert from_offsets == {tp(0): 3}
        assert to_offsets == {tp(0): 80, tp(1): 5}


class TestAllocationProperties:
    """Test allocation invariants over randomized inputs."""

    @pytest.mark.parametrize("seed", range(50))
    def test_invariants(self, seed):
        """Test bounds, budget and catch-up invariants."""
        rng = random.Random(seed)
        num_partitions = rng.randint(1, 8)

        from_offsets = {}
        to_offsets = {}
        for i in range(num_partitions):
            start = rng.randint(0, 1000)
            to_offsets[tp(i)] = start + rng.choice([0, rng.randint(0, 50), rng.randint(0, 5000)])
            if rng.random() < 0.8:
                from_offsets[tp(i)] = start

        budget = rng.randint(0, 6000)
        backlog = sum(to_offsets[p] - from_offsets.get(p, 0) for p in to_offsets)

        ranges = compute_offset_ranges(from_offsets, to_offsets, budget)
        total = total_events(ranges)

        assert len(ranges) == num_partitions
        for r in ranges:
            assert r.from_offset == from_offsets.get(r.partition, 0)
            assert r.from_offset <= r.until_offset <= to_offsets[r.partition]

        assert total <= budget
        if budget >= backlog:
            assert all(r.until_offset == to_offsets[r.partition] for r in ranges)
            assert total == backlog
        else:
            assert total == budget


class TestOffsetRangeAllocator:
    """Test OffsetRangeAllocator."""

    def test_allocate(self):
        """Test allocator delegates to the pure computation."""
        allocator = OffsetRangeAllocator()
        from_offsets = {tp(0): 0, tp(1): 0}
        to_offsets = {tp(0): 100, tp(1): 10}

        ranges = allocator.allocate(from_offsets, to_offsets, 50)

        assert ranges == compute_offset_ranges(from_offsets, to_offsets, 50)

    def test_total_events(self):
        """Test summing range sizes."""
        ranges = [
            OffsetRange(tp(0), 0, 40),
            OffsetRange(tp(1), 3, 10),
            OffsetRange(tp(2), 5, 5),
        ]

        assert total_events(ranges) == 47
        assert total_events([]) == 0


class TestClampToRetained:
    """Test clamp_to_retained."""

    def test_behind_earliest_moves_up(self):
        """Test offsets deleted by retention are skipped."""
        clamped = clamp_to_retained({tp(0): 3, tp(1): 50}, {tp(0): 20, tp(1): 10})

        assert clamped == {tp(0): 20, tp(1): 50}

    def test_new_partition_after_retention(self):
        """Test a new partition starts at its earliest retained offset."""
        clamped = clamp_to_retained({tp(0): 5}, {tp(0): 0, tp(1): 7})

        assert clamped == {tp(0): 5, tp(1): 7}

    def test_new_partition_from_zero_left_out(self):
        """Test a new partition with full history keeps the default start."""
        clamped = clamp_to_retained({tp(0): 5}, {tp(0): 0, tp(1): 0})

        assert clamped == {tp(0): 5}

    def test_input_not_mutated(self):
        """Test caller mapping is left untouched."""
        from_offsets = {tp(0): 1}

        clamp_to_retained(from_offsets, {tp(0): 4})

        assert from_offsets == {tp(0): 1}
