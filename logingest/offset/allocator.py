"""
Offset range allocation under a per-cycle event budget.

Computes, for every partition currently on the broker, the slice to read
this cycle. The budget is shared round-robin: each round splits what is
left of it evenly across partitions that still have backlog, so a burst
on one partition cannot starve quiet ones, and quota unused by a
partition that catches up flows to the others in the next round.

Example: heads {p0: 100, p1: 10}, nothing processed, budget 50
  Round 1: share 25 -> p0 [0,25), p1 [0,10) (caught up), 35 allocated
  Round 2: share 15 -> p0 [0,40), 50 allocated
"""

from typing import Dict, List, Mapping, Sequence, Set

from logingest.offset import OffsetRange, PartitionKey
from logingest.utils.logging import get_logger

logger = get_logger(__name__)


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def compute_offset_ranges(
    from_offsets: Mapping[PartitionKey, int],
    to_offsets: Mapping[PartitionKey, int],
    event_budget: int,
) -> List[OffsetRange]:
    """
    Compute the offset ranges to read, handling new partitions and skew.

    Args:
        from_offsets: Where each partition was left off; partitions not
            present start at offset 0
        to_offsets: Current head offset of every partition; defines the
            output domain
        event_budget: Maximum number of events to allocate

    Returns:
        One range per partition in to_offsets, sorted by partition index

    Raises:
        ValueError: If event_budget or a head offset is negative
    """
    if event_budget < 0:
        raise ValueError(f"Event budget must be non-negative: {event_budget}")

    heads = dict(to_offsets)
    ends = {}
    for tp, head in heads.items():
        if head < 0:
            raise ValueError(f"Negative head offset {head} for {tp}")

        start = from_offsets.get(tp, 0)
        if start > head:
            # Log was truncated or recreated below our position
            logger.warning(
                "Checkpoint ahead of head offset, clamping",
                partition=str(tp),
                checkpoint_offset=start,
                head_offset=head,
                skipped=start - head,
            )
            start = head
        ends[tp] = start

    order = sorted(heads, key=lambda tp: (tp.partition, tp.topic))
    starts = dict(ends)

    allocated = 0
    exhausted: Set[PartitionKey] = set()

    while allocated < event_budget and len(exhausted) < len(order):
        remaining = event_budget - allocated
        share = _ceil_div(remaining, len(order) - len(exhausted))

        for tp in order:
            if tp in exhausted:
                continue

            # Ceiling shares can add up to more than what is left
            grant = min(share, event_budget - allocated)
            new_end = min(heads[tp], ends[tp] + grant)
            if new_end == heads[tp]:
                exhausted.add(tp)

            allocated += new_end - ends[tp]
            ends[tp] = new_end

    return [OffsetRange(tp, starts[tp], ends[tp]) for tp in order]


def clamp_to_retained(
    from_offsets: Mapping[PartitionKey, int],
    earliest_offsets: Mapping[PartitionKey, int],
) -> Dict[PartitionKey, int]:
    """
    Move starting offsets up to the oldest retained offset.

    Partitions missing from from_offsets would start at 0; they are
    added at their earliest offset when retention has already dropped
    the start of the log.

    Args:
        from_offsets: Where each partition was left off
        earliest_offsets: Oldest retained offset of each current partition

    Returns:
        New mapping of partition to starting offset
    """
    clamped = dict(from_offsets)
    for tp, earliest in earliest_offsets.items():
        start = clamped.get(tp, 0)
        if start < earliest:
            # Records below the earliest offset were deleted by retention
            logger.warning(
                "Checkpoint behind earliest retained offset, skipping ahead",
                partition=str(tp),
                checkpoint_offset=start,
                earliest_offset=earliest,
                skipped=earliest - start,
            )
            clamped[tp] = earliest
    return clamped


def total_events(ranges: Sequence[OffsetRange]) -> int:
    """Total number of events covered by the ranges."""
    return sum(r.count() for r in ranges)


class OffsetRangeAllocator:
    """
    Budgeted range allocator with logging.

    Stateless; a single instance can be shared across threads and topics.
    """

    def allocate(
        self,
        from_offsets: Mapping[PartitionKey, int],
        to_offsets: Mapping[PartitionKey, int],
        event_budget: int,
    ) -> List[OffsetRange]:
        """
        Allocate offset ranges for one cycle.

        See compute_offset_ranges for argument semantics.
        """
        ranges = compute_offset_ranges(from_offsets, to_offsets, event_budget)

        new_partitions = [tp for tp in to_offsets if tp not in from_offsets]
        if new_partitions and from_offsets:
            logger.info(
                "Reading new partitions from offset 0",
                partitions=sorted(str(tp) for tp in new_partitions),
            )

        logger.debug(
            "Allocated offset ranges",
            partitions=len(ranges),
            event_budget=event_budget,
            total_events=total_events(ranges),
        )

        return ranges
