"""Per-cycle summary of an allocated batch."""

from dataclasses import dataclass
from typing import Sequence

from logingest.offset import OffsetRange
from logingest.offset.allocator import total_events
from logingest.offset.checkpoint import encode


@dataclass(frozen=True)
class BatchSummary:
    """
    Outcome of allocating one cycle.

    Attributes:
        has_data: Whether any new event was allocated
        total_events: Number of events across all ranges
        next_checkpoint: Checkpoint to commit once the batch is consumed;
            unchanged from the previous one when has_data is False
    """
    has_data: bool
    total_events: int
    next_checkpoint: str

    @classmethod
    def from_ranges(cls, ranges: Sequence[OffsetRange]) -> "BatchSummary":
        total = total_events(ranges)
        return cls(
            has_data=total > 0,
            total_events=total,
            next_checkpoint=encode(ranges),
        )


def summarize(ranges: Sequence[OffsetRange]) -> BatchSummary:
    """Summarize allocator output."""
    return BatchSummary.from_ranges(ranges)
