"""Partition and offset-range value types."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class PartitionKey:
    """
    Identifies one partition of a topic.

    Attributes:
        topic: Topic name
        partition: Partition index
    """
    topic: str
    partition: int

    def __post_init__(self):
        if self.partition < 0:
            raise ValueError(f"Partition index must be non-negative: {self.partition}")

    def __str__(self) -> str:
        return f"{self.topic}-{self.partition}"

    def __repr__(self) -> str:
        return f"PartitionKey(topic='{self.topic}', partition={self.partition})"


@dataclass(frozen=True)
class OffsetRange:
    """
    Contiguous slice [from_offset, until_offset) of one partition.

    Attributes:
        partition: Partition the range belongs to
        from_offset: First offset to read (inclusive)
        until_offset: Offset to stop at (exclusive)
    """
    partition: PartitionKey
    from_offset: int
    until_offset: int

    def __post_init__(self):
        if self.from_offset < 0:
            raise ValueError(f"from_offset must be non-negative: {self.from_offset}")
        if self.until_offset < self.from_offset:
            raise ValueError(
                f"until_offset {self.until_offset} is before from_offset "
                f"{self.from_offset} for {self.partition}"
            )

    @property
    def topic(self) -> str:
        return self.partition.topic

    @property
    def partition_index(self) -> int:
        return self.partition.partition

    def count(self) -> int:
        """Number of events in the range."""
        return self.until_offset - self.from_offset

    def __str__(self) -> str:
        return f"{self.partition}:[{self.from_offset},{self.until_offset})"


# Partition -> offset, e.g. a decoded checkpoint or broker watermarks
OffsetMap = Dict[PartitionKey, int]


__all__ = [
    "PartitionKey",
    "OffsetRange",
    "OffsetMap",
]
