"""
logingest - budgeted incremental ingestion from a partitioned log.

Plans, for every polling cycle, which offset range to read from each
partition of a topic:
- Round-robin fair sharing of a per-cycle event budget
- Never reading past a partition's head offset
- Newly appeared partitions replayed from the start
- Progress persisted as a compact checkpoint string
"""

__version__ = "0.1.0"

from logingest.errors import (
    ConfigError,
    FetchError,
    FormatError,
    IngestError,
    MetadataError,
)
from logingest.offset import OffsetRange, PartitionKey
from logingest.offset.allocator import OffsetRangeAllocator, compute_offset_ranges, total_events
from logingest.offset.checkpoint import CheckpointCodec
from logingest.offset.reset_strategy import OffsetResetResolver, OffsetResetStrategy
from logingest.offset.summary import BatchSummary, summarize
from logingest.source.broker import (
    BrokerMetadataClient,
    ConsumerRecord,
    InMemoryBroker,
    RecordFetcher,
)
from logingest.source.config import SourceConfig
from logingest.source.incremental import IncrementalLogSource

__all__ = [
    "BatchSummary",
    "BrokerMetadataClient",
    "CheckpointCodec",
    "ConfigError",
    "ConsumerRecord",
    "FetchError",
    "FormatError",
    "InMemoryBroker",
    "IncrementalLogSource",
    "IngestError",
    "MetadataError",
    "OffsetRange",
    "OffsetRangeAllocator",
    "OffsetResetResolver",
    "OffsetResetStrategy",
    "PartitionKey",
    "RecordFetcher",
    "SourceConfig",
    "compute_offset_ranges",
    "summarize",
    "total_events",
]
