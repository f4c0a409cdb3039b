"""
Incremental source over a partitioned log.

Each call to fetch_new_data runs one cycle:
1. List the topic's partitions
2. Start from the checkpoint, moved up past data removed by retention,
   or from the reset strategy without one
3. Look up the head offset of every partition
4. Allocate budgeted offset ranges and summarize them
5. Fetch the records, unless there is nothing new

The returned checkpoint must only be committed once the records have
been durably consumed; until then the previous checkpoint stays
authoritative and the cycle can be retried from it.
"""

from typing import Callable, List, Optional, Sequence, Tuple

from logingest.errors import FetchError, FormatError, MetadataError
from logingest.offset import OffsetMap, OffsetRange, PartitionKey
from logingest.offset.allocator import OffsetRangeAllocator, clamp_to_retained
from logingest.offset.checkpoint import decode
from logingest.offset.reset_strategy import OffsetResetResolver, should_reset
from logingest.offset.summary import BatchSummary
from logingest.source.broker import BrokerMetadataClient, RecordFetcher
from logingest.source.config import SourceConfig
from logingest.utils.logging import get_logger

logger = get_logger(__name__)


class IncrementalLogSource:
    """
    Reads a topic incrementally, one bounded batch per cycle.

    Example:
        source = IncrementalLogSource(config, broker, broker)

        records, checkpoint = source.fetch_new_data(last_checkpoint, 50000)
        if records is not None:
            write(records)
        store_checkpoint(checkpoint)
    """

    def __init__(
        self,
        config: SourceConfig,
        metadata_client: BrokerMetadataClient,
        record_fetcher: RecordFetcher,
    ):
        """
        Initialize source.

        Args:
            config: Source configuration
            metadata_client: Partition and watermark lookups
            record_fetcher: Reads records for computed ranges
        """
        self.config = config
        self._metadata = metadata_client
        self._fetcher = record_fetcher
        self._allocator = OffsetRangeAllocator()
        self._resolver = OffsetResetResolver(config.auto_offset_reset)

        logger.info(
            "IncrementalLogSource initialized",
            topic=config.topic,
            auto_offset_reset=config.auto_offset_reset.value,
            max_events_per_cycle=config.max_events_per_cycle,
        )

    @property
    def topic(self) -> str:
        return self.config.topic

    def plan(
        self,
        last_checkpoint: Optional[str],
        source_limit: int,
    ) -> Tuple[List[OffsetRange], BatchSummary]:
        """
        Compute the ranges of the next batch without reading them.

        Args:
            last_checkpoint: Last committed checkpoint, None or "" if none
            source_limit: Caller's cap on events for this cycle

        Returns:
            Tuple of (ranges, summary)

        Raises:
            MetadataError: If partition or offset lookups fail
            FormatError: If the checkpoint is malformed or for another topic
        """
        partitions = self._list_partitions()

        if should_reset(last_checkpoint):
            from_offsets = self._resolver.resolve(partitions, self._metadata)
        else:
            from_offsets = clamp_to_retained(
                self._decode_checkpoint(last_checkpoint),
                self._earliest_offsets(partitions),
            )

        to_offsets = self._latest_offsets(partitions)

        event_budget = max(0, min(self.config.max_events_per_cycle, source_limit))
        ranges = self._allocator.allocate(from_offsets, to_offsets, event_budget)
        summary = BatchSummary.from_ranges(ranges)

        return ranges, summary

    def fetch_new_data(
        self,
        last_checkpoint: Optional[str],
        source_limit: int,
    ) -> Tuple[Optional[list], str]:
        """
        Run one cycle.

        Args:
            last_checkpoint: Last committed checkpoint, None or "" if none
            source_limit: Caller's cap on events for this cycle

        Returns:
            Tuple of (records or None when there is nothing new, checkpoint)

        Raises:
            MetadataError: If partition or offset lookups fail
            FormatError: If the checkpoint is malformed or for another topic
            FetchError: If reading the records fails
        """
        ranges, summary = self.plan(last_checkpoint, source_limit)

        if not summary.has_data:
            logger.info("No new data", topic=self.topic)
            return None, summary.next_checkpoint

        logger.info(
            "About to read events",
            topic=self.topic,
            total_events=summary.total_events,
            partitions=len(ranges),
        )

        records = self._fetch(ranges)
        return records, summary.next_checkpoint

    def _list_partitions(self) -> List[PartitionKey]:
        try:
            partitions = self._metadata.list_partitions(self.topic)
        except MetadataError:
            raise
        except Exception as e:
            raise MetadataError(f"Error obtaining partition metadata for {self.topic}: {e}") from e

        if not partitions:
            raise MetadataError(f"Topic {self.topic} has no partitions")

        return sorted(partitions, key=lambda tp: tp.partition)

    def _latest_offsets(self, partitions: Sequence[PartitionKey]) -> OffsetMap:
        return self._watermarks(partitions, self._metadata.latest_offsets, "latest")

    def _earliest_offsets(self, partitions: Sequence[PartitionKey]) -> OffsetMap:
        return self._watermarks(partitions, self._metadata.earliest_offsets, "earliest")

    def _watermarks(
        self,
        partitions: Sequence[PartitionKey],
        lookup: Callable[[Sequence[PartitionKey]], OffsetMap],
        kind: str,
    ) -> OffsetMap:
        try:
            offsets = lookup(partitions)
        except MetadataError:
            raise
        except Exception as e:
            raise MetadataError(f"Error fetching {kind} offsets for {self.topic}: {e}") from e

        missing = [tp for tp in partitions if tp not in offsets]
        if missing:
            raise MetadataError(f"Broker returned no {kind} offset for {[str(tp) for tp in missing]}")

        # Only partitions that exist now are read
        return {tp: offsets[tp] for tp in partitions}

    def _decode_checkpoint(self, checkpoint: str) -> OffsetMap:
        offsets = decode(checkpoint)

        foreign = {tp.topic for tp in offsets if tp.topic != self.topic}
        if foreign:
            raise FormatError(
                f"Checkpoint for topic {sorted(foreign)} cannot resume topic {self.topic}"
            )

        return offsets

    def _fetch(self, ranges: Sequence[OffsetRange]) -> list:
        try:
            return self._fetcher.fetch(ranges)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"Error fetching records for {self.topic}: {e}") from e
