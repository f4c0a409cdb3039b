"""
Broker collaborators for the incremental source.

The source only needs two narrow capabilities from the outside world:
- BrokerMetadataClient: list a topic's partitions and report their
  earliest retained and latest (head) offsets
- RecordFetcher: materialize the records of computed offset ranges

InMemoryBroker implements both over in-process partition logs. It backs
the tests and the CLI, and can stand in for a broker when embedding the
planner.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set

from logingest.errors import FetchError, MetadataError
from logingest.offset import OffsetMap, OffsetRange, PartitionKey
from logingest.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConsumerRecord:
    """
    A record read from a topic-partition.

    Attributes:
        topic: Topic name
        partition: Partition number
        offset: Record offset
        timestamp: Record timestamp (ms)
        key: Record key
        value: Record value
    """
    topic: str
    partition: int
    offset: int
    timestamp: int
    key: Optional[bytes]
    value: bytes


class BrokerMetadataClient(ABC):
    """Partition metadata and watermark lookups for a topic."""

    @abstractmethod
    def list_partitions(self, topic: str) -> Set[PartitionKey]:
        """
        List the partitions currently known for a topic.

        Args:
            topic: Topic name

        Returns:
            Set of partitions
        """
        pass

    @abstractmethod
    def earliest_offsets(self, partitions: Iterable[PartitionKey]) -> OffsetMap:
        """
        Get the oldest retained offset of each partition.

        Args:
            partitions: Partitions to look up

        Returns:
            Mapping of partition to earliest offset
        """
        pass

    @abstractmethod
    def latest_offsets(self, partitions: Iterable[PartitionKey]) -> OffsetMap:
        """
        Get the head offset (one past the last record) of each partition.

        Args:
            partitions: Partitions to look up

        Returns:
            Mapping of partition to head offset
        """
        pass


class RecordFetcher(ABC):
    """Reads the records of computed offset ranges."""

    @abstractmethod
    def fetch(self, ranges: Sequence[OffsetRange]) -> List[ConsumerRecord]:
        """
        Fetch exactly the records covered by the ranges.

        Args:
            ranges: Offset ranges to read

        Returns:
            Records in range order, then offset order
        """
        pass


class _PartitionLog:
    """Append-only record list with a movable start (retention)."""

    def __init__(self):
        self.start_offset = 0
        self.records: List[ConsumerRecord] = []

    @property
    def end_offset(self) -> int:
        return self.start_offset + len(self.records)


class InMemoryBroker(BrokerMetadataClient, RecordFetcher):
    """
    In-process broker holding topic partitions in memory.

    Example:
        broker = InMemoryBroker()
        broker.create_topic("clicks", partitions=2)
        broker.append("clicks", 0, b"event")

        source = IncrementalLogSource(config, broker, broker)
    """

    def __init__(self):
        self._topics: Dict[str, List[_PartitionLog]] = {}
        self._lock = threading.RLock()

    def create_topic(self, topic: str, partitions: int = 1) -> None:
        """
        Create a topic.

        Args:
            topic: Topic name
            partitions: Number of partitions

        Raises:
            ValueError: If the topic exists or partitions < 1
        """
        if partitions < 1:
            raise ValueError(f"Topic needs at least one partition: {partitions}")

        with self._lock:
            if topic in self._topics:
                raise ValueError(f"Topic already exists: {topic}")
            self._topics[topic] = [_PartitionLog() for _ in range(partitions)]

        logger.info("Created topic", topic=topic, partitions=partitions)

    def add_partitions(self, topic: str, count: int) -> None:
        """Add new, empty partitions to an existing topic."""
        with self._lock:
            logs = self._get_topic(topic)
            logs.extend(_PartitionLog() for _ in range(count))

        logger.info("Added partitions", topic=topic, added=count, total=len(logs))

    def append(
        self,
        topic: str,
        partition: int,
        value: bytes,
        key: Optional[bytes] = None,
        timestamp: Optional[int] = None,
    ) -> int:
        """
        Append a record to a partition.

        Returns:
            Offset assigned to the record
        """
        with self._lock:
            log = self._get_partition(topic, partition)
            offset = log.end_offset
            log.records.append(ConsumerRecord(
                topic=topic,
                partition=partition,
                offset=offset,
                timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
                key=key,
                value=value,
            ))
            return offset

    def truncate(self, topic: str, partition: int, before_offset: int) -> None:
        """
        Drop records below an offset, as log retention would.

        Args:
            topic: Topic name
            partition: Partition number
            before_offset: New earliest retained offset
        """
        with self._lock:
            log = self._get_partition(topic, partition)
            before_offset = min(before_offset, log.end_offset)
            if before_offset <= log.start_offset:
                return
            del log.records[:before_offset - log.start_offset]
            log.start_offset = before_offset

        logger.debug(
            "Truncated partition",
            topic=topic,
            partition=partition,
            start_offset=before_offset,
        )

    def list_partitions(self, topic: str) -> Set[PartitionKey]:
        with self._lock:
            logs = self._get_topic(topic)
            return {PartitionKey(topic, i) for i in range(len(logs))}

    def earliest_offsets(self, partitions: Iterable[PartitionKey]) -> OffsetMap:
        with self._lock:
            return {
                tp: self._get_partition(tp.topic, tp.partition).start_offset
                for tp in partitions
            }

    def latest_offsets(self, partitions: Iterable[PartitionKey]) -> OffsetMap:
        with self._lock:
            return {
                tp: self._get_partition(tp.topic, tp.partition).end_offset
                for tp in partitions
            }

    def fetch(self, ranges: Sequence[OffsetRange]) -> List[ConsumerRecord]:
        records: List[ConsumerRecord] = []

        with self._lock:
            for r in ranges:
                try:
                    log = self._get_partition(r.topic, r.partition_index)
                except MetadataError as e:
                    raise FetchError(str(e)) from e

                if r.count() == 0:
                    continue
                if r.from_offset < log.start_offset or r.until_offset > log.end_offset:
                    raise FetchError(
                        f"Range {r} outside retained offsets "
                        f"[{log.start_offset},{log.end_offset})"
                    )

                lo = r.from_offset - log.start_offset
                records.extend(log.records[lo:lo + r.count()])

        logger.debug("Fetched records", ranges=len(ranges), records=len(records))
        return records

    def _get_topic(self, topic: str) -> List[_PartitionLog]:
        try:
            return self._topics[topic]
        except KeyError:
            raise MetadataError(f"Unknown topic: {topic}") from None

    def _get_partition(self, topic: str, partition: int) -> _PartitionLog:
        logs = self._get_topic(topic)
        if not 0 <= partition < len(logs):
            raise MetadataError(f"Unknown partition: {topic}-{partition}")
        return logs[partition]
